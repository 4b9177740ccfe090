"""
Reference catalog loading.

The catalog is a hand-curated list of known product profiles stored as YAML
next to this module. It is read once and treated as immutable; callers get
deep copies so nothing downstream can edit the cached entries.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / 'reference_catalog.yaml'

# Safety fields every catalog entry carries (a Chemical Record minus inventory state)
CATALOG_FIELDS = (
    'product_name',
    'manufacturer',
    'signal_word',
    'pictogram_codes',
    'hazard_statements',
    'precautionary_statements',
    'first_aid',
    'ppe_required',
    'physical_properties',
    'storage_requirements',
    'incompatible_materials',
    'cas_numbers',
    'un_number',
    'nfpa_diamond',
)

_cache: Dict[Path, List[Dict[str, Any]]] = {}


def load_catalog(path: Optional[Path] = None) -> List[Dict[str, Any]]:
    """
    Load the reference catalog in file order.

    Args:
        path: YAML catalog file (defaults to the bundled catalog)

    Returns:
        List of catalog entries (deep copies of the cached data)

    Raises:
        FileNotFoundError: If the catalog file does not exist
        ValueError: If the file is not a list of mappings with a product_name
    """
    catalog_path = path or DEFAULT_CATALOG_PATH

    if catalog_path not in _cache:
        if not catalog_path.exists():
            raise FileNotFoundError(f"Reference catalog not found: {catalog_path}")

        with open(catalog_path, 'r', encoding='utf-8') as f:
            entries = yaml.safe_load(f) or []

        if not isinstance(entries, list):
            raise ValueError(f"Reference catalog must be a list, got {type(entries).__name__}")
        for position, entry in enumerate(entries):
            if not isinstance(entry, dict) or 'product_name' not in entry:
                raise ValueError(f"Catalog entry #{position} has no product_name")

        _cache[catalog_path] = entries
        logger.info(f"Loaded {len(entries)} reference catalog entries from {catalog_path}")

    return copy.deepcopy(_cache[catalog_path])


def clear_catalog_cache() -> None:
    """Forget cached catalogs (used when the YAML file is edited in place)."""
    _cache.clear()
