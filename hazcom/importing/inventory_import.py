"""
Inventory spreadsheet import.

Loads an existing chemical inventory (Excel or CSV), auto-detects the product
name column and turns each row into a chemical record. Rows whose product
matches the reference catalog are enriched with the catalog's safety content
using the same merge rules as label scans.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from hazcom.database.models import AddedMethod
from hazcom.database.repositories import ChemicalRepository
from hazcom.matching.reconciliation import LabelReconciler

logger = logging.getLogger(__name__)

# Header aliases (lowercase) -> record field
COLUMN_ALIASES: Dict[str, str] = {
    'product name': 'product_name',
    'product_name': 'product_name',
    'product': 'product_name',
    'chemical': 'product_name',
    'chemical name': 'product_name',
    'name': 'product_name',
    'manufacturer': 'manufacturer',
    'mfr': 'manufacturer',
    'supplier': 'manufacturer',
    'location': 'location',
    'storage location': 'location',
    'area': 'location',
    'container': 'container_type',
    'container type': 'container_type',
    'container_type': 'container_type',
    'qty': 'container_count',
    'quantity': 'container_count',
    'count': 'container_count',
    'container count': 'container_count',
    'container_count': 'container_count',
    'cas': 'cas_numbers',
    'cas #': 'cas_numbers',
    'cas number': 'cas_numbers',
    'cas numbers': 'cas_numbers',
    'cas_numbers': 'cas_numbers',
    'pictograms': 'pictogram_codes',
    'pictogram_codes': 'pictogram_codes',
    'signal word': 'signal_word',
    'signal_word': 'signal_word',
    'un number': 'un_number',
    'un_number': 'un_number',
    'labeled': 'labeled',
    'labelled': 'labeled',
    'storage': 'storage_requirements',
    'storage requirements': 'storage_requirements',
    'sds url': 'sds_url',
    'sds_url': 'sds_url',
}

NAME_COLUMN_HINTS = ('product', 'chemical', 'name')
LIST_FIELDS = frozenset({'cas_numbers', 'pictogram_codes'})
TRUE_VALUES = frozenset({'yes', 'y', 'true', '1', 'x'})
SIGNAL_WORDS = frozenset({'DANGER', 'WARNING'})

_LIST_SPLIT = re.compile(r"[;,|]")


@dataclass
class ImportSummary:
    """Outcome of one inventory import."""
    source: str
    imported: List[Dict[str, Any]] = field(default_factory=list)
    skipped_rows: List[int] = field(default_factory=list)
    catalog_matches: int = 0

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'imported': self.imported_count,
            'skipped_rows': list(self.skipped_rows),
            'catalog_matches': self.catalog_matches,
        }


def detect_name_column(df: pd.DataFrame) -> Optional[str]:
    """
    Auto-detect which column holds product names.

    Exact header aliases win; otherwise the first header containing a hint
    word (product, chemical, name).
    """
    columns_lower = {str(col).strip().lower(): col for col in df.columns}
    for alias, target in COLUMN_ALIASES.items():
        if target == 'product_name' and alias in columns_lower:
            logger.info(f"Auto-detected product name column: '{columns_lower[alias]}'")
            return columns_lower[alias]

    for col in df.columns:
        col_lower = str(col).lower()
        if any(hint in col_lower for hint in NAME_COLUMN_HINTS):
            logger.info(f"Auto-detected product name column (partial match): '{col}'")
            return col

    logger.warning("Could not auto-detect product name column")
    return None


def load_inventory_file(file_path: str, name_column: Optional[str] = None) -> Tuple[pd.DataFrame, str]:
    """
    Load an inventory spreadsheet.

    Args:
        file_path: Path to .xlsx/.xls/.csv file
        name_column: Column with product names (auto-detect if None)

    Returns:
        Tuple of (DataFrame, product name column)

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the format is unsupported or no name column is found
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Inventory file not found: {file_path}")

    logger.info(f"Loading inventory file: {file_path}")
    if file_path.suffix.lower() in ['.xlsx', '.xls']:
        df = pd.read_excel(file_path)
    elif file_path.suffix.lower() == '.csv':
        df = pd.read_csv(file_path)
    else:
        raise ValueError(f"Unsupported file format: {file_path.suffix}")

    logger.info(f"Loaded {len(df)} rows, {len(df.columns)} columns")

    if name_column is None:
        name_column = detect_name_column(df)
        if name_column is None:
            raise ValueError(
                f"Could not auto-detect product name column. "
                f"Available columns: {', '.join(map(str, df.columns))}"
            )
    elif name_column not in df.columns:
        raise ValueError(
            f"Column '{name_column}' not found in file. "
            f"Available columns: {', '.join(map(str, df.columns))}"
        )

    return df, name_column


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, (list, dict)) and pd.isna(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _convert(field_name: str, value: Any) -> Any:
    if field_name in LIST_FIELDS:
        return [part.strip() for part in _LIST_SPLIT.split(str(value)) if part.strip()]
    if field_name == 'container_count':
        try:
            return max(int(float(value)), 0)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric container count '{value}'")
            return None
    if field_name == 'labeled':
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in TRUE_VALUES
    if field_name == 'signal_word':
        word = str(value).strip().upper()
        return word if word in SIGNAL_WORDS else None
    return str(value) if not isinstance(value, str) else value


def rows_to_records(df: pd.DataFrame, name_column: str) -> Tuple[List[Dict[str, Any]], List[int]]:
    """
    Convert spreadsheet rows into chemical record dicts.

    Returns:
        Tuple of (records, indexes of rows skipped for a blank name)
    """
    mapping: Dict[Any, str] = {name_column: 'product_name'}
    for col in df.columns:
        target = COLUMN_ALIASES.get(str(col).strip().lower())
        if target and target != 'product_name' and target not in mapping.values():
            mapping[col] = target

    records: List[Dict[str, Any]] = []
    skipped: List[int] = []
    for index, row in df.iterrows():
        record: Dict[str, Any] = {}
        for col, field_name in mapping.items():
            value = _clean_cell(row[col])
            if value is None:
                continue
            converted = _convert(field_name, value)
            if converted is not None:
                record[field_name] = converted

        if not record.get('product_name'):
            skipped.append(int(index))
            continue
        records.append(record)

    if skipped:
        logger.warning(f"Skipped {len(skipped)} rows with no product name")
    return records, skipped


def import_inventory(file_path: str,
                     repository: ChemicalRepository,
                     name_column: Optional[str] = None,
                     added_by: str = "",
                     reconciler: Optional[LabelReconciler] = None,
                     use_catalog: bool = True) -> ImportSummary:
    """
    Import an inventory spreadsheet into the chemical store.

    Args:
        file_path: Spreadsheet path
        repository: ChemicalRepository receiving the records
        name_column: Product name column (auto-detect if None)
        added_by: Actor recorded on each chemical
        reconciler: LabelReconciler for catalog enrichment (default-configured if None)
        use_catalog: Merge catalog safety content for recognised products

    Returns:
        ImportSummary
    """
    df, name_column = load_inventory_file(file_path, name_column)
    records, skipped = rows_to_records(df, name_column)

    summary = ImportSummary(source=str(file_path), skipped_rows=skipped)
    if use_catalog and reconciler is None:
        reconciler = LabelReconciler()

    for record in records:
        if use_catalog:
            result = reconciler.reconcile(record)
            if result.is_matched:
                summary.catalog_matches += 1
            record = result.canonical
            # Import rows carry no extraction confidence
            record.pop('confidence', None)
            record.pop('fields_uncertain', None)

        record['added_by'] = added_by
        stored = repository.add(record, added_method=AddedMethod.IMPORT.value)
        summary.imported.append(stored)

    logger.info(
        f"Imported {summary.imported_count} chemicals from {file_path} "
        f"({summary.catalog_matches} catalog matches, {len(skipped)} skipped)"
    )
    return summary
