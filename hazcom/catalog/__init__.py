"""
Curated reference catalog of known chemical products.
"""

from hazcom.catalog.loader import load_catalog, clear_catalog_cache, CATALOG_FIELDS, DEFAULT_CATALOG_PATH

__all__ = ["load_catalog", "clear_catalog_cache", "CATALOG_FIELDS", "DEFAULT_CATALOG_PATH"]
