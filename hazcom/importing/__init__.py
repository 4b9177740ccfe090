"""Inventory spreadsheet import (Excel/CSV via pandas)."""

from hazcom.importing.inventory_import import (
    ImportSummary,
    COLUMN_ALIASES,
    detect_name_column,
    load_inventory_file,
    rows_to_records,
    import_inventory,
)

__all__ = [
    "ImportSummary",
    "COLUMN_ALIASES",
    "detect_name_column",
    "load_inventory_file",
    "rows_to_records",
    "import_inventory",
]
