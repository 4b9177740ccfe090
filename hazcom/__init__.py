"""
HazCom Compliance Core - Source Package

Main modules:
- catalog: Curated reference catalog of known chemical products
- normalization: Text normalization and tokenization for name matching
- matching: Label reconciliation (catalog matching + field-level merge)
- compliance: Training status derivation and weighted compliance score
- database: SQLAlchemy ORM models, CRUD operations and repositories
- extraction: Vision API client and response parsing for label photos
- sds: Shared SDS lookup cache
- importing: Inventory spreadsheet import
- program: Written HazCom program generator
- utils: Configuration management
"""

__version__ = "1.0.0"
