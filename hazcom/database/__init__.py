"""
Database package for the HazCom compliance store.

This package provides:
- SQLAlchemy ORM models (chemicals, employees, SDS cache)
- Connection and session management
- CRUD operations
- Chemical and employee repositories used by the scripts

Quick start:
    from hazcom.database import DatabaseManager, ChemicalRepository

    db = DatabaseManager("data/hazcom.db")
    db.create_all_tables()

    chemicals = ChemicalRepository(db)
    chemicals.add({"product_name": "Acetone Technical Grade", "location": "Paint Booth"})
"""

from .connection import (
    DatabaseManager,
    get_session,
    get_db_manager,
    init_db,
    create_test_db,
)

from .models import (
    Base,
    Chemical,
    Employee,
    SDSRecord,
    SDSStatus,
    AddedMethod,
    LegacyTrainingStatus,
)

from .crud import (
    enforce_sds_invariant,
    create_chemical,
    get_chemical_by_id,
    get_chemical_by_name,
    search_chemicals_by_name,
    list_chemicals,
    update_chemical,
    delete_chemical,
    count_chemicals,
    create_employee,
    get_employee_by_id,
    get_employee_by_name,
    list_employees,
    update_employee,
    delete_employee,
    count_employees,
    create_sds_record,
    list_sds_records,
    get_database_statistics,
)

from .repositories import ChemicalRepository, EmployeeRepository, SiteSnapshot


__all__ = [
    # Connection
    "DatabaseManager",
    "get_session",
    "get_db_manager",
    "init_db",
    "create_test_db",
    # Models
    "Base",
    "Chemical",
    "Employee",
    "SDSRecord",
    # Enums
    "SDSStatus",
    "AddedMethod",
    "LegacyTrainingStatus",
    # CRUD - Chemicals
    "enforce_sds_invariant",
    "create_chemical",
    "get_chemical_by_id",
    "get_chemical_by_name",
    "search_chemicals_by_name",
    "list_chemicals",
    "update_chemical",
    "delete_chemical",
    "count_chemicals",
    # CRUD - Employees
    "create_employee",
    "get_employee_by_id",
    "get_employee_by_name",
    "list_employees",
    "update_employee",
    "delete_employee",
    "count_employees",
    # CRUD - SDS cache
    "create_sds_record",
    "list_sds_records",
    # Statistics
    "get_database_statistics",
    # Repositories
    "ChemicalRepository",
    "EmployeeRepository",
    "SiteSnapshot",
]
