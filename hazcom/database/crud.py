"""
CRUD operations for the HazCom compliance database.

Provides database operations for:
- Chemicals (inventory records, SDS status invariant)
- Employees (training roster)
- SDS records (shared lookup cache)
- Database statistics
"""

import logging
from datetime import datetime, date
from typing import Optional, List, Dict, Any
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from hazcom.compliance.records import to_naive_datetime, utc_now
from .models import (
    Chemical,
    Employee,
    SDSRecord,
    SDSStatus,
    AddedMethod,
    LegacyTrainingStatus,
)

logger = logging.getLogger(__name__)

CHEMICAL_COLUMNS = frozenset(column.key for column in Chemical.__table__.columns) - {"id"}
EMPLOYEE_COLUMNS = frozenset(column.key for column in Employee.__table__.columns) - {"id"}
SDS_RECORD_COLUMNS = frozenset(column.key for column in SDSRecord.__table__.columns) - {"id"}
NOT_NULL_COLUMNS = frozenset(
    column.key
    for model in (Chemical, Employee, SDSRecord)
    for column in model.__table__.columns
    if not column.nullable
)

DATE_FIELDS = frozenset({"label_printed_date", "sds_date", "initial_training", "last_training"})
DATETIME_FIELDS = frozenset({"added_date", "last_updated", "lookup_date", "created_at"})


# ============================================================================
# FIELD COERCION
# ============================================================================

def _coerce_field(name: str, value: Any) -> Any:
    """Convert API-style values (ISO strings, enum values) to column types."""
    if value is None:
        return None
    if name == "sds_status" and isinstance(value, str):
        return SDSStatus(value)
    if name == "added_method" and isinstance(value, str):
        return AddedMethod(value)
    if name == "status" and isinstance(value, str):
        return LegacyTrainingStatus(value)
    if name in DATE_FIELDS and not isinstance(value, date):
        parsed = to_naive_datetime(value)
        return parsed.date() if parsed else None
    if name in DATE_FIELDS and isinstance(value, datetime):
        return value.date()
    if name in DATETIME_FIELDS and not isinstance(value, datetime):
        return to_naive_datetime(value)
    return value


def _filter_fields(fields: Dict[str, Any], allowed: frozenset) -> Dict[str, Any]:
    """Keep known columns; None for a NOT NULL column means "leave as is"."""
    unknown = sorted(set(fields) - allowed)
    if unknown:
        logger.debug(f"Ignoring non-column fields: {unknown}")
    return {
        key: _coerce_field(key, value)
        for key, value in fields.items()
        if key in allowed and not (value is None and key in NOT_NULL_COLUMNS)
    }


def enforce_sds_invariant(chemical: Chemical) -> Chemical:
    """
    Force sds_status to MISSING when no SDS is associated.

    current/expired are only meaningful once a URL or upload exists.
    """
    if not chemical.has_sds and chemical.sds_status != SDSStatus.MISSING:
        logger.warning(
            f"Chemical '{chemical.product_name}' has no SDS attached; "
            f"resetting sds_status from {chemical.sds_status} to missing"
        )
        chemical.sds_status = SDSStatus.MISSING
    return chemical


# ============================================================================
# CHEMICAL CRUD OPERATIONS
# ============================================================================

def create_chemical(session: Session, product_name: str, **fields) -> Chemical:
    """
    Create a new chemical record.

    Args:
        session: Database session
        product_name: Product name (identity for matching)
        **fields: Any other Chemical column; non-column keys are ignored

    Returns:
        Created Chemical instance
    """
    values = _filter_fields(fields, CHEMICAL_COLUMNS - {"product_name"})
    chemical = Chemical(product_name=product_name, **values)
    if chemical.sds_status is None:
        chemical.sds_status = SDSStatus.MISSING
    enforce_sds_invariant(chemical)

    session.add(chemical)
    session.flush()
    return chemical


def get_chemical_by_id(session: Session, chemical_id: int) -> Optional[Chemical]:
    """Get chemical by primary key."""
    return session.get(Chemical, chemical_id)


def get_chemical_by_name(session: Session, product_name: str) -> Optional[Chemical]:
    """Get the first chemical whose product name matches (case-insensitive)."""
    return session.execute(
        select(Chemical)
        .where(func.lower(Chemical.product_name) == product_name.strip().lower())
        .order_by(Chemical.id)
        .limit(1)
    ).scalar_one_or_none()


def search_chemicals_by_name(session: Session, query: str, limit: int = 20) -> List[Chemical]:
    """
    Search chemicals by partial name match (case-insensitive).

    Args:
        session: Database session
        query: Search query
        limit: Maximum number of results

    Returns:
        List of matching chemicals
    """
    return list(session.execute(
        select(Chemical)
        .where(Chemical.product_name.ilike(f"%{query}%"))
        .order_by(Chemical.product_name)
        .limit(limit)
    ).scalars().all())


def list_chemicals(
    session: Session,
    location: Optional[str] = None,
    sds_status: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Chemical]:
    """
    List chemicals with optional filtering.

    Args:
        session: Database session
        location: Filter by storage location
        sds_status: Filter by SDS status value
        offset: Number of records to skip
        limit: Maximum number of records to return (all if None)

    Returns:
        List of chemicals in insertion order
    """
    stmt = select(Chemical)

    if location:
        stmt = stmt.where(Chemical.location == location)
    if sds_status:
        stmt = stmt.where(Chemical.sds_status == _coerce_field("sds_status", sds_status))

    stmt = stmt.order_by(Chemical.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)

    return list(session.execute(stmt).scalars().all())


def update_chemical(session: Session, chemical_id: int, **fields) -> Optional[Chemical]:
    """
    Update chemical fields and refresh last_updated.

    Args:
        session: Database session
        chemical_id: ID of chemical to update
        **fields: Fields to update

    Returns:
        Updated Chemical instance or None if not found
    """
    chemical = session.get(Chemical, chemical_id)
    if not chemical:
        return None

    for key, value in _filter_fields(fields, CHEMICAL_COLUMNS).items():
        setattr(chemical, key, value)

    enforce_sds_invariant(chemical)
    chemical.last_updated = utc_now()
    session.flush()
    return chemical


def delete_chemical(session: Session, chemical_id: int) -> bool:
    """
    Delete a chemical.

    Returns:
        True if deleted, False if not found
    """
    chemical = session.get(Chemical, chemical_id)
    if not chemical:
        return False

    session.delete(chemical)
    session.flush()
    return True


def count_chemicals(session: Session, sds_status: Optional[str] = None) -> int:
    """Count chemicals, optionally filtered by SDS status."""
    stmt = select(func.count(Chemical.id))
    if sds_status:
        stmt = stmt.where(Chemical.sds_status == _coerce_field("sds_status", sds_status))
    return session.execute(stmt).scalar_one()


# ============================================================================
# EMPLOYEE CRUD OPERATIONS
# ============================================================================

def create_employee(session: Session, name: str, **fields) -> Employee:
    """
    Create a new employee.

    Args:
        session: Database session
        name: Employee name
        **fields: Any other Employee column (role, last_training, completed_modules...)

    Returns:
        Created Employee instance
    """
    values = _filter_fields(fields, EMPLOYEE_COLUMNS - {"name"})
    employee = Employee(name=name, **values)
    session.add(employee)
    session.flush()
    return employee


def get_employee_by_id(session: Session, employee_id: int) -> Optional[Employee]:
    """Get employee by primary key."""
    return session.get(Employee, employee_id)


def get_employee_by_name(session: Session, name: str) -> Optional[Employee]:
    """Get the first employee with this exact name."""
    return session.execute(
        select(Employee).where(Employee.name == name).order_by(Employee.id).limit(1)
    ).scalar_one_or_none()


def list_employees(session: Session, offset: int = 0, limit: Optional[int] = None) -> List[Employee]:
    """List employees in insertion order."""
    stmt = select(Employee).order_by(Employee.id).offset(offset)
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.execute(stmt).scalars().all())


def update_employee(session: Session, employee_id: int, **fields) -> Optional[Employee]:
    """
    Update employee fields.

    Returns:
        Updated Employee instance or None if not found
    """
    employee = session.get(Employee, employee_id)
    if not employee:
        return None

    for key, value in _filter_fields(fields, EMPLOYEE_COLUMNS).items():
        setattr(employee, key, value)

    session.flush()
    return employee


def delete_employee(session: Session, employee_id: int) -> bool:
    """
    Delete an employee.

    Returns:
        True if deleted, False if not found
    """
    employee = session.get(Employee, employee_id)
    if not employee:
        return False

    session.delete(employee)
    session.flush()
    return True


def count_employees(session: Session) -> int:
    """Count employees on the roster."""
    return session.execute(select(func.count(Employee.id))).scalar_one()


# ============================================================================
# SDS RECORD OPERATIONS
# ============================================================================

def create_sds_record(session: Session, product_name: str, confidence: float, **fields) -> SDSRecord:
    """
    Insert a found SDS into the shared cache.

    Args:
        session: Database session
        product_name: Product the sheet belongs to
        confidence: Lookup confidence (0.0-1.0)
        **fields: Other SDSRecord columns (manufacturer, sds_url, pictogram_codes...)

    Returns:
        Created SDSRecord instance

    Raises:
        IntegrityError: If confidence is outside 0.0-1.0
    """
    values = _filter_fields(fields, SDS_RECORD_COLUMNS - {"product_name", "confidence"})
    record = SDSRecord(product_name=product_name, confidence=confidence, **values)
    session.add(record)
    session.flush()
    return record


def list_sds_records(session: Session, limit: int = 100) -> List[SDSRecord]:
    """List cached SDS records, newest first."""
    return list(session.execute(
        select(SDSRecord).order_by(SDSRecord.created_at.desc(), SDSRecord.id.desc()).limit(limit)
    ).scalars().all())


# ============================================================================
# STATISTICS
# ============================================================================

def get_database_statistics(session: Session) -> Dict[str, Any]:
    """
    Get database statistics.

    Returns:
        Dictionary with counts per table and per SDS status
    """
    sds_counts = dict(
        session.execute(
            select(Chemical.sds_status, func.count(Chemical.id)).group_by(Chemical.sds_status)
        ).all()
    )
    labeled_count = session.execute(
        select(func.count(Chemical.id)).where(Chemical.labeled == True)  # noqa: E712
    ).scalar_one()

    return {
        'chemicals': count_chemicals(session),
        'employees': count_employees(session),
        'sds_records': session.execute(select(func.count(SDSRecord.id))).scalar_one(),
        'labeled_chemicals': labeled_count,
        'sds_current': sds_counts.get(SDSStatus.CURRENT, 0),
        'sds_missing': sds_counts.get(SDSStatus.MISSING, 0),
        'sds_expired': sds_counts.get(SDSStatus.EXPIRED, 0),
    }
