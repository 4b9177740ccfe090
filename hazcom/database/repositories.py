"""
Repository interfaces over the HazCom store.

The compliance and reconciliation engines only ever see plain collections;
these repositories are the one place that knows how those collections are
fetched and written. Each method runs in its own transactional scope.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from hazcom.compliance.records import utc_now
from hazcom.compliance.training import (
    LEGACY_STATUS,
    StatusDrift,
    TrainingStatusInfo,
    canonicalize_modules,
    check_status_drift,
    derive_training_status,
    pending_modules,
)
from .connection import DatabaseManager
from .models import AddedMethod, Employee, LegacyTrainingStatus, SDSStatus
from . import crud

logger = logging.getLogger(__name__)


class ChemicalRepository:
    """Typed CRUD over the chemical inventory."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def add(self, record: Mapping[str, Any], added_method: str = AddedMethod.MANUAL.value) -> Dict[str, Any]:
        """
        Store a chemical record and return its stored dict form.

        Raises:
            ValueError: If the record has no product name
        """
        fields = dict(record)
        product_name = fields.pop("product_name", None)
        if not isinstance(product_name, str) or not product_name.strip():
            raise ValueError("Chemical record requires a product_name")

        fields.setdefault("added_method", added_method)
        with self.db.session_scope() as session:
            chemical = crud.create_chemical(session, product_name.strip(), **fields)
            logger.info(f"Added chemical '{chemical.product_name}' (id={chemical.id}) via {fields['added_method']}")
            return chemical.to_dict()

    def add_from_scan(self, canonical: Mapping[str, Any], added_by: str = "") -> Dict[str, Any]:
        """
        Store a reconciled label scan.

        The extraction confidence is kept as scan_confidence; fields_uncertain
        is review metadata and is not persisted.
        """
        fields = dict(canonical)
        confidence = fields.pop("confidence", None)
        fields.pop("fields_uncertain", None)
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            fields["scan_confidence"] = min(max(float(confidence), 0.0), 1.0)
        fields["added_by"] = added_by
        return self.add(fields, added_method=AddedMethod.SCAN.value)

    def get(self, chemical_id: int) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            chemical = crud.get_chemical_by_id(session, chemical_id)
            return chemical.to_dict() if chemical else None

    def find_by_name(self, product_name: str) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            chemical = crud.get_chemical_by_name(session, product_name)
            return chemical.to_dict() if chemical else None

    def list_all(self, location: Optional[str] = None) -> List[Dict[str, Any]]:
        with self.db.session_scope() as session:
            return [chemical.to_dict() for chemical in crud.list_chemicals(session, location=location)]

    def update(self, chemical_id: int, **fields) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            chemical = crud.update_chemical(session, chemical_id, **fields)
            return chemical.to_dict() if chemical else None

    def attach_sds(self,
                   chemical_id: int,
                   sds_url: Optional[str] = None,
                   uploaded: bool = False,
                   sds_date: Optional[Any] = None) -> Optional[Dict[str, Any]]:
        """
        Associate an SDS with a chemical and mark it current.

        Raises:
            ValueError: If neither a URL nor an upload is given
        """
        if not sds_url and not uploaded:
            raise ValueError("attach_sds needs an sds_url or uploaded=True")

        fields = {
            "sds_url": sds_url,
            "sds_uploaded": uploaded,
            "sds_status": SDSStatus.CURRENT,
        }
        if sds_date is not None:
            fields["sds_date"] = sds_date
        return self.update(chemical_id, **fields)

    def mark_sds_expired(self, chemical_id: int) -> Optional[Dict[str, Any]]:
        """Flag an attached SDS as expired (no-op for chemicals without one)."""
        return self.update(chemical_id, sds_status=SDSStatus.EXPIRED)

    def mark_labeled(self, chemical_id: int, printed: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        printed = printed or utc_now()
        return self.update(chemical_id, labeled=True, label_printed_date=printed.date())

    def remove(self, chemical_id: int) -> bool:
        with self.db.session_scope() as session:
            return crud.delete_chemical(session, chemical_id)


class EmployeeRepository:
    """
    Typed CRUD over the training roster.

    Reads attach the derived training status; the stored `status` column is
    rewritten as a projection of it on every write.
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    def add(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Store an employee and return its dict form with derived status.

        Raises:
            ValueError: If the record has no name
        """
        fields = dict(record)
        name = fields.pop("name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Employee record requires a name")

        with self.db.session_scope() as session:
            employee = crud.create_employee(session, name.strip(), **fields)
            self._sync_projection(employee)
            session.flush()
            return self._with_status(employee)

    def get(self, employee_id: int, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            employee = crud.get_employee_by_id(session, employee_id)
            return self._with_status(employee, now) if employee else None

    def list_all(self, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        with self.db.session_scope() as session:
            return [self._with_status(employee, now) for employee in crud.list_employees(session)]

    def update(self, employee_id: int, **fields) -> Optional[Dict[str, Any]]:
        with self.db.session_scope() as session:
            employee = crud.update_employee(session, employee_id, **fields)
            if not employee:
                return None
            self._sync_projection(employee)
            session.flush()
            return self._with_status(employee)

    def complete_module(self,
                        employee_id: int,
                        module_id: str,
                        completed_on: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """
        Record a completed training module.

        Completing the final module starts (or restarts) the refresher clock.

        Raises:
            ValueError: If module_id is not a curriculum module or synonym
        """
        canonical = canonicalize_modules([module_id])
        if not canonical:
            raise ValueError(f"Unknown training module: {module_id}")

        completed_on = completed_on or utc_now()
        with self.db.session_scope() as session:
            employee = crud.get_employee_by_id(session, employee_id)
            if not employee:
                return None

            modules = list(employee.completed_modules or [])
            module = canonical.pop()
            if module not in canonicalize_modules(modules):
                modules.append(module)
            employee.completed_modules = modules

            if not pending_modules(employee):
                employee.last_training = completed_on.date()
                if employee.initial_training is None:
                    employee.initial_training = completed_on.date()

            self._sync_projection(employee, completed_on)
            session.flush()
            logger.info(f"{employee.name} completed module {module}")
            return self._with_status(employee, completed_on)

    def check_drift(self, now: Optional[datetime] = None) -> List[StatusDrift]:
        """Compare every stored status column against the derived status."""
        with self.db.session_scope() as session:
            drifts = [
                check_status_drift(self._as_record(employee), now=now)
                for employee in crud.list_employees(session)
            ]
        return [drift for drift in drifts if drift.diverged]

    def remove(self, employee_id: int) -> bool:
        with self.db.session_scope() as session:
            return crud.delete_employee(session, employee_id)

    @staticmethod
    def _as_record(employee: Employee) -> Dict[str, Any]:
        return employee.to_dict()

    def _sync_projection(self, employee: Employee, now: Optional[datetime] = None) -> None:
        """Rewrite the cached columns from the derived status."""
        info = derive_training_status(self._as_record(employee), now=now)
        employee.pending_modules = pending_modules(employee)
        employee.status = LegacyTrainingStatus(LEGACY_STATUS[info.status])

    def _with_status(self, employee: Employee, now: Optional[datetime] = None) -> Dict[str, Any]:
        record = self._as_record(employee)
        info: TrainingStatusInfo = derive_training_status(record, now=now)
        record["training_status"] = info.to_dict()
        return record


class SiteSnapshot:
    """Point-in-time view of inventory and roster for the compliance engine."""

    def __init__(self, chemicals: ChemicalRepository, employees: EmployeeRepository):
        self.chemicals = chemicals
        self.employees = employees

    def load(self, now: Optional[datetime] = None) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "chemicals": self.chemicals.list_all(),
            "employees": self.employees.list_all(now=now),
        }
