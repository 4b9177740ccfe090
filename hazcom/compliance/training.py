"""
Employee training lifecycle status.

The status is derived on every read from two fields of the employee record:
the completed module list and the last training date. The stored legacy
`status` column is a projection of this value and is never trusted.

  not-started  0 of 7 modules complete
  in-progress  1-6 of 7 complete (no refresher clock yet)
  overdue      7 of 7, refresher anniversary passed or no date recorded
  due-soon     7 of 7, refresher due within 30 days
  current      7 of 7, refresher due in more than 30 days
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from hazcom.compliance.records import record_name, record_value, to_naive_datetime, utc_now

logger = logging.getLogger(__name__)

# Ordered curriculum: (canonical id, title)
TRAINING_MODULES: List[Tuple[str, str]] = [
    ("m1", "Your Right to Know"),
    ("m2", "The GHS System"),
    ("m3", "Reading a Chemical Label"),
    ("m4", "Understanding the SDS"),
    ("m5", "Protecting Yourself: PPE"),
    ("m6", "When Things Go Wrong"),
    ("m7", "Your Shop's HazCom Program"),
]

MODULE_IDS = [module_id for module_id, _ in TRAINING_MODULES]

# Legacy identifiers still present in older roster data
MODULE_SYNONYMS: Dict[str, str] = {
    "hazcom-overview": "m1",
    "right-to-know": "m1",
    "ghs-system": "m2",
    "ghs-overview": "m2",
    "label-reading": "m3",
    "reading-labels": "m3",
    "sds-reading": "m4",
    "understanding-sds": "m4",
    "ppe": "m5",
    "ppe-selection": "m5",
    "emergency-response": "m6",
    "spill-response": "m6",
    "site-program": "m7",
    "hazcom-program": "m7",
}

REFRESHER_DAYS = 365
DUE_SOON_DAYS = 30

STATUS_CURRENT = "current"
STATUS_DUE_SOON = "due-soon"
STATUS_OVERDUE = "overdue"
STATUS_IN_PROGRESS = "in-progress"
STATUS_NOT_STARTED = "not-started"

TRAINED_STATUSES = frozenset({STATUS_CURRENT, STATUS_DUE_SOON})

# Derived status -> value of the legacy Employee.status column
LEGACY_STATUS = {
    STATUS_CURRENT: "current",
    STATUS_DUE_SOON: "current",
    STATUS_OVERDUE: "overdue",
    STATUS_IN_PROGRESS: "pending",
    STATUS_NOT_STARTED: "pending",
}


@dataclass(frozen=True)
class TrainingStatusInfo:
    """Derived training state of one employee."""
    status: str
    completed_count: int
    remaining_count: int
    days_until_due: Optional[int]
    status_label: str

    @property
    def is_trained(self) -> bool:
        """Current and due-soon both count as trained."""
        return self.status in TRAINED_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "completed_count": self.completed_count,
            "remaining_count": self.remaining_count,
            "days_until_due": self.days_until_due,
            "status_label": self.status_label,
        }


@dataclass(frozen=True)
class StatusDrift:
    """Comparison of a stored legacy status against the derived one."""
    employee_name: str
    stored_status: Optional[str]
    derived_status: str
    expected_stored_status: str

    @property
    def diverged(self) -> bool:
        return self.stored_status != self.expected_stored_status


def canonicalize_modules(module_ids: Optional[Iterable[Any]]) -> Set[str]:
    """
    Map completed module identifiers onto canonical curriculum ids.

    Synonyms collapse onto one slot, so ["m1", "hazcom-overview"] counts once.
    Unknown identifiers are ignored.
    """
    canonical: Set[str] = set()
    for module_id in module_ids or []:
        if not isinstance(module_id, str):
            continue
        key = module_id.strip().lower()
        key = MODULE_SYNONYMS.get(key, key)
        if key in MODULE_IDS:
            canonical.add(key)
    return canonical


def derive_training_status(employee: Any,
                           module_count: int = len(MODULE_IDS),
                           now: Optional[datetime] = None,
                           refresher_days: int = REFRESHER_DAYS,
                           due_soon_days: int = DUE_SOON_DAYS) -> TrainingStatusInfo:
    """
    Derive an employee's training lifecycle status.

    days_until_due is the ceiling of the whole days left before the
    refresher anniversary (last_training + refresher_days). The certification
    lapses at the anniversary itself, so a non-positive remainder is overdue.

    Args:
        employee: Mapping or object with completed_modules and last_training
        module_count: Size of the curriculum
        now: Reference instant (defaults to the current UTC time)
        refresher_days: Length of the annual refresher cycle
        due_soon_days: Window in which a refresher counts as due soon

    Returns:
        TrainingStatusInfo
    """
    completed = canonicalize_modules(record_value(employee, "completed_modules"))
    completed_count = min(len(completed), module_count)
    remaining_count = module_count - completed_count

    if completed_count == 0:
        return TrainingStatusInfo(
            status=STATUS_NOT_STARTED,
            completed_count=0,
            remaining_count=remaining_count,
            days_until_due=None,
            status_label="Not started: new hire needs orientation",
        )

    if completed_count < module_count:
        return TrainingStatusInfo(
            status=STATUS_IN_PROGRESS,
            completed_count=completed_count,
            remaining_count=remaining_count,
            days_until_due=None,
            status_label=f"In progress: {completed_count} of {module_count} modules complete",
        )

    last_training = to_naive_datetime(record_value(employee, "last_training"))
    if last_training is None:
        return TrainingStatusInfo(
            status=STATUS_OVERDUE,
            completed_count=completed_count,
            remaining_count=0,
            days_until_due=None,
            status_label="Overdue: annual refresher date unknown",
        )

    reference = to_naive_datetime(now) if now is not None else None
    if reference is None:
        reference = utc_now()

    remaining = (last_training + timedelta(days=refresher_days)) - reference
    days_until_due = math.ceil(remaining / timedelta(days=1))

    if remaining <= timedelta(0):
        if days_until_due == 0:
            label = "Overdue: annual refresher lapsed today"
        else:
            label = f"Overdue: annual refresher {abs(days_until_due)} days past due"
        return TrainingStatusInfo(
            status=STATUS_OVERDUE,
            completed_count=completed_count,
            remaining_count=0,
            days_until_due=days_until_due,
            status_label=label,
        )

    if remaining <= timedelta(days=due_soon_days):
        return TrainingStatusInfo(
            status=STATUS_DUE_SOON,
            completed_count=completed_count,
            remaining_count=0,
            days_until_due=days_until_due,
            status_label=f"Due soon: refresher due in {days_until_due} days",
        )

    return TrainingStatusInfo(
        status=STATUS_CURRENT,
        completed_count=completed_count,
        remaining_count=0,
        days_until_due=days_until_due,
        status_label="Up to date",
    )


def check_status_drift(employee: Any,
                       now: Optional[datetime] = None,
                       **status_kwargs) -> StatusDrift:
    """
    Recompute an employee's status and compare it with the stored column.

    Divergence is logged; the derived status always wins.
    """
    info = derive_training_status(employee, now=now, **status_kwargs)
    drift = StatusDrift(
        employee_name=record_name(employee),
        stored_status=record_value(employee, "status"),
        derived_status=info.status,
        expected_stored_status=LEGACY_STATUS[info.status],
    )
    if drift.diverged:
        logger.warning(
            f"Stored training status '{drift.stored_status}' for {drift.employee_name} "
            f"disagrees with derived status '{drift.derived_status}'"
        )
    return drift


def pending_modules(employee: Any) -> List[str]:
    """Canonical ids of curriculum modules not yet completed, in order."""
    completed = canonicalize_modules(record_value(employee, "completed_modules"))
    return [module_id for module_id in MODULE_IDS if module_id not in completed]
