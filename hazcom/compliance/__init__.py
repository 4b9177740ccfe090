"""
Compliance derivation package.

Derives per-employee training status and the weighted site compliance score
from plain chemical and employee collections:
- Training lifecycle (module canonicalization, refresher clock, legacy drift check)
- Compliance score (four weighted pillars, action items, ranked improvements)
"""

from hazcom.compliance.records import record_value, record_name, to_naive_datetime
from hazcom.compliance.training import (
    TRAINING_MODULES,
    MODULE_IDS,
    MODULE_SYNONYMS,
    LEGACY_STATUS,
    TrainingStatusInfo,
    StatusDrift,
    canonicalize_modules,
    derive_training_status,
    check_status_drift,
    pending_modules,
)
from hazcom.compliance.score import (
    PillarScore,
    Improvement,
    ComplianceResult,
    calculate_compliance_score,
    is_fully_documented,
    round_half_up,
)

__all__ = [
    "record_value",
    "record_name",
    "to_naive_datetime",
    "TRAINING_MODULES",
    "MODULE_IDS",
    "MODULE_SYNONYMS",
    "LEGACY_STATUS",
    "TrainingStatusInfo",
    "StatusDrift",
    "canonicalize_modules",
    "derive_training_status",
    "check_status_drift",
    "pending_modules",
    "PillarScore",
    "Improvement",
    "ComplianceResult",
    "calculate_compliance_score",
    "is_fully_documented",
    "round_half_up",
]
