"""
Label reconciliation package.

Matches AI-extracted label data to the curated reference catalog and merges
the two into one canonical chemical record:
- Reference matching (containment + shared-word heuristic, first match wins)
- Field-level merge (extraction overrides populated fields, one level deep)
- Reconciliation (match + merge + confidence passthrough)
"""

from hazcom.matching.match_result import CatalogMatch, ReconciliationResult
from hazcom.matching.merge import merge_canonical, is_populated
from hazcom.matching.reference_matcher import (
    ReferenceMatcher,
    match_reference_entry,
    SHARED_WORD_THRESHOLD,
)
from hazcom.matching.reconciliation import LabelReconciler, reconcile_label

__all__ = [
    "CatalogMatch",
    "ReconciliationResult",
    "merge_canonical",
    "is_populated",
    "ReferenceMatcher",
    "match_reference_entry",
    "SHARED_WORD_THRESHOLD",
    "LabelReconciler",
    "reconcile_label",
]
