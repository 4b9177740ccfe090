"""
Data structures for label reconciliation results.

Defines the output of a single catalog lookup and the complete result of
reconciling one scanned label against the reference catalog.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

VALID_METHODS = {'containment', 'shared_words'}


@dataclass
class CatalogMatch:
    """
    A reference catalog entry selected for a product name.

    Attributes:
        entry: The matched catalog entry
        method: Rule that fired ('containment' or 'shared_words')
        catalog_index: Position of the entry in catalog order
        shared_words: Number of shared meaningful tokens (0 for containment)
    """
    entry: Dict[str, Any]
    method: str
    catalog_index: int
    shared_words: int = 0

    def __post_init__(self):
        """Validate the match method."""
        if self.method not in VALID_METHODS:
            raise ValueError(f"Invalid method '{self.method}', must be one of {VALID_METHODS}")

    @property
    def product_name(self) -> str:
        return self.entry.get('product_name') or ''


@dataclass
class ReconciliationResult:
    """
    Complete result of reconciling an extracted label.

    Attributes:
        input_name: Product name read off the label ('' when absent)
        canonical: Canonical record (merged, or the raw extraction when unmatched)
        match: Catalog match used as the merge baseline, if any
        review_confidence: Confidence below which the scan needs manual review
    """
    input_name: str
    canonical: Dict[str, Any]
    match: Optional[CatalogMatch] = None
    review_confidence: float = 0.75
    notes: List[str] = field(default_factory=list)

    @property
    def is_matched(self) -> bool:
        """Check if a reference catalog entry was used."""
        return self.match is not None

    @property
    def matched_name(self) -> Optional[str]:
        return self.match.product_name if self.match else None

    @property
    def method(self) -> Optional[str]:
        return self.match.method if self.match else None

    @property
    def confidence(self) -> float:
        """Extraction confidence as a float (0.0 when unusable)."""
        value = self.canonical.get('confidence')
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        return float(value)

    @property
    def fields_uncertain(self) -> List[str]:
        return list(self.canonical.get('fields_uncertain') or [])

    @property
    def requires_review(self) -> bool:
        """
        Check if the scan should be surfaced for manual review.

        Unmatched scans carry only what the label showed, so safety blocks
        such as first aid may be entirely absent.
        """
        return (
            not self.is_matched
            or bool(self.fields_uncertain)
            or self.confidence < self.review_confidence
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'input_name': self.input_name,
            'matched_name': self.matched_name,
            'method': self.method,
            'requires_review': self.requires_review,
            'notes': list(self.notes),
            'record': self.canonical,
        }
