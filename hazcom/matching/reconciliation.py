"""
Label reconciliation engine.

Turns one raw label extraction into a canonical chemical record:

  Step 1: Match the extracted product_name against the reference catalog
  Step 2: Merge the extraction over the matched entry (or keep it as-is)
  Step 3: Attach the passthrough fields confidence and fields_uncertain

Malformed or partial extractions are never fatal. Missing fields simply keep
the catalog value (matched) or stay unset (unmatched); nothing is invented.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from hazcom.matching.match_result import ReconciliationResult
from hazcom.matching.merge import merge_canonical
from hazcom.matching.reference_matcher import ReferenceMatcher
from hazcom.normalization.text_normalizer import TextNormalizer
from hazcom.utils.config_manager import ConfigManager, get_config

logger = logging.getLogger(__name__)

# Safety blocks the presentation layer must flag when absent
SAFETY_CRITICAL_FIELDS = ('first_aid', 'ppe_required')


class LabelReconciler:
    """
    Reconciles AI-extracted label data with the reference catalog.

    Stateless apart from configuration; safe to reuse across scans.
    """

    def __init__(self,
                 catalog: Optional[List[Dict[str, Any]]] = None,
                 matcher: Optional[ReferenceMatcher] = None,
                 config: Optional[ConfigManager] = None):
        """
        Initialize the reconciler.

        Args:
            catalog: Ordered catalog entries (bundled catalog if None)
            matcher: ReferenceMatcher instance (built from config if None)
            config: ConfigManager (shared default if None)
        """
        self.config = config or get_config()
        self.catalog = catalog

        if matcher is None:
            normalizer = TextNormalizer(
                min_token_length=self.config.get_matching_param('min_token_length')
            )
            matcher = ReferenceMatcher(
                normalizer=normalizer,
                shared_word_threshold=self.config.get_matching_param('shared_word_threshold'),
            )
        self.matcher = matcher
        self.review_confidence = float(self.config.get_matching_param('review_confidence'))
        self.default_confidence = self.config.get_matching_param('default_confidence')

    def reconcile(self, extracted: Optional[Mapping[str, Any]]) -> ReconciliationResult:
        """
        Reconcile one extraction.

        Args:
            extracted: Raw extraction fields; any key may be missing or empty

        Returns:
            ReconciliationResult holding the canonical record
        """
        extracted = extracted if isinstance(extracted, Mapping) else {}

        raw_name = extracted.get('product_name')
        input_name = raw_name if isinstance(raw_name, str) else ''

        match = self.matcher.match(input_name, self.catalog)
        notes: List[str] = []

        if match:
            logger.info(
                f"Matched '{input_name}' to catalog entry '{match.product_name}' via {match.method}"
            )
            canonical = merge_canonical(match.entry, extracted)
        else:
            logger.info(f"No catalog match for '{input_name}', keeping raw extraction")
            canonical = merge_canonical(None, extracted)
            notes.append("No reference catalog match: record contains label data only")
            for field_name in SAFETY_CRITICAL_FIELDS:
                if not canonical.get(field_name):
                    notes.append(f"{field_name} not available: needs manual review")

        confidence = extracted.get('confidence')
        canonical['confidence'] = confidence if confidence is not None else self.default_confidence
        canonical['fields_uncertain'] = list(extracted.get('fields_uncertain') or [])

        result = ReconciliationResult(
            input_name=input_name,
            canonical=canonical,
            match=match,
            review_confidence=self.review_confidence,
            notes=notes,
        )

        logger.debug(
            f"Reconciled '{input_name}': confidence={canonical['confidence']}, "
            f"uncertain={canonical['fields_uncertain']}, review={result.requires_review}"
        )
        return result


def reconcile_label(extracted: Optional[Mapping[str, Any]],
                    catalog: Optional[List[Dict[str, Any]]] = None) -> ReconciliationResult:
    """Reconcile one extraction with a default-configured LabelReconciler."""
    return LabelReconciler(catalog=catalog).reconcile(extracted)
