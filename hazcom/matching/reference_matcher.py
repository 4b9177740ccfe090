"""
Reference catalog matching for scanned product names.

Vision extraction often returns partial or reordered product names
("CRC Brakleen" for "CRC Brakleen Brake Parts Cleaner"). Two rules decide
whether a name refers to a catalog entry:

1. Containment: either normalized name contains the other.
2. Shared words: at least SHARED_WORD_THRESHOLD meaningful tokens of the
   input have a catalog token where one contains the other.

The catalog is scanned in order and the first entry satisfying either rule
wins, so ambiguous names resolve deterministically.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from hazcom.catalog import load_catalog
from hazcom.matching.match_result import CatalogMatch
from hazcom.normalization.text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)

# Two shared short words ("all", "purpose") must not merge different products
SHARED_WORD_THRESHOLD = 3


class ReferenceMatcher:
    """
    Heuristic name matcher over an ordered reference catalog.

    Substring and token-overlap rules only; no edit distance. The shared-word
    count depends on whitespace tokenization and the minimum token length, so
    both are fixed by the normalizer passed in.
    """

    def __init__(self,
                 normalizer: Optional[TextNormalizer] = None,
                 shared_word_threshold: int = SHARED_WORD_THRESHOLD):
        """
        Initialize the reference matcher.

        Args:
            normalizer: TextNormalizer instance (creates new if None)
            shared_word_threshold: Minimum shared tokens for the fallback rule
        """
        self.normalizer = normalizer or TextNormalizer()
        self.shared_word_threshold = shared_word_threshold

    def match(self, text: Optional[str],
              catalog: Optional[Sequence[Dict[str, Any]]] = None) -> Optional[CatalogMatch]:
        """
        Find the first catalog entry matching a product name.

        Args:
            text: Product name read off the label
            catalog: Ordered catalog entries (bundled catalog if None)

        Returns:
            CatalogMatch for the first matching entry, None otherwise
        """
        normalized_input = self.normalizer.normalize(text)
        if not normalized_input:
            return None

        entries = load_catalog() if catalog is None else catalog

        for index, entry in enumerate(entries):
            normalized_name = self.normalizer.normalize(entry.get('product_name'))
            if not normalized_name:
                continue

            if normalized_name in normalized_input or normalized_input in normalized_name:
                logger.debug(f"Containment match: '{normalized_input}' ~ '{normalized_name}'")
                return CatalogMatch(entry=entry, method='containment', catalog_index=index)

            shared = self.count_shared_words(normalized_input, normalized_name)
            if shared >= self.shared_word_threshold:
                logger.debug(
                    f"Shared-word match ({shared}): '{normalized_input}' ~ '{normalized_name}'"
                )
                return CatalogMatch(
                    entry=entry,
                    method='shared_words',
                    catalog_index=index,
                    shared_words=shared,
                )

        return None

    def count_shared_words(self, text1: str, text2: str) -> int:
        """
        Count tokens of text1 that overlap some token of text2.

        A token overlaps when either token is a substring of the other.
        Each token of text1 is counted at most once.

        Args:
            text1: Input name (counted side)
            text2: Catalog name

        Returns:
            Number of overlapping tokens
        """
        tokens1 = self.normalizer.tokenize(text1)
        tokens2 = self.normalizer.tokenize(text2)

        shared = 0
        for token in tokens1:
            if any(other in token or token in other for other in tokens2):
                shared += 1
        return shared


def match_reference_entry(extracted_name: Optional[str],
                          catalog: Optional[List[Dict[str, Any]]] = None) -> Optional[Dict[str, Any]]:
    """
    Return the first reference catalog entry matching a product name.

    Empty or whitespace-only names never match.

    Args:
        extracted_name: Product name from the extraction
        catalog: Ordered catalog entries (bundled catalog if None)

    Returns:
        The matched catalog entry, or None
    """
    result = ReferenceMatcher().match(extracted_name, catalog)
    return result.entry if result else None
