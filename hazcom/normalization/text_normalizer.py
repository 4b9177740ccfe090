"""
Text normalization module for product names.

Label product names arrive from vision extraction with arbitrary casing and
padding ("  CRC BRAKLEEN ", "crc brakleen brake parts cleaner"). Matching
compares names after a deliberately small normalization: case folding and a
trim. Tokenization is whitespace splitting with short connective tokens
("of", "&", "2x") dropped.
"""

from typing import List, Optional

# Tokens shorter than this are treated as connective noise
DEFAULT_MIN_TOKEN_LENGTH = 3


class TextNormalizer:
    """
    Normalizes product names to the form used by the reference matcher.

    Normalization is intentionally limited to lowercasing and trimming;
    punctuation and inner whitespace are preserved so that hyphenated brand
    tokens ("heavy-duty", "wd-40") survive as single tokens.
    """

    def __init__(self, min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH):
        """
        Args:
            min_token_length: Shortest token kept by tokenize()
        """
        self.min_token_length = min_token_length

    def normalize(self, text: Optional[str]) -> str:
        """
        Lowercase and trim a product name.

        Returns an empty string for None or non-string input.
        """
        if not text or not isinstance(text, str):
            return ""
        return text.lower().strip()

    def tokenize(self, text: Optional[str]) -> List[str]:
        """
        Split a name into meaningful tokens.

        The text is normalized first, split on any whitespace run, and tokens
        shorter than min_token_length are discarded.
        """
        normalized = self.normalize(text)
        return [token for token in normalized.split() if len(token) >= self.min_token_length]

    def is_blank(self, text: Optional[str]) -> bool:
        """True when the text normalizes to an empty string."""
        return self.normalize(text) == ""


def normalize_text(text: Optional[str]) -> str:
    """Convenience wrapper around TextNormalizer().normalize()."""
    return TextNormalizer().normalize(text)
