"""
Product name normalization package.
"""

from hazcom.normalization.text_normalizer import TextNormalizer, normalize_text, DEFAULT_MIN_TOKEN_LENGTH

__all__ = ["TextNormalizer", "normalize_text", "DEFAULT_MIN_TOKEN_LENGTH"]
