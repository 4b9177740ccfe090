"""
Label extraction package.

Boundary adapter around the vision model that reads chemical labels:
- vision_client: HTTP client with retry/backoff and typed API errors
- response_parser: tolerant JSON decoding of the model's answer
"""

from hazcom.extraction.response_parser import (
    ExtractionParseError,
    parse_extraction_response,
    extract_text_blocks,
    strip_code_fences,
)
from hazcom.extraction.vision_client import (
    LabelExtractionClient,
    ExtractionAPIError,
    AuthenticationError,
    BadRequestError,
    ServiceUnavailableError,
    exponential_backoff_retry,
    strip_data_uri,
)

__all__ = [
    "ExtractionParseError",
    "parse_extraction_response",
    "extract_text_blocks",
    "strip_code_fences",
    "LabelExtractionClient",
    "ExtractionAPIError",
    "AuthenticationError",
    "BadRequestError",
    "ServiceUnavailableError",
    "exponential_backoff_retry",
    "strip_data_uri",
]
