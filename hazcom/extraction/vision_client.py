"""
Vision API client for reading chemical labels.

Sends a label photo to the messages API with the extraction prompt and
returns the decoded extraction fields. Transient failures (network errors,
429, 5xx) are retried with exponential backoff; authentication and request
errors are raised immediately.
"""
import os
import re
import time
from functools import wraps
from typing import Any, Callable, Dict, Optional

import requests
from loguru import logger

from hazcom.extraction.response_parser import extract_text_blocks, parse_extraction_response
from hazcom.utils.config_manager import ConfigManager, get_config


class ExtractionAPIError(Exception):
    """Custom exception for extraction API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ExtractionAPIError):
    """API key missing or rejected (HTTP 401)."""

    pass


class BadRequestError(ExtractionAPIError):
    """Request rejected by the API (HTTP 400)."""

    pass


class ServiceUnavailableError(ExtractionAPIError):
    """Rate limiting or server-side failure; safe to retry."""

    pass


RETRYABLE_ERRORS = (requests.RequestException, ServiceUnavailableError)

LABEL_EXTRACTION_PROMPT = """You are a GHS chemical label data extraction system for workplace safety compliance. Read this product label photo and extract every visible field.

Return ONLY a JSON object (no markdown, no commentary) with this structure:
{
  "product_name": "Full product name as printed",
  "manufacturer": "Company name",
  "signal_word": "DANGER" or "WARNING" or null,
  "pictogram_codes": ["GHS02", "GHS07"],
  "hazard_statements": [{"code": "H226", "text": "Flammable liquid and vapor"}],
  "precautionary_statements": {
    "prevention": [{"code": "P210", "text": "..."}],
    "response": [{"code": "P301+P310", "text": "..."}],
    "storage": [{"code": "P403", "text": "..."}],
    "disposal": [{"code": "P501", "text": "..."}]
  },
  "first_aid": {"eyes": "...", "skin": "...", "inhalation": "...", "ingestion": "..."},
  "ppe_required": {"eyes": "...", "hands": "...", "respiratory": "...", "body": "..."},
  "physical_properties": {
    "appearance": "...", "odor": "...", "flash_point": "...",
    "ph": null, "boiling_point": "...", "vapor_pressure": "..."
  },
  "storage_requirements": "...",
  "incompatible_materials": ["Strong oxidizers"],
  "cas_numbers": ["67-64-1"],
  "un_number": "UN1090",
  "nfpa_diamond": {"health": 2, "fire": 3, "reactivity": 0, "special": null},
  "confidence": 0.95,
  "fields_uncertain": ["flash_point"]
}

Rules:
- Extract ONLY what is visible on the label. Do not invent data.
- Use null or an empty array for fields that are not visible.
- Pictograms use GHS01 (Exploding Bomb) through GHS09 (Environment).
- Set confidence between 0 and 1 from label clarity and completeness.
- List any field you are unsure about in fields_uncertain."""

_DATA_URI_PREFIX = re.compile(r"^data:[\w/+.-]+;base64,")


def exponential_backoff_retry(
    max_retries: int = 2, base_delay: float = 1.0, max_delay: float = 30.0
) -> Callable:
    """
    Decorator for exponential backoff retry logic.

    Only RETRYABLE_ERRORS are retried; anything else propagates at once.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == max_retries:
                        logger.error(f"Max retries ({max_retries}) exceeded: {e}")
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    logger.warning(
                        f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f}s..."
                    )
                    time.sleep(delay)

        return wrapper

    return decorator


def strip_data_uri(image_base64: str) -> str:
    """Remove a data-URI prefix (data:image/png;base64,) from base64 image data."""
    cleaned = _DATA_URI_PREFIX.sub("", image_base64.strip())
    if "," in cleaned:
        cleaned = cleaned.split(",", 1)[1]
    return cleaned


class LabelExtractionClient:
    """
    Client for the vision extraction API.

    Provides:
    - Session management with connection pooling
    - Retry with exponential backoff for transient failures
    - Typed errors for authentication and bad requests
    - Parsing of the model's JSON answer
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ConfigManager] = None,
        session: Optional[requests.Session] = None,
        base_delay: float = 1.0,
    ):
        """
        Initialize the extraction client.

        Args:
            api_key: API key (falls back to the ANTHROPIC_API_KEY environment variable)
            config: ConfigManager with the `extraction` section (shared default if None)
            session: requests Session to use (a new one if None)
            base_delay: Initial retry delay in seconds

        Raises:
            AuthenticationError: If no API key is available
        """
        self.config = config or get_config()
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise AuthenticationError("ANTHROPIC_API_KEY not configured")

        self.api_url = self.config.get_extraction_param("api_url")
        self.api_version = self.config.get_extraction_param("api_version")
        self.model = self.config.get_extraction_param("model")
        self.max_tokens = self.config.get_extraction_param("max_tokens")
        self.timeout = self.config.get_extraction_param("timeout_seconds")
        self.max_retries = self.config.get_extraction_param("max_retries")

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": self.api_version,
            }
        )

        self._send = exponential_backoff_retry(
            max_retries=self.max_retries, base_delay=base_delay
        )(self._post_once)

        logger.info(f"Initialized label extraction client for model {self.model}")

    def build_payload(self, image_base64: str, mime_type: str) -> Dict[str, Any]:
        """Build the messages-API request body for one label image."""
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": mime_type,
                                "data": strip_data_uri(image_base64),
                            },
                        },
                        {"type": "text", "text": LABEL_EXTRACTION_PROMPT},
                    ],
                }
            ],
        }

    def extract(self, image_base64: str, mime_type: str) -> Dict[str, Any]:
        """
        Extract label fields from a base64-encoded photo.

        Args:
            image_base64: Image data, optionally with a data-URI prefix
            mime_type: Image media type (image/jpeg, image/png...)

        Returns:
            Raw extraction fields, ready for reconciliation

        Raises:
            ValueError: If the image or mime type is missing
            AuthenticationError: On HTTP 401
            BadRequestError: On HTTP 400
            ExtractionAPIError: On any other failure after retries
            ExtractionParseError: If the answer is not a JSON object
        """
        if not image_base64 or not mime_type:
            raise ValueError("Missing image or mime type")

        payload = self.build_payload(image_base64, mime_type)
        logger.debug(
            f"Sending label image ({len(payload['messages'][0]['content'][0]['source']['data'])} "
            f"base64 chars, {mime_type}) to {self.api_url}"
        )

        try:
            body = self._send(payload)
        except requests.RequestException as e:
            raise ExtractionAPIError(f"Extraction request failed: {e}") from e

        text = extract_text_blocks(body)
        logger.debug(f"Raw extraction text: {text[:500]}")

        extraction = parse_extraction_response(text)
        logger.info(
            f"Extracted label '{extraction.get('product_name')}' "
            f"(confidence={extraction.get('confidence')})"
        )
        return extraction

    def _post_once(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.session.post(self.api_url, json=payload, timeout=self.timeout)

        if response.status_code == 401:
            raise AuthenticationError("Invalid ANTHROPIC_API_KEY", status_code=401)
        if response.status_code == 400:
            raise BadRequestError(
                f"Bad request to extraction API: {response.text[:200]}", status_code=400
            )
        if response.status_code == 429 or response.status_code >= 500:
            raise ServiceUnavailableError(
                f"Extraction API unavailable ({response.status_code})",
                status_code=response.status_code,
            )
        if not response.ok:
            raise ExtractionAPIError(
                f"Extraction API error ({response.status_code})", status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExtractionAPIError(f"Extraction API returned non-JSON body: {e}") from e

    def close(self):
        """Close the session and cleanup resources."""
        self.session.close()
        logger.debug("Closed label extraction client session")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
