"""
Tests for the label extraction client and response parsing.
"""
import json
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from hazcom.extraction import (
    AuthenticationError,
    BadRequestError,
    ExtractionAPIError,
    ExtractionParseError,
    LabelExtractionClient,
    ServiceUnavailableError,
    exponential_backoff_retry,
    extract_text_blocks,
    parse_extraction_response,
    strip_code_fences,
    strip_data_uri,
)


EXTRACTION = {
    "product_name": "CRC Brakleen",
    "signal_word": "DANGER",
    "pictogram_codes": ["GHS02"],
    "confidence": 0.88,
    "fields_uncertain": ["flash_point"],
}


def _response(status_code, body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    if body is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = body
    return response


def _message(text):
    return {"content": [{"type": "text", "text": text}]}


@pytest.fixture
def http_session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def client(config, http_session):
    return LabelExtractionClient(api_key="test-key", config=config, session=http_session, base_delay=0.01)


# ============================================================================
# Response Parsing Tests
# ============================================================================


class TestResponseParser:
    """Test suite for tolerant JSON decoding of model answers."""

    def test_bare_json(self):
        assert parse_extraction_response(json.dumps(EXTRACTION)) == EXTRACTION

    def test_fenced_json(self):
        """Test markdown code fences are removed."""
        text = "```json\n" + json.dumps(EXTRACTION) + "\n```"
        assert parse_extraction_response(text) == EXTRACTION

    def test_surrounding_prose(self):
        """Test text before and after the object is ignored."""
        text = "Here is the label data:\n" + json.dumps(EXTRACTION) + "\nLet me know if you need more."
        assert parse_extraction_response(text)["product_name"] == "CRC Brakleen"

    def test_nested_braces_kept(self):
        text = 'Result: {"first_aid": {"eyes": "Flush"}, "nfpa_diamond": {"health": 2}} done'
        assert parse_extraction_response(text) == {"first_aid": {"eyes": "Flush"}, "nfpa_diamond": {"health": 2}}

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_response(self, text):
        with pytest.raises(ExtractionParseError):
            parse_extraction_response(text)

    def test_invalid_json(self):
        with pytest.raises(ExtractionParseError) as exc_info:
            parse_extraction_response("{product_name: CRC}")
        assert exc_info.value.text == "{product_name: CRC}"

    def test_non_object_json(self):
        with pytest.raises(ExtractionParseError):
            parse_extraction_response("[1, 2, 3]")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_extraction_response("I could not read this label.")

    def test_strip_code_fences(self):
        assert strip_code_fences("```\n{}\n```") == "{}"

    def test_extract_text_blocks(self):
        """Test only text blocks are concatenated."""
        body = {
            "content": [
                {"type": "text", "text": '{"product_name": '},
                {"type": "tool_use", "text": "ignored"},
                {"type": "text", "text": '"Acetone"}'},
            ]
        }
        assert extract_text_blocks(body) == '{"product_name": "Acetone"}'

    @pytest.mark.parametrize("body", [{}, {"content": None}, None, "text"])
    def test_extract_text_blocks_without_content(self, body):
        assert extract_text_blocks(body) == ""

    @pytest.mark.parametrize("raw, expected", [
        ("data:image/jpeg;base64,AAAA", "AAAA"),
        ("data:image/png;base64,iVBOR", "iVBOR"),
        ("  AAAA  ", "AAAA"),
    ])
    def test_strip_data_uri(self, raw, expected):
        assert strip_data_uri(raw) == expected


# ============================================================================
# Retry Decorator Tests
# ============================================================================


class TestExponentialBackoff:
    """Test suite for the retry decorator."""

    def test_retries_transient_errors(self):
        """Test delays double between attempts."""
        calls = Mock(side_effect=[requests.ConnectionError("reset"), ServiceUnavailableError("503"), "ok"])
        wrapped = exponential_backoff_retry(max_retries=2, base_delay=1.0)(calls)

        with patch("hazcom.extraction.vision_client.time.sleep") as mock_sleep:
            assert wrapped() == "ok"

        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    def test_delay_capped(self):
        calls = Mock(side_effect=[requests.Timeout("slow")] * 3 + ["ok"])
        wrapped = exponential_backoff_retry(max_retries=3, base_delay=10.0, max_delay=15.0)(calls)

        with patch("hazcom.extraction.vision_client.time.sleep") as mock_sleep:
            wrapped()

        assert [c.args[0] for c in mock_sleep.call_args_list] == [10.0, 15.0, 15.0]

    def test_non_retryable_propagates(self):
        calls = Mock(side_effect=BadRequestError("bad", status_code=400))
        wrapped = exponential_backoff_retry(max_retries=2)(calls)

        with patch("hazcom.extraction.vision_client.time.sleep") as mock_sleep:
            with pytest.raises(BadRequestError):
                wrapped()

        assert calls.call_count == 1
        mock_sleep.assert_not_called()


# ============================================================================
# Client Tests
# ============================================================================


class TestLabelExtractionClient:
    """Test suite for the vision API client."""

    def test_requires_api_key(self, config, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(AuthenticationError):
            LabelExtractionClient(config=config)

    def test_api_key_from_environment(self, config, http_session, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")
        client = LabelExtractionClient(config=config, session=http_session)

        assert client.api_key == "env-key"
        assert http_session.headers["x-api-key"] == "env-key"
        assert http_session.headers["anthropic-version"] == "2023-06-01"

    def test_build_payload(self, client):
        payload = client.build_payload("data:image/jpeg;base64,AAAA", "image/jpeg")

        assert payload["model"] == client.model
        assert payload["max_tokens"] == 4000
        image, prompt = payload["messages"][0]["content"]
        assert image["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "AAAA"}
        assert prompt["type"] == "text"
        assert "fields_uncertain" in prompt["text"]

    def test_extract_success(self, client, http_session):
        """Test a fenced model answer is decoded into extraction fields."""
        http_session.post.return_value = _response(200, _message("```json\n" + json.dumps(EXTRACTION) + "\n```"))

        result = client.extract("AAAA", "image/png")

        assert result == EXTRACTION
        http_session.post.assert_called_once()
        assert http_session.post.call_args.kwargs["timeout"] == 60

    @pytest.mark.parametrize("image, mime_type", [("", "image/jpeg"), ("AAAA", ""), (None, None)])
    def test_missing_input(self, client, http_session, image, mime_type):
        with pytest.raises(ValueError):
            client.extract(image, mime_type)
        http_session.post.assert_not_called()

    def test_unauthorized_not_retried(self, client, http_session):
        http_session.post.return_value = _response(401, text="invalid x-api-key")

        with pytest.raises(AuthenticationError) as exc_info:
            client.extract("AAAA", "image/jpeg")

        assert exc_info.value.status_code == 401
        assert http_session.post.call_count == 1

    def test_bad_request_not_retried(self, client, http_session):
        http_session.post.return_value = _response(400, text="image too large")

        with pytest.raises(BadRequestError):
            client.extract("AAAA", "image/jpeg")
        assert http_session.post.call_count == 1

    def test_server_error_retried_then_success(self, client, http_session):
        """Test a 503 followed by a 200 returns the extraction."""
        http_session.post.side_effect = [
            _response(503),
            _response(200, _message(json.dumps(EXTRACTION))),
        ]

        with patch("hazcom.extraction.vision_client.time.sleep"):
            result = client.extract("AAAA", "image/jpeg")

        assert result["product_name"] == "CRC Brakleen"
        assert http_session.post.call_count == 2

    def test_rate_limit_exhausts_retries(self, client, http_session):
        http_session.post.return_value = _response(429)

        with patch("hazcom.extraction.vision_client.time.sleep"):
            with pytest.raises(ServiceUnavailableError) as exc_info:
                client.extract("AAAA", "image/jpeg")

        assert exc_info.value.status_code == 429
        assert http_session.post.call_count == 3

    def test_network_error_wrapped(self, client, http_session):
        http_session.post.side_effect = requests.ConnectionError("connection refused")

        with patch("hazcom.extraction.vision_client.time.sleep"):
            with pytest.raises(ExtractionAPIError):
                client.extract("AAAA", "image/jpeg")

        assert http_session.post.call_count == 3

    def test_other_http_error(self, client, http_session):
        http_session.post.return_value = _response(404)

        with pytest.raises(ExtractionAPIError) as exc_info:
            client.extract("AAAA", "image/jpeg")

        assert exc_info.value.status_code == 404
        assert http_session.post.call_count == 1

    def test_non_json_body(self, client, http_session):
        http_session.post.return_value = _response(200)

        with pytest.raises(ExtractionAPIError):
            client.extract("AAAA", "image/jpeg")

    def test_unparseable_model_answer(self, client, http_session):
        http_session.post.return_value = _response(200, _message("The label is too blurry to read."))

        with pytest.raises(ExtractionParseError):
            client.extract("AAAA", "image/jpeg")

    def test_context_manager_closes_session(self, config, http_session):
        with LabelExtractionClient(api_key="k", config=config, session=http_session):
            pass
        http_session.close.assert_called_once()
