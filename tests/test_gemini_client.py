"""Tests for the Gemini transport: response parsing and error mapping."""

from __future__ import annotations

import json
import time
from unittest.mock import MagicMock, patch

import pytest

from backend.asset_insight import gemini_client
from backend.asset_insight.config import Settings
from backend.asset_insight.errors import (
    RemoteServiceError,
    ResponseFormatError,
    categorize_remote_error,
)
from backend.asset_insight.models import CollectionSummary
from conftest import SUMMARY_PAYLOAD


class TestParseStructured:
    def test_plain_json(self):
        summary = gemini_client.parse_structured(json.dumps(SUMMARY_PAYLOAD), CollectionSummary)
        assert len(summary.core_features) == 8
        assert summary.prompt_formula.startswith("风格:")

    def test_json_wrapped_in_fence(self):
        text = "```json\n" + json.dumps(SUMMARY_PAYLOAD, ensure_ascii=False) + "\n```"
        summary = gemini_client.parse_structured(text, CollectionSummary)
        assert summary.core_features[0] == "赛博朋克"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_response(self, text):
        with pytest.raises(ResponseFormatError, match="Empty"):
            gemini_client.parse_structured(text, CollectionSummary)

    def test_prose_without_json(self):
        with pytest.raises(ResponseFormatError, match="unstructured"):
            gemini_client.parse_structured("Sorry, I cannot help.", CollectionSummary)

    def test_malformed_json(self):
        with pytest.raises(ResponseFormatError, match="malformed"):
            gemini_client.parse_structured('{"coreFeatures": [}', CollectionSummary)

    def test_array_instead_of_object(self):
        with pytest.raises(ResponseFormatError, match="JSON object"):
            gemini_client.parse_structured("[1, 2]", CollectionSummary)

    def test_missing_required_field(self):
        with pytest.raises(ResponseFormatError, match="CollectionSummary") as exc:
            gemini_client.parse_structured('{"coreFeatures": ["a"]}', CollectionSummary)
        assert exc.value.raw_text == '{"coreFeatures": ["a"]}'


class TestGenerateJson:
    @pytest.mark.asyncio
    async def test_returns_text(self):
        with patch.object(gemini_client, "_generate_sync", return_value='{"ok": true}') as sync:
            text = await gemini_client.generate_json(
                "prompt", model="m", response_schema={"type": "OBJECT"}, timeout=5
            )
        assert text == '{"ok": true}'
        sync.assert_called_once_with("m", "prompt", {"type": "OBJECT"})

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_remote_service_error(self):
        boom = RuntimeError("429 RESOURCE_EXHAUSTED: quota exceeded")
        with patch.object(gemini_client, "_generate_sync", side_effect=boom):
            with pytest.raises(RemoteServiceError) as exc:
                await gemini_client.generate_json("p", model="m", response_schema={}, timeout=5)
        assert exc.value.category == "quota"
        assert exc.value.__cause__ is boom

    @pytest.mark.asyncio
    async def test_timeout(self):
        def slow(*_args):
            time.sleep(0.3)
            return "{}"

        with patch.object(gemini_client, "_generate_sync", side_effect=slow):
            with pytest.raises(RemoteServiceError, match="did not answer") as exc:
                await gemini_client.generate_json("p", model="m", response_schema={}, timeout=0.05)
        assert exc.value.category == "timeout"

    @pytest.mark.asyncio
    async def test_structured_validates(self):
        with patch.object(gemini_client, "_generate_sync", return_value=json.dumps(SUMMARY_PAYLOAD)):
            summary = await gemini_client.generate_structured(
                "p", schema=CollectionSummary, response_schema={}, model="m", timeout=5
            )
        assert isinstance(summary, CollectionSummary)


class TestGetClient:
    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(gemini_client, "get_settings", lambda: Settings(gemini_api_key=""))
        with pytest.raises(RemoteServiceError, match="GEMINI_API_KEY") as exc:
            gemini_client.get_client()
        assert exc.value.category == "auth"

    def test_client_cached_per_key(self, monkeypatch):
        monkeypatch.setattr(gemini_client, "_clients", {})
        with patch.object(gemini_client.genai, "Client", return_value=MagicMock()) as ctor:
            first = gemini_client.get_client()
            second = gemini_client.get_client()
        assert first is second
        ctor.assert_called_once_with(api_key="test-key-not-real")

    def test_generate_sync_requests_json(self, monkeypatch):
        fake = MagicMock()
        fake.models.generate_content.return_value = MagicMock(text='{"a": 1}')
        monkeypatch.setattr(gemini_client, "get_client", lambda: fake)

        text = gemini_client._generate_sync("gemini-x", "prompt", {"type": "OBJECT"})

        assert text == '{"a": 1}'
        kwargs = fake.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-x"
        assert kwargs["config"].response_mime_type == "application/json"


class TestCategorize:
    @pytest.mark.parametrize(
        "error, category",
        [
            (TimeoutError(), "timeout"),
            (RuntimeError("Deadline exceeded"), "timeout"),
            (RuntimeError("429 Too Many Requests"), "quota"),
            (RuntimeError("400 API key not valid"), "auth"),
            (RuntimeError("403 PERMISSION_DENIED"), "permission"),
            (ConnectionError("Connection refused"), "network"),
            (RuntimeError("something odd"), "unknown"),
        ],
    )
    def test_categories(self, error, category):
        assert categorize_remote_error(error) == category
