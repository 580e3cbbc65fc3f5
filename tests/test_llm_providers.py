"""
Tests de utilidades de proveedores LLM.
"""

from unittest.mock import patch

import pytest

from tauschmatch.analysis.llm_providers import (
    GroqProvider,
    LLMQuotaError,
    clean_json_text,
    get_llm_provider,
    get_optional_llm_provider,
    is_quota_error,
)


class _SdkError(Exception):
    def __init__(self, message="", **attrs):
        super().__init__(message)
        for key, value in attrs.items():
            setattr(self, key, value)


class TestIsQuotaError:
    @pytest.mark.parametrize(
        "error",
        [
            LLMQuotaError("boom"),
            _SdkError("Too many requests", status_code=429),
            _SdkError("rate limited", code=429, status="RESOURCE_EXHAUSTED"),
            _SdkError("error", body={"error": {"code": "insufficient_quota"}}),
            _SdkError("error", code="billing_not_active"),
            _SdkError("You exceeded your current quota, please check your plan"),
            _SdkError("Billing hard limit reached"),
        ],
    )
    def test_detects_quota_and_billing(self, error):
        assert is_quota_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            TimeoutError(),
            ValueError("Invalid JSON"),
            _SdkError("Internal server error", status_code=500),
        ],
    )
    def test_other_errors_are_not_quota(self, error):
        assert is_quota_error(error) is False


class TestCleanJsonText:
    def test_strips_fences(self):
        assert clean_json_text('```json\n[{"id": "1"}]\n```') == '[{"id": "1"}]'

    def test_plain_text_untouched(self):
        assert clean_json_text('  {"a": 1} ') == '{"a": 1}'

    def test_none_is_empty(self):
        assert clean_json_text(None) == ""


class TestProviderFactory:
    def test_unknown_provider(self, settings):
        with patch("tauschmatch.analysis.llm_providers.get_settings", return_value=settings):
            with pytest.raises(ValueError):
                get_llm_provider(provider="openai")

    def test_groq_without_key_raises(self, settings):
        with patch("tauschmatch.analysis.llm_providers.get_settings", return_value=settings):
            with pytest.raises(ValueError):
                GroqProvider()

    def test_optional_provider_is_none_without_credentials(self):
        with patch(
            "tauschmatch.analysis.llm_providers.get_llm_provider",
            side_effect=ValueError("GROQ_API_KEY no configurada"),
        ):
            assert get_optional_llm_provider() is None
