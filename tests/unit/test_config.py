# ABOUTME: Unit tests for EnrichmentConfig defaults, validation, and environment loading.
# ABOUTME: LECTERN_* variables are cleared per test so the real environment never leaks in.

import os

import pytest
from pydantic import ValidationError

from lectern.config import ENV_PREFIX, EnrichmentConfig, env_var


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


class TestEnrichmentConfig:
    """Tests for defaults and validation."""

    def test_defaults(self) -> None:
        config = EnrichmentConfig()
        assert config.google_books_api_key is None
        assert config.request_timeout == 15.0
        assert config.cover_candidate_limit == 8
        assert config.per_provider_cover_limit == 4
        assert config.cache_by_content is False

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError, match="request_timeout"):
            EnrichmentConfig(request_timeout=0)

    def test_rejects_zero_limits(self) -> None:
        with pytest.raises(ValidationError, match="cover_candidate_limit"):
            EnrichmentConfig(cover_candidate_limit=0)

    def test_is_frozen(self) -> None:
        config = EnrichmentConfig()
        with pytest.raises(ValidationError):
            config.request_timeout = 3.0

    def test_model_copy_applies_overrides(self) -> None:
        config = EnrichmentConfig().model_copy(update={"request_timeout": 4.0})
        assert config.request_timeout == 4.0
        assert config.max_retries == 2

    def test_env_var_names(self) -> None:
        assert env_var("request_timeout") == "LECTERN_REQUEST_TIMEOUT"


class TestEnvironment:
    """Tests for reading LECTERN_* variables."""

    def test_reads_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_GOOGLE_BOOKS_API_KEY", "abc")
        monkeypatch.setenv("LECTERN_REQUEST_TIMEOUT", "7.5")
        monkeypatch.setenv("LECTERN_MAX_RETRIES", "0")
        monkeypatch.setenv("LECTERN_COVER_CANDIDATE_LIMIT", "12")
        monkeypatch.setenv("LECTERN_CACHE_BY_CONTENT", "yes")
        config = EnrichmentConfig()
        assert config.google_books_api_key == "abc"
        assert config.request_timeout == 7.5
        assert config.max_retries == 0
        assert config.cover_candidate_limit == 12
        assert config.cache_by_content is True

    def test_ignores_unprefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REQUEST_TIMEOUT", "1")
        assert EnrichmentConfig().request_timeout == 15.0

    def test_keyword_arguments_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_REQUEST_TIMEOUT", "7.5")
        assert EnrichmentConfig(request_timeout=3.0).request_timeout == 3.0

    def test_blank_api_key_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_GOOGLE_BOOKS_API_KEY", "  ")
        assert EnrichmentConfig().google_books_api_key is None

    def test_empty_variable_uses_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_REQUEST_TIMEOUT", "")
        assert EnrichmentConfig().request_timeout == 15.0

    def test_invalid_number_names_field(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_REQUEST_TIMEOUT", "soon")
        with pytest.raises(ValidationError, match="request_timeout"):
            EnrichmentConfig()

    def test_invalid_bool_names_field(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_CACHE_BY_CONTENT", "maybe")
        with pytest.raises(ValidationError, match="cache_by_content"):
            EnrichmentConfig()

    def test_out_of_range_limit_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LECTERN_THUMBNAIL_CONCURRENCY", "0")
        with pytest.raises(ValidationError, match="thumbnail_concurrency"):
            EnrichmentConfig()
