"""Tests for the credential gate and the API key provider."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from veo_studio_mcp.config import get_config, update_config
from veo_studio_mcp.credentials import ApiKeyProvider, CredentialGate, CredentialState
from veo_studio_mcp.errors import CredentialError


def _provider(has: bool = True, select_error: Exception | None = None) -> MagicMock:
    provider = MagicMock()
    provider.has_active_credential = AsyncMock(return_value=has)
    provider.select_credential = AsyncMock(side_effect=select_error)
    provider.current_key.return_value = "key-1234"
    return provider


class TestCredentialGate:
    async def test_has_credential_records_state(self):
        gate = CredentialGate(_provider(has=True))
        assert await gate.has_credential() is True
        assert gate.state.present is True

    async def test_has_credential_false_marks_absent(self):
        gate = CredentialGate(_provider(has=False), CredentialState(present=True))
        assert await gate.has_credential() is False
        assert gate.state.present is False

    async def test_query_failure_fails_open_to_false(self):
        provider = _provider()
        provider.has_active_credential.side_effect = RuntimeError("bridge unavailable")
        gate = CredentialGate(provider)
        assert await gate.has_credential() is False

    async def test_request_credential_is_optimistic(self):
        gate = CredentialGate(_provider(has=False))
        assert await gate.request_credential() is True
        assert gate.state.present is True
        gate.provider.has_active_credential.assert_not_awaited()

    async def test_request_credential_failure(self):
        gate = CredentialGate(_provider(select_error=CredentialError("no key")))
        assert await gate.request_credential() is False
        assert gate.state.present is False

    def test_invalidate(self):
        gate = CredentialGate(_provider(), CredentialState(present=True))
        gate.invalidate()
        assert gate.state.present is False

    def test_state_is_shared(self):
        state = CredentialState()
        gate = CredentialGate(_provider(), state)
        state.mark_present()
        assert gate.state.present is True


class TestApiKeyProvider:
    async def test_env_key(self):
        provider = ApiKeyProvider()
        assert provider.current_key() == "test-key-not-real"
        assert await provider.has_active_credential() is True

    async def test_explicit_key_wins(self):
        provider = ApiKeyProvider()
        provider.set_api_key("  explicit-key  ")
        assert provider.current_key() == "explicit-key"

    async def test_no_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        provider = ApiKeyProvider()
        assert await provider.has_active_credential() is False
        with pytest.raises(CredentialError, match="No Gemini API key"):
            await provider.select_credential()

    async def test_select_reloads_env(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        provider = ApiKeyProvider()
        assert provider.current_key() == ""
        monkeypatch.setenv("GEMINI_API_KEY", "fresh-key")
        await provider.select_credential()
        assert provider.current_key() == "fresh-key"

    async def test_reselection_keeps_runtime_overrides(self, monkeypatch):
        update_config(video_model="veo-custom", poll_interval_seconds=1.5)
        monkeypatch.setenv("GEMINI_API_KEY", "rotated-key")

        assert await CredentialGate(ApiKeyProvider()).request_credential() is True

        cfg = get_config()
        assert cfg.video_model == "veo-custom"
        assert cfg.poll_interval_seconds == 1.5
        assert cfg.gemini_api_key == "rotated-key"
