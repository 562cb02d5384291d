"""Credential gate — tracks whether a usable Gemini API key is selected."""

from __future__ import annotations

import logging
from typing import Protocol

from .config import get_config, reload_api_key
from .errors import CredentialError

logger = logging.getLogger(__name__)


class CredentialState:
    """Single "has active credential" flag, shared by the gate and the studio."""

    def __init__(self, present: bool = False) -> None:
        self._present = present

    @property
    def present(self) -> bool:
        return self._present

    def mark_present(self) -> None:
        self._present = True

    def mark_absent(self) -> None:
        self._present = False


class CredentialProvider(Protocol):
    """Source of API keys. Selection happens outside the workflow's control."""

    async def has_active_credential(self) -> bool: ...

    async def select_credential(self) -> None: ...

    def current_key(self) -> str: ...


class ApiKeyProvider:
    """Provides the Gemini API key from an explicit value or the environment.

    An explicitly selected key wins over ``GEMINI_API_KEY``. Selecting
    without an explicit key re-reads the environment and the user's
    ``.env`` file, so a key added there is picked up.
    """

    def __init__(self, api_key: str = "") -> None:
        self._explicit_key = api_key

    def set_api_key(self, api_key: str) -> None:
        self._explicit_key = api_key.strip()

    def current_key(self) -> str:
        return self._explicit_key or get_config().gemini_api_key

    async def has_active_credential(self) -> bool:
        return bool(self.current_key())

    async def select_credential(self) -> None:
        if not self._explicit_key:
            reload_api_key()
        if not self.current_key():
            raise CredentialError(
                "No Gemini API key found — pass api_key or set GEMINI_API_KEY "
                "in ~/.config/veo-studio-mcp/.env"
            )
        logger.info("Selected Gemini API key …%s", self.current_key()[-4:])


class CredentialGate:
    """Mediates whether the workflow believes it may call the Veo endpoints."""

    def __init__(self, provider: CredentialProvider, state: CredentialState | None = None) -> None:
        self.provider = provider
        self.state = state if state is not None else CredentialState()

    async def has_credential(self) -> bool:
        """Query the provider and record the answer.

        A provider failure is logged and reported as ``False``.
        """
        try:
            present = await self.provider.has_active_credential()
        except Exception:
            logger.warning("Credential check failed", exc_info=True)
            return False
        if present:
            self.state.mark_present()
        else:
            self.state.mark_absent()
        return present

    async def request_credential(self) -> bool:
        """Run the provider's selection flow.

        On success the state is set to present without verifying the key;
        the first real API call is what proves it valid.
        """
        try:
            await self.provider.select_credential()
        except Exception as exc:
            logger.warning("Credential selection failed: %s", exc)
            return False
        self.state.mark_present()
        return True

    def invalidate(self) -> None:
        """Mark the current credential unusable after a credential failure."""
        logger.warning("Credential invalidated — reselection required")
        self.state.mark_absent()
