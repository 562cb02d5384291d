"""Shared Gemini client pool, one client per API key."""

from __future__ import annotations

import logging

from google import genai

from .errors import CredentialError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key).

    Re-selecting a credential yields a different key and therefore a fresh
    client; jobs already in flight keep the client they started with.
    """

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str) -> genai.Client:
        """Return (or create) the shared client for *api_key*.

        Raises:
            CredentialError: If *api_key* is empty.
        """
        if not api_key:
            raise CredentialError("No Gemini API key — set GEMINI_API_KEY or run credential_select")
        if api_key not in cls._clients:
            cls._clients[api_key] = genai.Client(api_key=api_key)
            logger.info("Created Gemini client (key …%s)", api_key[-4:])
        return cls._clients[api_key]

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for client in list(cls._clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async client close failed", exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Sync client close failed", exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
