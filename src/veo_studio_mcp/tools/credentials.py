"""Credential tools — check and select the Gemini API key."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..credentials import ApiKeyProvider
from ..errors import make_tool_error
from ..models.video import CredentialInfo
from ..studio import get_studio
from ..tracing import trace

credential_server = FastMCP("credentials")


@credential_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="credential_status", span_type="TOOL")
async def credential_status() -> dict:
    """Report whether a Gemini API key is currently selected."""
    has_credential = await get_studio().gate.has_credential()
    return CredentialInfo(has_credential=has_credential).model_dump(mode="json")


@credential_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="credential_select", span_type="TOOL")
async def credential_select(
    api_key: Annotated[str | None, Field(
        description="Gemini API key from a paid GCP project. Omit to reload GEMINI_API_KEY from env/.env",
    )] = None,
) -> dict:
    """Select the API key used for video generation.

    The key is not verified here; the next generation call proves it valid.
    """
    gate = get_studio().gate
    try:
        if api_key:
            if not isinstance(gate.provider, ApiKeyProvider):
                raise ValueError("The active credential provider does not accept explicit keys")
            gate.provider.set_api_key(api_key)
        selected = await gate.request_credential()
        return CredentialInfo(has_credential=gate.state.present, selected=selected).model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)
