"""Infrastructure tools — runtime configuration."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import get_config, update_config
from ..errors import make_tool_error
from ..studio import get_studio
from ..tracing import trace

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {"gemini_api_key"}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    model: Annotated[str | None, Field(description="Veo model ID for new generations")] = None,
    poll_interval: Annotated[float | None, Field(gt=0, description="Seconds between status polls")] = None,
    poll_timeout: Annotated[float | None, Field(gt=0, description="Max seconds to wait for one job")] = None,
    max_jobs: Annotated[int | None, Field(ge=1, description="Job history size before eviction")] = None,
) -> dict:
    """Reconfigure the server at runtime. Calling with no arguments reports the config.

    Changes apply to jobs started afterwards; running jobs keep their settings.

    Returns:
        Dict with current_config (secrets removed) and active_jobs.
    """
    try:
        overrides: dict[str, object] = {
            "video_model": model,
            "poll_interval_seconds": poll_interval,
            "poll_timeout_seconds": poll_timeout,
            "max_jobs": max_jobs,
        }
        if any(v is not None for v in overrides.values()):
            update_config(**overrides)
        return {
            "current_config": _redacted_config(),
            "active_jobs": get_studio().active_jobs,
        }
    except Exception as exc:
        return make_tool_error(exc)
