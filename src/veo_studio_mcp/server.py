"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .studio import get_studio
from .tools.credentials import credential_server
from .tools.infra import infra_server
from .tools.video import video_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — stops jobs, deletes videos, closes clients."""
    tracing.setup()
    yield {}
    await get_studio().shutdown()
    closed = await GeminiClient.close_all()
    tracing.shutdown()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "veo-studio",
    instructions=(
        "Cinematic video generation with Google Veo. Select an API key, start "
        "a generation with video_generate, then poll video_job_status until the "
        "job is completed and its video file is available."
    ),
    lifespan=_lifespan,
)

app.mount(credential_server)
app.mount(video_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``veo-studio-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
