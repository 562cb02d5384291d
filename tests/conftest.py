"""Shared test fixtures for veo-studio-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import types

import veo_studio_mcp.config as cfg_mod

ARTIFACT_URI = "https://generativelanguage.googleapis.com/v1beta/files/vid123:download?alt=media"


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function.
    """
    return getattr(tool, "fn", tool)


def make_operation(
    *,
    done: bool = False,
    uri: str | None = ARTIFACT_URI,
    error: dict | None = None,
    name: str = "models/veo/operations/op123",
) -> types.GenerateVideosOperation:
    """Build a Veo operation snapshot as the SDK would return it."""
    response = None
    if done and error is None:
        videos = [types.GeneratedVideo(video=types.Video(uri=uri))] if uri else []
        response = types.GenerateVideosResponse(generated_videos=videos)
    return types.GenerateVideosOperation(name=name, done=done, error=error, response=response)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("VEO_TRACING_ENABLED", "false")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/veo-studio-mcp/.env."""
    monkeypatch.setattr(
        "veo_studio_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _isolate_output_dir(tmp_path, monkeypatch):
    """Write downloaded videos into the test's temp directory."""
    monkeypatch.setenv("VEO_OUTPUT_DIR", str(tmp_path / "videos"))


@pytest.fixture(autouse=True)
def _clean_config():
    """Reset the config singleton between tests."""
    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _clean_studio():
    """Forget the process-wide studio between tests."""
    from veo_studio_mcp.studio import reset_studio

    reset_studio()
    yield
    reset_studio()


@pytest.fixture()
def fast_polling(monkeypatch):
    """Poll every millisecond so workflow tests finish quickly."""
    monkeypatch.setenv("VEO_POLL_INTERVAL", "0.001")
    cfg_mod._config = None


@pytest.fixture()
def mock_genai_client():
    """A stand-in genai.Client with async generate_videos and operations.get."""
    client = MagicMock()
    client.aio.models.generate_videos = AsyncMock(return_value=make_operation())
    client.aio.operations.get = AsyncMock(return_value=make_operation(done=True))
    return client
