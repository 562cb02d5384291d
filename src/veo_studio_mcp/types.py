"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

AspectRatio = Literal["16:9", "9:16"]
Resolution = Literal["720p", "1080p"]
JobStatusFilter = Literal["pending", "completed", "failed"]

# ── Annotated aliases ────────────────────────────────────────────────────────

PromptParam = Annotated[str, Field(
    max_length=4000,
    description="Text description of the video to generate",
)]
ImageParam = Annotated[str | None, Field(
    description="Reference image as a data URL, bare base64, or a local file path",
)]
JobIdParam = Annotated[str, Field(min_length=1, description="Job ID returned by video_generate")]
