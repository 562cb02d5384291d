"""Video generation tools — 6 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..images import decode_optional_image
from ..models.video import GenerationConfig, JobInfo, JobList
from ..registry import JobStatus
from ..studio import get_studio
from ..tracing import trace
from ..types import AspectRatio, ImageParam, JobIdParam, JobStatusFilter, PromptParam, Resolution

logger = logging.getLogger(__name__)
video_server = FastMCP("video")

WaitParam = Annotated[bool, Field(
    description="Block until the job finishes instead of returning the pending job immediately",
)]


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="video_generate", span_type="TOOL")
async def video_generate(
    prompt: PromptParam,
    aspect_ratio: AspectRatio = "16:9",
    resolution: Resolution = "720p",
    start_image: ImageParam = None,
    end_image: ImageParam = None,
    wait: WaitParam = False,
) -> dict:
    """Generate a video with Veo from a prompt and optional start/end frames.

    The job is registered as pending and runs in the background; poll it
    with video_job_status, or pass wait=True to block until it finishes.

    Args:
        prompt: Description of the video. Must not be blank.
        aspect_ratio: "16:9" (landscape) or "9:16" (portrait).
        resolution: "720p" or "1080p".
        start_image: Optional first frame (data URL, base64, or file path).
        end_image: Optional last frame (data URL, base64, or file path).
        wait: Block until the job reaches completed or failed.

    Returns:
        Dict matching JobInfo, or a tool error.
    """
    studio = get_studio()
    try:
        job = await studio.start_generation(
            prompt,
            GenerationConfig(aspect_ratio=aspect_ratio, resolution=resolution),
            start_image=decode_optional_image(start_image),
            end_image=decode_optional_image(end_image),
        )
        if wait:
            job = await studio.wait(job.job_id)
        return JobInfo.from_job(job).model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    )
)
@trace(name="video_extend", span_type="TOOL")
async def video_extend(
    prompt: PromptParam,
    source_job_id: JobIdParam,
    wait: WaitParam = False,
) -> dict:
    """Continue a completed video with a new prompt (720p, same aspect ratio).

    Args:
        prompt: What should happen next in the video.
        source_job_id: A completed job whose video is extended.
        wait: Block until the job reaches completed or failed.

    Returns:
        Dict matching JobInfo, or a tool error.
    """
    studio = get_studio()
    try:
        job = await studio.start_extension(prompt, source_job_id)
        if wait:
            job = await studio.wait(job.job_id)
        return JobInfo.from_job(job).model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="video_job_status", span_type="TOOL")
async def video_job_status(job_id: JobIdParam) -> dict:
    """Return the current state of one job, including progress and video path."""
    try:
        job = get_studio().registry.require(job_id)
        return JobInfo.from_job(job).model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="video_jobs_list", span_type="TOOL")
async def video_jobs_list(status: JobStatusFilter | None = None) -> dict:
    """List this session's jobs, newest first, with the most recent error.

    Args:
        status: Only return jobs in this state.
    """
    studio = get_studio()
    jobs = studio.registry.list_jobs(JobStatus(status) if status else None)
    return JobList(
        jobs=[JobInfo.from_job(j) for j in jobs],
        total=len(jobs),
        last_error=studio.last_error,
    ).model_dump(mode="json")


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="video_job_cancel", span_type="TOOL")
async def video_job_cancel(job_id: JobIdParam) -> dict:
    """Stop polling a pending job. The job ends as failed."""
    try:
        cancelled = get_studio().cancel(job_id)
        return {"job_id": job_id, "cancelled": cancelled}
    except Exception as exc:
        return make_tool_error(exc)


@video_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="video_job_release", span_type="TOOL")
async def video_job_release(job_id: JobIdParam) -> dict:
    """Delete a job's downloaded video file once it is no longer needed."""
    try:
        released = get_studio().registry.release(job_id)
        return {"job_id": job_id, "released": released}
    except Exception as exc:
        return make_tool_error(exc)
