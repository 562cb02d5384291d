"""Video job models — generation config and tool output schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from ..types import AspectRatio, Resolution

if TYPE_CHECKING:
    from ..registry import VideoJob


class GenerationConfig(BaseModel):
    """Per-job output settings, recorded at submission and never changed."""

    model_config = ConfigDict(frozen=True)

    aspect_ratio: AspectRatio = "16:9"
    resolution: Resolution = "720p"


class ArtifactInfo(BaseModel):
    """Local copy of a finished video."""

    filename: str
    path: str
    mime_type: str = "video/mp4"
    size_bytes: int = 0
    uri: str = Field(default="", description="Remote artifact URI (without credentials)")
    released: bool = False


class JobInfo(BaseModel):
    """Output schema for video_generate, video_extend and video_job_status."""

    job_id: str
    prompt: str
    status: str
    kind: str = "generate"
    source_job_id: str = ""
    config: GenerationConfig
    created_at: str
    completed_at: str | None = None
    progress: str = ""
    operation_name: str = ""
    artifact: ArtifactInfo | None = None
    error: str = ""

    @classmethod
    def from_job(cls, job: VideoJob) -> JobInfo:
        artifact = None
        if job.artifact is not None:
            artifact = ArtifactInfo(
                filename=job.artifact.filename,
                path=str(job.artifact.path),
                mime_type=job.artifact.mime_type,
                size_bytes=job.artifact.size_bytes,
                uri=job.artifact.uri,
                released=job.artifact.released,
            )
        return cls(
            job_id=job.job_id,
            prompt=job.prompt,
            status=job.status.value,
            kind=job.kind,
            source_job_id=job.source_job_id,
            config=job.config,
            created_at=job.created_at.isoformat(),
            completed_at=job.completed_at.isoformat() if job.completed_at else None,
            progress=job.progress,
            operation_name=job.operation_name,
            artifact=artifact,
            error=job.error,
        )


class JobList(BaseModel):
    """Output schema for video_jobs_list."""

    jobs: list[JobInfo] = Field(default_factory=list)
    total: int = 0
    last_error: str = ""


class CredentialInfo(BaseModel):
    """Output schema for credential_status and credential_select."""

    has_credential: bool
    selected: bool | None = None
