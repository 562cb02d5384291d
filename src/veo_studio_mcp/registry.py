"""In-memory project registry — the session's list of video jobs."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .config import get_config
from .errors import InvalidTransition, JobNotFound
from .models.video import GenerationConfig
from .resolver import VideoArtifact

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Video job lifecycle states."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass
class VideoJob:
    """One user-initiated generation and its outcome."""

    job_id: str
    prompt: str
    config: GenerationConfig
    kind: str = "generate"
    source_job_id: str = ""
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    progress: str = ""
    operation_name: str = ""
    artifact: VideoArtifact | None = None
    error: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def new_job_id() -> str:
    """12-char hex job identifier."""
    return uuid.uuid4().hex[:12]


class ProjectRegistry:
    """Owns every VideoJob of the session, keyed by job ID.

    Holds at most ``max_jobs`` entries; when full, the oldest terminal job
    is evicted and its video released. Pending jobs are never evicted.
    """

    def __init__(self, max_jobs: int | None = None) -> None:
        self._jobs: dict[str, VideoJob] = {}
        self._max_jobs = max_jobs

    @property
    def max_jobs(self) -> int:
        return self._max_jobs if self._max_jobs is not None else get_config().max_jobs

    def create(
        self,
        prompt: str,
        config: GenerationConfig,
        *,
        kind: str = "generate",
        source_job_id: str = "",
    ) -> VideoJob:
        """Build a pending job with a fresh ID and append it."""
        job_id = new_job_id()
        while job_id in self._jobs:
            job_id = new_job_id()
        job = VideoJob(
            job_id=job_id,
            prompt=prompt,
            config=config,
            kind=kind,
            source_job_id=source_job_id,
        )
        return self.append(job)

    def append(self, job: VideoJob) -> VideoJob:
        """Register *job*, evicting old terminal jobs if at capacity.

        Raises:
            ValueError: If a job with the same ID is already registered.
        """
        if job.job_id in self._jobs:
            raise ValueError(f"Duplicate job ID {job.job_id}")
        self._evict()
        self._jobs[job.job_id] = job
        return job

    def get(self, job_id: str) -> VideoJob | None:
        return self._jobs.get(job_id)

    def require(self, job_id: str) -> VideoJob:
        """Like ``get`` but raises JobNotFound for unknown IDs."""
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        return job

    def update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        artifact: VideoArtifact | None = None,
        error: str | None = None,
    ) -> VideoJob:
        """Move a pending job to a terminal status.

        Raises:
            JobNotFound: Unknown job ID.
            InvalidTransition: The job is already terminal or *status* is pending.
        """
        job = self.require(job_id)
        if job.is_terminal:
            raise InvalidTransition(
                f"Job {job_id} is already {job.status.value}; cannot move to {status.value}"
            )
        if status not in TERMINAL_STATUSES:
            raise InvalidTransition(f"Job {job_id} can only move to completed or failed")

        job.status = status
        job.completed_at = datetime.now(timezone.utc)
        if artifact is not None:
            job.artifact = artifact
        if error is not None:
            job.error = error
        return job

    def set_progress(self, job_id: str, message: str) -> None:
        job = self._jobs.get(job_id)
        if job is not None and not job.is_terminal:
            job.progress = message

    def list_jobs(self, status: JobStatus | None = None) -> list[VideoJob]:
        """Jobs newest first, optionally filtered by status."""
        jobs = list(reversed(self._jobs.values()))
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return jobs

    def release(self, job_id: str) -> bool:
        """Release the job's local video. Returns False if there was none to release."""
        job = self.require(job_id)
        if job.artifact is None:
            return False
        return job.artifact.release()

    def release_all(self) -> int:
        """Release every job's video. Returns count released."""
        return sum(1 for job in self._jobs.values() if job.artifact and job.artifact.release())

    def clear(self) -> int:
        """Release all videos and forget all jobs. Returns count cleared."""
        self.release_all()
        count = len(self._jobs)
        self._jobs.clear()
        return count

    def _evict(self) -> int:
        evicted = 0
        while len(self._jobs) >= self.max_jobs:
            terminal = [j for j in self._jobs.values() if j.is_terminal]  # insertion order
            if not terminal:
                logger.warning(
                    "Registry over capacity (%d) with only pending jobs", len(self._jobs),
                )
                break
            oldest = terminal[0]
            if oldest.artifact is not None:
                oldest.artifact.release()
            del self._jobs[oldest.job_id]
            evicted += 1
            logger.info("Evicted job %s", oldest.job_id)
        return evicted

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs
