"""Generation workflow — credential gate → submit → poll → resolve → record.

``VideoStudio`` owns one ProjectRegistry and runs every job in its own
asyncio task, so several generations can be in flight at once. Failures of
one job never touch another job's entry.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from google import genai
from google.genai import types

from .client import GeminiClient
from .config import get_config
from .credentials import ApiKeyProvider, CredentialGate, CredentialState
from .errors import CredentialError, InvalidInput, JobCancelled, StudioError
from .images import ReferenceImage
from .models.video import GenerationConfig
from .polling import ProgressCallback, poll_operation
from .registry import JobStatus, ProjectRegistry, VideoJob
from .resolver import resolve
from .submission import EXTENSION_RESOLUTION, submit, submit_extension

logger = logging.getLogger(__name__)

StartOperation = Callable[[genai.Client], Awaitable[types.GenerateVideosOperation]]
ClientFactory = Callable[[str], genai.Client]


def validate_prompt(prompt: str | None) -> str:
    """Return the trimmed prompt or raise InvalidInput when blank."""
    text = (prompt or "").strip()
    if not text:
        raise InvalidInput("Please enter a prompt.")
    return text


class VideoStudio:
    """Orchestrates video jobs and keeps the session's job history.

    Args:
        gate: Credential gate consulted before each submission.
        registry: Job store (a new one is created when omitted).
        client_factory: Maps an API key to a Gemini client.
        output_dir: Where downloaded videos go (config default when omitted).
    """

    def __init__(
        self,
        gate: CredentialGate,
        *,
        registry: ProjectRegistry | None = None,
        client_factory: ClientFactory = GeminiClient.get,
        output_dir: Path | None = None,
    ) -> None:
        self.gate = gate
        self.registry = registry if registry is not None else ProjectRegistry()
        self.last_error = ""
        self._client_factory = client_factory
        self._output_dir = output_dir
        self._tasks: dict[str, asyncio.Task[VideoJob]] = {}
        self._cancel_events: dict[str, asyncio.Event] = {}

    # ── public API ──────────────────────────────────────────────────────────

    async def start_generation(
        self,
        prompt: str,
        config: GenerationConfig | None = None,
        *,
        start_image: ReferenceImage | None = None,
        end_image: ReferenceImage | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> VideoJob:
        """Validate, register a pending job, and launch its workflow task.

        Raises:
            InvalidInput: Blank prompt; no job is created.
            CredentialError: No credential is selected; no job is created.
        """
        text = validate_prompt(prompt)
        await self._ensure_credential()
        cfg = config or GenerationConfig()
        model = get_config().video_model

        async def start(client: genai.Client) -> types.GenerateVideosOperation:
            return await submit(
                client, text, cfg, model=model, start_image=start_image, end_image=end_image,
            )

        job = self.registry.create(text, cfg)
        self._launch(job, start, on_progress)
        return job

    async def start_extension(
        self,
        prompt: str,
        source_job_id: str,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> VideoJob:
        """Like ``start_generation`` but continues a completed job's video.

        Raises:
            InvalidInput: Blank prompt or the source job has no video.
            JobNotFound: Unknown source job.
            CredentialError: No credential is selected.
        """
        text = validate_prompt(prompt)
        source = self.registry.require(source_job_id)
        if source.status != JobStatus.COMPLETED or source.artifact is None:
            raise InvalidInput(f"Job {source_job_id} has no finished video to extend")
        await self._ensure_credential()
        cfg = GenerationConfig(
            aspect_ratio=source.config.aspect_ratio, resolution=EXTENSION_RESOLUTION,
        )
        model = get_config().extend_model
        video_uri = source.artifact.uri

        async def start(client: genai.Client) -> types.GenerateVideosOperation:
            return await submit_extension(
                client, text, video_uri, cfg.aspect_ratio, model=model,
            )

        job = self.registry.create(text, cfg, kind="extend", source_job_id=source_job_id)
        self._launch(job, start, on_progress)
        return job

    async def generate(self, prompt: str, config: GenerationConfig | None = None, **kwargs: Any) -> VideoJob:
        """Run a generation to its terminal state and return the job."""
        job = await self.start_generation(prompt, config, **kwargs)
        return await self.wait(job.job_id)

    async def extend(self, prompt: str, source_job_id: str, **kwargs: Any) -> VideoJob:
        """Run an extension to its terminal state and return the job."""
        job = await self.start_extension(prompt, source_job_id, **kwargs)
        return await self.wait(job.job_id)

    async def wait(self, job_id: str) -> VideoJob:
        """Wait for the job's workflow to finish and return the job."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.registry.require(job_id)

    def cancel(self, job_id: str) -> bool:
        """Ask a pending job to stop polling. Returns False if it isn't running."""
        self.registry.require(job_id)
        event = self._cancel_events.get(job_id)
        if event is None or event.is_set():
            return False
        event.set()
        logger.info("Cancellation requested for %s", job_id)
        return True

    @property
    def active_jobs(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> int:
        """Cancel in-flight jobs and release every downloaded video."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        released = self.registry.release_all()
        logger.info("Studio shutdown: cancelled %d job(s), released %d video(s)", len(tasks), released)
        return released

    # ── workflow ────────────────────────────────────────────────────────────

    async def _ensure_credential(self) -> None:
        if self.gate.state.present:
            return
        if not await self.gate.has_credential():
            raise CredentialError("No API key selected — run credential_select first")

    def _launch(
        self,
        job: VideoJob,
        start: StartOperation,
        on_progress: ProgressCallback | None,
    ) -> None:
        self.last_error = ""
        self._cancel_events[job.job_id] = asyncio.Event()
        task = asyncio.create_task(self._run(job, start, on_progress), name=f"veo-job-{job.job_id}")
        self._tasks[job.job_id] = task

    async def _run(
        self,
        job: VideoJob,
        start: StartOperation,
        on_progress: ProgressCallback | None,
    ) -> VideoJob:
        def progress(message: str) -> None:
            self.registry.set_progress(job.job_id, message)
            if on_progress is not None:
                on_progress(message)

        try:
            api_key = self.gate.provider.current_key()
            client = self._client_factory(api_key)
            operation = await start(client)
            job.operation_name = operation.name or ""
            done = await poll_operation(
                client,
                operation,
                on_progress=progress,
                cancel_event=self._cancel_events[job.job_id],
            )
            artifact = await resolve(
                done, job_id=job.job_id, api_key=api_key, output_dir=self._output_dir,
            )
        except CredentialError as exc:
            self._fail(job, exc)
            self.gate.invalidate()
            await self.gate.request_credential()
        except StudioError as exc:
            self._fail(job, exc)
        except asyncio.CancelledError:
            self._fail(job, JobCancelled("Job cancelled by server shutdown"))
            raise
        except Exception as exc:
            logger.exception("Unexpected failure in job %s", job.job_id)
            self._fail(job, exc)
        else:
            self.registry.update_status(job.job_id, JobStatus.COMPLETED, artifact=artifact)
            logger.info("Job %s completed → %s", job.job_id, artifact.path)
        finally:
            self._tasks.pop(job.job_id, None)
            self._cancel_events.pop(job.job_id, None)
        return job

    def _fail(self, job: VideoJob, error: Exception) -> None:
        message = str(error) or type(error).__name__
        logger.warning("Job %s failed: %s", job.job_id, message)
        self.last_error = message
        self.registry.update_status(job.job_id, JobStatus.FAILED, error=message)


_studio: VideoStudio | None = None


def get_studio() -> VideoStudio:
    """Return the process-wide studio, creating it on first access."""
    global _studio
    if _studio is None:
        provider = ApiKeyProvider()
        gate = CredentialGate(provider, CredentialState())
        _studio = VideoStudio(gate)
    return _studio


def reset_studio() -> None:
    """Forget the process-wide studio (testing utility)."""
    global _studio
    _studio = None
