"""Polling engine — waits for a Veo operation to reach a terminal state.

Each job polls in its own coroutine; the delay between polls is an
``asyncio`` suspension so other jobs and tool calls keep running.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from google import genai
from google.genai import types

from .config import get_config
from .errors import (
    CredentialError,
    JobCancelled,
    OperationError,
    PollTimeout,
    classify_remote_error,
    is_credential_error,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

STARTED_MESSAGE = "Operation started. Polling for results..."
DONE_MESSAGE = "Video ready. Downloading..."

LOADING_MESSAGES: tuple[str, ...] = (
    "Initializing neural engines...",
    "Synthesizing visual fragments...",
    "Rendering cinematic lighting...",
    "Applying temporal consistency...",
    "Enhancing motion dynamics...",
    "Finalizing high-definition output...",
    "Almost there! Reframing scenes...",
)


class PollState(str, Enum):
    """Polling lifecycle for a single operation."""

    STARTED = "started"
    POLLING = "polling"
    DONE = "done"
    ERRORED = "errored"


def operation_error_message(operation: types.GenerateVideosOperation) -> str | None:
    """Return the operation's error message, or None when it has no error."""
    error = operation.error
    if not error:
        return None
    if isinstance(error, dict):
        return error.get("message") or "Operation failed"
    return getattr(error, "message", None) or str(error)


async def _pause(interval: float, cancel_event: asyncio.Event | None) -> None:
    """Sleep for *interval*, returning early with JobCancelled if cancelled."""
    if cancel_event is None:
        await asyncio.sleep(interval)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return
    raise JobCancelled("Job cancelled while polling")


class OperationPoller:
    """Drives one operation from Started to Done or Errored.

    Args:
        client: Gemini client that submitted the operation.
        interval: Seconds between status queries.
        timeout: Max seconds to poll before raising PollTimeout.
        max_attempts: Max status queries (0 = limited by *timeout* only).
        on_progress: Called with a human-readable status on every transition
            and after each unfinished poll.
        cancel_event: Set by the owner to stop polling.
    """

    def __init__(
        self,
        client: genai.Client,
        *,
        interval: float,
        timeout: float,
        max_attempts: int = 0,
        on_progress: ProgressCallback | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self.client = client
        self.interval = interval
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self.state = PollState.STARTED
        self.attempts = 0

    def _notify(self, message: str) -> None:
        if self.on_progress is not None:
            self.on_progress(message)

    def _transition(self, state: PollState, message: str) -> None:
        logger.debug("Poll state %s → %s", self.state.value, state.value)
        self.state = state
        self._notify(message)

    def _fail(self, error: Exception) -> Exception:
        self._transition(PollState.ERRORED, f"Generation failed: {error}")
        return error

    async def run(self, operation: types.GenerateVideosOperation) -> types.GenerateVideosOperation:
        """Poll *operation* until done and return the final snapshot.

        Raises:
            OperationError: The operation finished with an error payload.
            CredentialError: A poll or the error payload indicates a bad key.
            TransportError: A status query failed.
            PollTimeout: The time or attempt bound was exceeded.
            JobCancelled: The cancel event was set.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        self._transition(PollState.POLLING, STARTED_MESSAGE)

        while not operation.done:
            try:
                await _pause(self.interval, self.cancel_event)
            except JobCancelled as exc:
                raise self._fail(exc) from None

            self.attempts += 1
            try:
                operation = await self.client.aio.operations.get(operation)
            except Exception as exc:
                raise self._fail(classify_remote_error(exc)) from exc
            logger.debug("Poll %d for %s: done=%s", self.attempts, operation.name, operation.done)

            if operation.done:
                break

            if self.max_attempts and self.attempts >= self.max_attempts:
                raise self._fail(PollTimeout(
                    f"Operation {operation.name} not done after {self.attempts} polls"
                ))
            if loop.time() >= deadline:
                raise self._fail(PollTimeout(
                    f"Operation {operation.name} not done after {self.timeout:.0f}s"
                ))
            self._notify(LOADING_MESSAGES[(self.attempts - 1) % len(LOADING_MESSAGES)])

        message = operation_error_message(operation)
        if message is not None:
            error = CredentialError(message) if is_credential_error(message) else OperationError(message)
            raise self._fail(error)

        self._transition(PollState.DONE, DONE_MESSAGE)
        logger.info("Operation %s done after %d poll(s)", operation.name, self.attempts)
        return operation


async def poll_operation(
    client: genai.Client,
    operation: types.GenerateVideosOperation,
    *,
    interval: float | None = None,
    timeout: float | None = None,
    max_attempts: int | None = None,
    on_progress: ProgressCallback | None = None,
    cancel_event: asyncio.Event | None = None,
) -> types.GenerateVideosOperation:
    """Poll *operation* to completion with bounds taken from config by default."""
    cfg = get_config()
    poller = OperationPoller(
        client,
        interval=interval if interval is not None else cfg.poll_interval_seconds,
        timeout=timeout if timeout is not None else cfg.poll_timeout_seconds,
        max_attempts=max_attempts if max_attempts is not None else cfg.poll_max_attempts,
        on_progress=on_progress,
        cancel_event=cancel_event,
    )
    return await poller.run(operation)
