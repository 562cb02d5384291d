"""Result resolution — turns a finished operation into a local video file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote

import httpx
from google.genai import types

from .config import get_config
from .errors import CredentialError, MissingArtifact, TransportError, is_credential_error

logger = logging.getLogger(__name__)

VIDEO_MIME_TYPE = "video/mp4"


@dataclass
class VideoArtifact:
    """A downloaded video owned by one job for the lifetime of the server.

    The file stays on disk until ``release()`` is called, either explicitly
    or when the registry evicts the job or the server shuts down.
    """

    job_id: str
    uri: str
    path: Path
    size_bytes: int = 0
    mime_type: str = VIDEO_MIME_TYPE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    released: bool = False

    @property
    def filename(self) -> str:
        return self.path.name

    def release(self) -> bool:
        """Delete the local file. Returns False if already released."""
        if self.released:
            return False
        self.path.unlink(missing_ok=True)
        self.released = True
        logger.debug("Released %s", self.path)
        return True


def download_filename(job_id: str) -> str:
    """Filename a finished video is saved under."""
    return f"veo-{job_id}.mp4"


def artifact_uri(operation: types.GenerateVideosOperation) -> str:
    """Extract the first generated video's URI.

    Raises:
        MissingArtifact: If the operation carries no video URI.
    """
    response = operation.response
    videos = (response.generated_videos if response else None) or []
    video = videos[0].video if videos else None
    uri = video.uri if video else None
    if not uri:
        raise MissingArtifact(f"No video URI returned from operation {operation.name}")
    return uri


def authenticated_url(uri: str, api_key: str) -> str:
    """Append the URL-encoded API key as a ``key`` query parameter."""
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={quote(api_key, safe='')}"


async def download_artifact(
    uri: str,
    api_key: str,
    destination: Path,
    *,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Stream the video at *uri* into *destination*. Returns bytes written.

    A partially written file is removed on failure.

    Raises:
        CredentialError: If the download is refused for the credential.
        TransportError: For any other HTTP, network or disk write failure.
    """
    if timeout is None:
        timeout = get_config().download_timeout_seconds
    destination.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=timeout, transport=transport,
        ) as client:
            async with client.stream("GET", authenticated_url(uri, api_key)) as resp:
                if resp.is_error:
                    body = (await resp.aread()).decode("utf-8", "replace")
                    message = f"Artifact download failed ({resp.status_code}): {body[:200]}"
                    if is_credential_error(body):
                        raise CredentialError(message)
                    raise TransportError(message)
                with destination.open("wb") as f:
                    async for chunk in resp.aiter_bytes():
                        written += len(chunk)
                        f.write(chunk)
    except httpx.HTTPError as exc:
        destination.unlink(missing_ok=True)
        raise TransportError(f"Artifact download failed: {exc}") from exc
    except OSError as exc:
        destination.unlink(missing_ok=True)
        raise TransportError(f"Could not write {destination.name}: {exc}") from exc
    except BaseException:
        # cancellation included
        destination.unlink(missing_ok=True)
        raise
    return written


async def resolve(
    operation: types.GenerateVideosOperation,
    *,
    job_id: str,
    api_key: str,
    output_dir: Path | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> VideoArtifact:
    """Resolve a finished operation to a downloaded VideoArtifact.

    Args:
        operation: Operation that reported done without error.
        job_id: Owning job, used for the filename.
        api_key: Key appended to the download URL.
        output_dir: Directory for the file (defaults to config's output dir).
        transport: httpx transport override (tests).

    Raises:
        MissingArtifact: No video URI on the operation.
        CredentialError: The download was refused for the credential.
        TransportError: The download failed.
    """
    uri = artifact_uri(operation)
    directory = output_dir if output_dir is not None else get_config().output_path
    path = directory / download_filename(job_id)
    size = await download_artifact(uri, api_key, path, transport=transport)
    logger.info("Downloaded %s (%d bytes) to %s", job_id, size, path)
    return VideoArtifact(job_id=job_id, uri=uri, path=path, size_bytes=size)
