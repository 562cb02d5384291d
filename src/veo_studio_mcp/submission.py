"""Job submission — builds a Veo request and starts the remote operation."""

from __future__ import annotations

import logging

from google import genai
from google.genai import types

from .errors import classify_remote_error
from .images import ReferenceImage
from .models.video import GenerationConfig
from .types import AspectRatio

logger = logging.getLogger(__name__)

# Extensions are only offered at 720p.
EXTENSION_RESOLUTION = "720p"


def build_video_config(
    config: GenerationConfig,
    end_image: ReferenceImage | None = None,
) -> types.GenerateVideosConfig:
    """Translate a GenerationConfig into the SDK's request config."""
    video_config = types.GenerateVideosConfig(
        number_of_videos=1,
        resolution=config.resolution,
        aspect_ratio=config.aspect_ratio,
    )
    if end_image is not None:
        video_config.last_frame = end_image.to_genai()
    return video_config


async def submit(
    client: genai.Client,
    prompt: str,
    config: GenerationConfig,
    *,
    model: str,
    start_image: ReferenceImage | None = None,
    end_image: ReferenceImage | None = None,
) -> types.GenerateVideosOperation:
    """Start a text/image-to-video operation.

    Exactly one remote call is made; failures are not retried.

    Args:
        client: Gemini client bound to the selected API key.
        prompt: Non-empty prompt (validated by the caller).
        config: Aspect ratio and resolution.
        model: Veo model ID.
        start_image: Optional first frame.
        end_image: Optional last frame.

    Returns:
        The in-progress operation handle.

    Raises:
        CredentialError: If the API rejects the credential.
        TransportError: For any other failure of the call.
    """
    try:
        operation = await client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            image=start_image.to_genai() if start_image is not None else None,
            config=build_video_config(config, end_image),
        )
    except Exception as exc:
        raise classify_remote_error(exc) from exc
    logger.info(
        "Submitted %s (%s, %s) → %s",
        model, config.aspect_ratio, config.resolution, operation.name,
    )
    return operation


async def submit_extension(
    client: genai.Client,
    prompt: str,
    video_uri: str,
    aspect_ratio: AspectRatio,
    *,
    model: str,
) -> types.GenerateVideosOperation:
    """Start an operation that continues a previously generated video."""
    try:
        operation = await client.aio.models.generate_videos(
            model=model,
            prompt=prompt,
            video=types.Video(uri=video_uri),
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                resolution=EXTENSION_RESOLUTION,
                aspect_ratio=aspect_ratio,
            ),
        )
    except Exception as exc:
        raise classify_remote_error(exc) from exc
    logger.info("Submitted extension of %s → %s", video_uri, operation.name)
    return operation
