"""Tests for request building and job submission."""

from __future__ import annotations

import httpx
import pytest

from tests.conftest import make_operation
from veo_studio_mcp.errors import CredentialError, TransportError
from veo_studio_mcp.images import ReferenceImage
from veo_studio_mcp.models.video import GenerationConfig
from veo_studio_mcp.submission import build_video_config, submit, submit_extension

START = ReferenceImage(data=b"start", mime_type="image/png")
END = ReferenceImage(data=b"end", mime_type="image/jpeg")


class TestBuildVideoConfig:
    def test_basic(self):
        cfg = build_video_config(GenerationConfig(aspect_ratio="9:16", resolution="1080p"))
        assert cfg.number_of_videos == 1
        assert cfg.aspect_ratio == "9:16"
        assert cfg.resolution == "1080p"
        assert cfg.last_frame is None

    def test_end_image_becomes_last_frame(self):
        cfg = build_video_config(GenerationConfig(), END)
        assert cfg.last_frame.image_bytes == b"end"
        assert cfg.last_frame.mime_type == "image/jpeg"


class TestSubmit:
    async def test_single_call_with_payload(self, mock_genai_client):
        op = await submit(
            mock_genai_client, "a cat surfing", GenerationConfig(),
            model="veo-test", start_image=START, end_image=END,
        )

        assert op.name == make_operation().name
        mock_genai_client.aio.models.generate_videos.assert_awaited_once()
        kwargs = mock_genai_client.aio.models.generate_videos.await_args.kwargs
        assert kwargs["model"] == "veo-test"
        assert kwargs["prompt"] == "a cat surfing"
        assert kwargs["image"].image_bytes == b"start"
        assert kwargs["config"].last_frame.image_bytes == b"end"
        assert kwargs["config"].aspect_ratio == "16:9"
        assert kwargs["config"].resolution == "720p"

    async def test_no_images_by_default(self, mock_genai_client):
        await submit(mock_genai_client, "a cat", GenerationConfig(), model="veo-test")
        kwargs = mock_genai_client.aio.models.generate_videos.await_args.kwargs
        assert kwargs["image"] is None
        assert kwargs["config"].last_frame is None

    async def test_credential_failure(self, mock_genai_client):
        mock_genai_client.aio.models.generate_videos.side_effect = Exception(
            "404 NOT_FOUND. Requested entity was not found."
        )
        with pytest.raises(CredentialError):
            await submit(mock_genai_client, "a cat", GenerationConfig(), model="veo-test")

    async def test_network_failure_is_not_retried(self, mock_genai_client):
        mock_genai_client.aio.models.generate_videos.side_effect = httpx.ConnectError("refused")
        with pytest.raises(TransportError, match="refused"):
            await submit(mock_genai_client, "a cat", GenerationConfig(), model="veo-test")
        mock_genai_client.aio.models.generate_videos.assert_awaited_once()


class TestSubmitExtension:
    async def test_payload(self, mock_genai_client):
        await submit_extension(
            mock_genai_client, "and then it rains", "https://example/video", "9:16", model="veo-ext",
        )
        kwargs = mock_genai_client.aio.models.generate_videos.await_args.kwargs
        assert kwargs["model"] == "veo-ext"
        assert kwargs["video"].uri == "https://example/video"
        assert kwargs["config"].resolution == "720p"
        assert kwargs["config"].aspect_ratio == "9:16"
