"""Tests for the polling engine."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from tests.conftest import make_operation
from veo_studio_mcp.errors import (
    CredentialError,
    JobCancelled,
    OperationError,
    PollTimeout,
    TransportError,
)
from veo_studio_mcp.polling import (
    DONE_MESSAGE,
    LOADING_MESSAGES,
    STARTED_MESSAGE,
    OperationPoller,
    PollState,
    operation_error_message,
    poll_operation,
)


def _poller(client, **kwargs) -> OperationPoller:
    kwargs.setdefault("interval", 8.0)
    kwargs.setdefault("timeout", 1800.0)
    return OperationPoller(client, **kwargs)


class TestOperationPoller:
    @pytest.mark.parametrize("pending_polls", [0, 1, 3])
    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_n_pending_then_done(self, mock_sleep, mock_genai_client, pending_polls):
        """N not-done answers then done → N+1 queries, each after the fixed delay."""
        mock_genai_client.aio.operations.get.side_effect = (
            [make_operation()] * pending_polls + [make_operation(done=True)]
        )
        poller = _poller(mock_genai_client)

        result = await poller.run(make_operation())

        assert result.done is True
        assert mock_genai_client.aio.operations.get.await_count == pending_polls + 1
        assert [c.args[0] for c in mock_sleep.await_args_list] == [8.0] * (pending_polls + 1)
        assert poller.state == PollState.DONE
        assert poller.attempts == pending_polls + 1

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_already_done_handle_is_not_polled(self, mock_sleep, mock_genai_client):
        messages: list[str] = []
        poller = _poller(mock_genai_client, on_progress=messages.append)

        result = await poller.run(make_operation(done=True))

        assert result.done is True
        mock_genai_client.aio.operations.get.assert_not_awaited()
        mock_sleep.assert_not_awaited()
        assert poller.attempts == 0
        assert poller.state == PollState.DONE
        assert messages == [STARTED_MESSAGE, DONE_MESSAGE]

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_progress_messages(self, _mock_sleep, mock_genai_client):
        mock_genai_client.aio.operations.get.side_effect = [
            make_operation(), make_operation(), make_operation(done=True),
        ]
        messages: list[str] = []

        await _poller(mock_genai_client, on_progress=messages.append).run(make_operation())

        assert messages == [STARTED_MESSAGE, LOADING_MESSAGES[0], LOADING_MESSAGES[1], DONE_MESSAGE]

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_operation_error_verbatim(self, _mock_sleep, mock_genai_client):
        mock_genai_client.aio.operations.get.return_value = make_operation(
            done=True, error={"code": 3, "message": "Prompt rejected by safety filter"},
        )
        poller = _poller(mock_genai_client)

        with pytest.raises(OperationError) as exc_info:
            await poller.run(make_operation())

        assert str(exc_info.value) == "Prompt rejected by safety filter"
        assert poller.state == PollState.ERRORED

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_credential_message_in_error_payload(self, _mock_sleep, mock_genai_client):
        mock_genai_client.aio.operations.get.return_value = make_operation(
            done=True, error={"code": 5, "message": "Requested entity was not found."},
        )
        with pytest.raises(CredentialError):
            await _poller(mock_genai_client).run(make_operation())

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_poll_failure_propagates_immediately(self, _mock_sleep, mock_genai_client):
        mock_genai_client.aio.operations.get.side_effect = [
            make_operation(), httpx.ReadError("connection reset"), make_operation(done=True),
        ]
        messages: list[str] = []
        poller = _poller(mock_genai_client, on_progress=messages.append)

        with pytest.raises(TransportError, match="connection reset"):
            await poller.run(make_operation())

        assert mock_genai_client.aio.operations.get.await_count == 2
        assert poller.state == PollState.ERRORED
        assert messages[-1].startswith("Generation failed")

    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_max_attempts(self, _mock_sleep, mock_genai_client):
        mock_genai_client.aio.operations.get.return_value = make_operation()
        with pytest.raises(PollTimeout, match="after 3 polls"):
            await _poller(mock_genai_client, max_attempts=3).run(make_operation())
        assert mock_genai_client.aio.operations.get.await_count == 3

    async def test_timeout(self, mock_genai_client):
        mock_genai_client.aio.operations.get.return_value = make_operation()
        with pytest.raises(PollTimeout):
            await _poller(mock_genai_client, interval=0.01, timeout=0.03).run(make_operation())

    async def test_cancel_before_first_poll(self, mock_genai_client):
        event = asyncio.Event()
        event.set()
        poller = _poller(mock_genai_client, cancel_event=event)

        with pytest.raises(JobCancelled):
            await poller.run(make_operation())

        mock_genai_client.aio.operations.get.assert_not_awaited()
        assert poller.state == PollState.ERRORED

    async def test_cancel_interrupts_wait(self, mock_genai_client):
        """A long delay is cut short as soon as the event is set."""
        event = asyncio.Event()
        poller = _poller(mock_genai_client, interval=60.0, cancel_event=event)
        task = asyncio.create_task(poller.run(make_operation()))
        await asyncio.sleep(0.01)
        event.set()

        with pytest.raises(JobCancelled):
            await asyncio.wait_for(task, timeout=1.0)

    async def test_pollers_do_not_block_each_other(self, mock_genai_client):
        slow = _poller(mock_genai_client, interval=60.0, cancel_event=asyncio.Event())
        slow_task = asyncio.create_task(slow.run(make_operation()))

        result = await asyncio.wait_for(
            _poller(mock_genai_client, interval=0.001).run(make_operation()), timeout=1.0,
        )

        assert result.done is True
        assert not slow_task.done()
        slow.cancel_event.set()
        with pytest.raises(JobCancelled):
            await slow_task


class TestPollOperation:
    @patch("veo_studio_mcp.polling.asyncio.sleep", new_callable=AsyncMock)
    async def test_uses_config_interval(self, mock_sleep, mock_genai_client, monkeypatch):
        monkeypatch.setenv("VEO_POLL_INTERVAL", "3.5")
        await poll_operation(mock_genai_client, make_operation())
        mock_sleep.assert_awaited_once_with(3.5)


class TestOperationErrorMessage:
    def test_none_without_error(self):
        assert operation_error_message(make_operation(done=True)) is None

    def test_dict_without_message(self):
        assert operation_error_message(make_operation(done=True, error={"code": 13})) == "Operation failed"
