"""Tests for the message dispatcher's round-trip and busy handling."""

import asyncio

import pytest

from conftest import spin
from affect_sync.conversation_log import ConversationLog
from affect_sync.dispatcher import MessageDispatcher
from affect_sync.emotion_sync import EmotionSyncController
from affect_sync.models import (
    ConnectivityStatus,
    EmotionalState,
    MalformedResponse,
    TransportFailure,
)
from affect_sync.parameter_store import ParameterStore

FALLBACK = "Backend unavailable."


class Harness:
    def __init__(self, reply, compute=None, initial_state=None):
        async def _no_compute(parameters):
            raise AssertionError("compute should not be called")

        self.store = ParameterStore()
        self.status = ConnectivityStatus()
        self.log = ConversationLog()
        self.controller = EmotionSyncController(
            self.store,
            self.status,
            compute or _no_compute,
            initial_state=initial_state or EmotionalState(2.0, 3.0),
        )
        self.dispatcher = MessageDispatcher(
            self.store, self.controller, self.log, self.status, reply,
            fallback_text=FALLBACK,
        )


def echo_reply():
    calls = []

    async def reply(text, parameters):
        calls.append((text, parameters))
        return f"echo: {text}"

    reply.calls = calls
    return reply


class TestDelivered:
    @pytest.mark.asyncio
    async def test_round_trip(self):
        reply = echo_reply()
        h = Harness(reply)

        answer = await h.dispatcher.submit("hello")

        assert answer.text == "echo: hello"
        assert answer.is_user is False
        assert answer.emotional_state == EmotionalState(2.0, 3.0)
        entries = h.log.all()
        assert [m.text for m in entries] == ["hello", "echo: hello"]
        assert entries[0].is_user is True
        assert entries[0].emotional_state is None
        assert h.dispatcher.busy is False

    @pytest.mark.asyncio
    async def test_reply_gets_current_parameters(self):
        reply = echo_reply()
        h = Harness(reply)
        h.store.set("valence", 1.5)

        await h.dispatcher.submit("hi")

        assert reply.calls[0][1] is h.store.get()

    @pytest.mark.asyncio
    async def test_n_submissions_interleave(self):
        h = Harness(echo_reply())
        texts = ["one", "two", "three", "four"]

        for text in texts:
            await h.dispatcher.submit(text)

        entries = h.log.all()
        assert len(entries) == 2 * len(texts)
        assert [m.is_user for m in entries] == [True, False] * len(texts)
        assert [m.text for m in entries[::2]] == texts

    @pytest.mark.asyncio
    async def test_user_entry_is_appended_before_reply(self, gated):
        h = Harness(gated)

        task = asyncio.create_task(h.dispatcher.submit("hello"))
        await spin()

        assert [m.text for m in h.log.all()] == ["hello"]
        assert h.dispatcher.busy is True

        gated.release(0, "hi there")
        await task
        assert len(h.log) == 2

    @pytest.mark.asyncio
    async def test_snapshot_is_taken_at_dispatch(self, gated):
        async def compute(parameters):
            return EmotionalState(7.0, 7.0)

        h = Harness(gated, compute=compute, initial_state=EmotionalState(1.0, 1.0))

        task = asyncio.create_task(h.dispatcher.submit("hello"))
        await spin()
        await h.controller.refresh()
        gated.release(0, "hi")
        answer = await task

        assert h.controller.state == EmotionalState(7.0, 7.0)
        assert answer.emotional_state == EmotionalState(1.0, 1.0)

    @pytest.mark.asyncio
    async def test_success_clears_failure_flag(self):
        h = Harness(echo_reply())
        h.status.mark_failed("earlier outage")

        await h.dispatcher.submit("retry", force=True)

        assert h.status.failed is False


class TestRejected:
    @pytest.mark.asyncio
    async def test_submission_while_busy_is_noop(self, gated):
        h = Harness(gated)

        first = asyncio.create_task(h.dispatcher.submit("first"))
        await spin()

        second = await h.dispatcher.submit("second")

        assert second is None
        assert len(h.log) == 1
        assert len(gated.calls) == 1

        gated.release(0, "ok")
        await first
        assert [m.text for m in h.log.all()] == ["first", "ok"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_text(self, text):
        reply = echo_reply()
        h = Harness(reply)

        assert await h.dispatcher.submit(text) is None
        assert len(h.log) == 0
        assert reply.calls == []

    @pytest.mark.asyncio
    async def test_offline_without_force(self):
        reply = echo_reply()
        h = Harness(reply)
        h.status.mark_failed("down")

        assert h.dispatcher.can_submit is False
        assert await h.dispatcher.submit("hello") is None
        assert len(h.log) == 0
        assert reply.calls == []


class TestFailed:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [TransportFailure("refused"), MalformedResponse("no reply"), RuntimeError("bug")],
    )
    async def test_failure_appends_fallback(self, error):
        async def reply(text, parameters):
            raise error

        h = Harness(reply)

        answer = await h.dispatcher.submit("hello")

        assert answer.text == FALLBACK
        assert answer.is_user is False
        assert answer.emotional_state == EmotionalState(2.0, 3.0)
        assert [m.text for m in h.log.all()] == ["hello", FALLBACK]
        assert h.status.failed is True
        assert h.dispatcher.busy is False

    @pytest.mark.asyncio
    async def test_recovery_after_failure(self):
        outcomes = [TransportFailure("refused"), "back online"]

        async def reply(text, parameters):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        h = Harness(reply)

        await h.dispatcher.submit("one")
        assert await h.dispatcher.submit("two") is None

        answer = await h.dispatcher.submit("two", force=True)

        assert answer.text == "back online"
        assert h.status.failed is False
        assert len(h.log) == 4

    def test_default_fallback_text(self):
        h = Harness(echo_reply())
        dispatcher = MessageDispatcher(h.store, h.controller, h.log, h.status, echo_reply())
        assert "unable to process messages" in dispatcher.fallback_text
