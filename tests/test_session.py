"""Tests for the replay session."""

import pytest

from narration_engine.exceptions import TransportError
from narration_engine.session import MAX_WHAT_IF_QUESTIONS, PlaybackFrame, ReplaySession
from narration_engine.timeline import CameraTarget, PlaybackState, RoundContext
from tests.factories import (
    FakeStream,
    FakeTransport,
    make_moment,
    make_settings,
    make_snapshots,
    settle,
    sse,
)


def _session(transport, manual_sleep, count=3, **kwargs) -> ReplaySession:
    kwargs.setdefault("settings", make_settings())
    return ReplaySession(make_snapshots(count), transport, sleep=manual_sleep, **kwargs)


class TestReplaySessionFrames:
    """Tests for frame emission."""

    @pytest.mark.asyncio
    async def test_frames_follow_moments(self, manual_sleep):
        """Test frames carry the snapshot, moment, camera target and names."""
        frames: list[PlaybackFrame] = []
        stream = FakeStream(
            [
                sse("moment", data=make_moment(0, narration="p1 entries A", zoom=2.0)),
                sse("moment", data=make_moment(1, what_if_questions=["What if p2 rotated?"])),
                sse("done"),
            ]
        )
        session = _session(FakeTransport(stream), manual_sleep, count=2, on_frame=frames.append)

        session.start()
        await session.timeline.wait()

        first_with_moment = next(f for f in frames if f.moment is not None)
        assert first_with_moment.narration == "TenZ entries A"
        assert first_with_moment.camera_target == CameraTarget(0.25, 0.75, 2.0)
        assert frames[-1].playback_state is PlaybackState.PLAYING

        await manual_sleep.tick()
        frame = frames[-1]
        assert frame.active_index == 1
        assert frame.snapshot.time_ms == 500
        assert frame.what_if_questions == ("What if Boaster rotated?",)
        assert frame.playback_state is PlaybackState.DONE
        assert frame.focus_version >= 2
        session.close()

    @pytest.mark.asyncio
    async def test_snapshot_only_frames_release_camera(self, manual_sleep):
        """Test frames without narration have no moment or camera target."""
        frames: list[PlaybackFrame] = []
        session = _session(
            FakeTransport(TransportError("down")), manual_sleep, on_frame=frames.append
        )

        session.start()
        await session.timeline.wait()
        await manual_sleep.tick()

        assert frames[-1].moment is None
        assert frames[-1].camera_target is None
        assert frames[-1].narration == ""
        assert frames[-1].active_index == 1
        assert manual_sleep.delays[0] == 0.1
        session.close()

    @pytest.mark.asyncio
    async def test_on_moments_forwarded(self, manual_sleep):
        """Test moment lists reach the session's subscriber."""
        published = []
        stream = FakeStream([sse("moment", data=make_moment(0)), sse("done")])
        session = _session(FakeTransport(stream), manual_sleep, on_moments=published.append)

        session.start()
        await session.timeline.wait()

        assert len(published[0]) == 1
        assert len(published[-1]) == 3
        session.close()

    @pytest.mark.asyncio
    async def test_what_if_questions_capped(self, manual_sleep):
        """Test a frame offers at most three follow-up questions."""
        questions = [f"What if p{i} rotated?" for i in range(5)]
        stream = FakeStream(
            [sse("moment", data=make_moment(0, what_if_questions=questions)), sse("done")]
        )
        session = _session(FakeTransport(stream), manual_sleep, count=1)

        session.start()
        await session.timeline.wait()

        assert len(session.frame.what_if_questions) == MAX_WHAT_IF_QUESTIONS
        assert session.frame.what_if_questions[1] == "What if TenZ rotated?"
        session.close()

    @pytest.mark.asyncio
    async def test_frame_property_on_empty_round(self, manual_sleep):
        """Test an empty round produces a frame without a snapshot."""
        session = _session(FakeTransport(), manual_sleep, count=0)
        session.start()
        frame = session.frame
        assert frame.snapshot is None
        assert frame.playback_state is PlaybackState.READY
        session.close()


class TestReplaySessionChat:
    """Tests for chat from a session."""

    @pytest.mark.asyncio
    async def test_ask_what_if_pauses_and_sends(self, manual_sleep):
        """Test a what-if question pauses playback and carries the context."""
        narration = FakeStream([sse("moment", data=make_moment(i)) for i in range(3)] + [sse("done")])
        chat_transport = FakeTransport(FakeStream([sse("text", data="It depends."), sse("done")]))
        transcripts = []
        session = _session(
            FakeTransport(narration),
            manual_sleep,
            chat_transport=chat_transport,
            on_chat=transcripts.append,
            context=RoundContext(map_name="ascent", attack_team="C9", defense_team="SEN"),
            events=[{"type": "kill", "killer": "p1"}],
        )
        session.start()
        await session.timeline.wait()
        await manual_sleep.tick()

        assistant_id = session.ask_what_if("**What if** p2 held?")
        await session.chat.wait()

        assert session.timeline.state is PlaybackState.PAUSED
        endpoint, payload = chat_transport.requests[0]
        assert endpoint == "/coaching/chat/stream"
        assert payload["message"] == "What if p2 held?"
        assert payload["map_context"] == "ascent"
        context = payload["simulation_context"]
        assert context["current_moment_index"] == 1
        assert context["current_narration"] == "Moment 1"
        assert context["events"] == [{"type": "kill", "killer": "p1"}]
        assert context["attack_team"] == "C9"
        assert transcripts[-1][-1].id == assistant_id
        assert transcripts[-1][-1].content == "It depends."
        session.close()

    @pytest.mark.asyncio
    async def test_ask_what_if_while_loading_holds_playback(self, manual_sleep):
        """Test a question asked before narration finishes keeps the index in place."""
        narration = FakeStream(live=True)
        chat_transport = FakeTransport(FakeStream([sse("text", data="Maybe."), sse("done")]))
        session = _session(FakeTransport(narration), manual_sleep, chat_transport=chat_transport)
        session.start()
        narration.push(sse("moment", data=make_moment(0)))
        await settle()

        session.ask_what_if("What if p1 waited?")
        narration.push(sse("moment", data=make_moment(1)), sse("done"))
        await session.timeline.wait()
        await session.chat.wait()

        assert session.timeline.state is PlaybackState.READY
        assert session.timeline.active_index == 0
        assert manual_sleep.pending == 0

        session.timeline.play()
        assert session.timeline.state is PlaybackState.PLAYING
        session.close()

    @pytest.mark.asyncio
    async def test_chat_errors_do_not_touch_playback(self, manual_sleep):
        """Test a failed chat leaves the timeline playing."""
        narration = FakeStream([sse("moment", data=make_moment(0)), sse("done")])
        session = _session(
            FakeTransport(narration),
            manual_sleep,
            count=5,
            chat_transport=FakeTransport(TransportError("HTTP 500")),
        )
        session.start()
        await session.timeline.wait()

        session.send_chat("why?")
        await session.chat.wait()

        assert session.chat.messages[-1].content == "Error: HTTP 500"
        assert session.timeline.state is PlaybackState.PLAYING
        assert session.timeline.error is None
        session.close()

    @pytest.mark.asyncio
    async def test_suggestions_use_names(self, manual_sleep):
        """Test suggested prompts resolve player names."""
        session = _session(FakeTransport(), manual_sleep)
        prompts = session.suggestions()
        assert [p.kind for p in prompts] == ["outcome", "tendencies"]
        assert session.resolver("p1 and p2") == "TenZ and Boaster"
        session.close()


class TestReplaySessionClose:
    """Tests for closing a session."""

    @pytest.mark.asyncio
    async def test_close_cancels_everything(self, manual_sleep):
        """Test close() cancels both streams and the timer."""
        narration = FakeStream(live=True)
        chat_stream = FakeStream(live=True)
        transport = FakeTransport(narration)
        chat_transport = FakeTransport(chat_stream)
        frames = []
        session = _session(
            transport, manual_sleep, chat_transport=chat_transport, on_frame=frames.append
        )
        session.start()
        session.send_chat("hi")
        await settle()

        session.close()
        frame_count = len(frames)
        narration.push(sse("moment", data=make_moment(0)))
        await settle()

        assert session.closed
        assert session.timeline.is_destroyed
        assert not session.chat.is_streaming
        assert transport.closed == 1
        assert chat_transport.closed == 1
        assert len(frames) == frame_count
        assert len(session.name_cache) == 0
        assert session.camera.target is None

    @pytest.mark.asyncio
    async def test_close_after_answered_chat_closes_its_read(self, manual_sleep):
        """Test a chat read the server leaves open after done does not outlive the session."""
        chat_stream = FakeStream(live=True)
        chat_transport = FakeTransport(chat_stream)
        session = _session(
            FakeTransport(FakeStream([sse("done")])), manual_sleep, chat_transport=chat_transport
        )
        session.start()
        session.send_chat("hi")
        chat_stream.push(sse("text", data="Trade the entry."), sse("done"))
        await settle()

        session.close()
        await session.chat.wait()

        assert chat_transport.closed == 1
        assert session.chat.messages[-1].content == "Trade the entry."

    @pytest.mark.asyncio
    async def test_async_context_manager(self, manual_sleep):
        """Test leaving the async with block closes the session."""
        stream = FakeStream(live=True)
        async with _session(FakeTransport(stream), manual_sleep) as session:
            handle = session.start()
            await settle()
        await handle.wait()

        assert session.closed
        assert handle.cancelled

    @pytest.mark.asyncio
    async def test_close_twice(self, manual_sleep):
        """Test close() is idempotent."""
        session = _session(FakeTransport(), manual_sleep)
        session.close()
        session.close()
        assert session.closed
