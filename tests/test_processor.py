import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from pipecat.processors.frame_processor import FrameDirection
from pipecat.frames.frames import (
    EndFrame,
    InterimTranscriptionFrame,
    TextFrame,
    TranscriptionFrame,
    TTSSpeakFrame,
    TTSUpdateSettingsFrame,
)

from agycall.processor import ConversationProcessor, _confidence
from agycall.scripts import BREAKDOWN_SCRIPT, PRIMARY_SCRIPT
from agycall.voice import VOICE_CONFIGS


@pytest.fixture
def processor():
    proc = ConversationProcessor(session_id="CA_test", agent_type="primary", transfer_delay=0)
    # Mock push_frame to capture output
    proc.push_frame = AsyncMock()
    return proc


def _pushed(processor, frame_type):
    return [c.args[0] for c in processor.push_frame.call_args_list if isinstance(c.args[0], frame_type)]


def _spoken(processor):
    return [f.text for f in _pushed(processor, TTSSpeakFrame)]


class TestStart:
    @pytest.mark.asyncio
    async def test_greeting_pushed_as_tts(self, processor):
        await processor.start_conversation()
        spoken = _spoken(processor)
        assert len(spoken) == 1
        assert spoken[0] in PRIMARY_SCRIPT.greeting
        assert processor.manager.state.is_listening

    @pytest.mark.asyncio
    async def test_voice_selected_before_greeting(self, processor):
        await processor.start_conversation()
        first = processor.push_frame.call_args_list[0].args[0]
        assert isinstance(first, TTSUpdateSettingsFrame)
        assert first.settings == {"voice": VOICE_CONFIGS["primary"]["voice_id"]}


class TestTranscriptions:
    @pytest.mark.asyncio
    async def test_transcription_drives_transfer(self, processor):
        await processor.start_conversation()
        await processor.process_frame(
            TranscriptionFrame(text="my truck broke down on the highway", user_id="", timestamp=""),
            FrameDirection.DOWNSTREAM,
        )
        state = processor.manager.state
        assert state.agent_type == "breakdown"
        assert state.current_step == "greeting"
        spoken = _spoken(processor)
        assert spoken[1] in PRIMARY_SCRIPT.transitions["to_breakdown"]
        assert spoken[2] in BREAKDOWN_SCRIPT.greeting

    @pytest.mark.asyncio
    async def test_voice_switches_on_transfer(self, processor):
        await processor.start_conversation()
        await processor.process_frame(
            TranscriptionFrame(text="I need a tow", user_id="", timestamp=""),
            FrameDirection.DOWNSTREAM,
        )
        settings = _pushed(processor, TTSUpdateSettingsFrame)
        assert settings[-1].settings == {"voice": VOICE_CONFIGS["breakdown"]["voice_id"]}
        # the switch lands between the transition phrase and the new greeting
        frames = [c.args[0] for c in processor.push_frame.call_args_list]
        idx = frames.index(settings[-1])
        assert frames[idx + 1].text in BREAKDOWN_SCRIPT.greeting

    @pytest.mark.asyncio
    async def test_transcription_not_passed_downstream(self, processor):
        await processor.start_conversation()
        frame = TranscriptionFrame(text="hello", user_id="", timestamp="")
        await processor.process_frame(frame, FrameDirection.DOWNSTREAM)
        pushed = [c.args[0] for c in processor.push_frame.call_args_list]
        assert frame not in pushed

    @pytest.mark.asyncio
    async def test_interim_passes_through_without_a_turn(self, processor):
        await processor.start_conversation()
        frame = InterimTranscriptionFrame(text="my tru", user_id="", timestamp="")
        await processor.process_frame(frame, FrameDirection.DOWNSTREAM)
        processor.push_frame.assert_called_with(frame, FrameDirection.DOWNSTREAM)
        assert processor.manager.state.turn_count == 0

    @pytest.mark.asyncio
    async def test_dropped_before_start(self, processor):
        await processor.process_frame(
            TranscriptionFrame(text="hello", user_id="", timestamp=""),
            FrameDirection.DOWNSTREAM,
        )
        assert processor.manager.state.turn_count == 0
        assert _spoken(processor) == []

    @pytest.mark.asyncio
    async def test_other_frames_pass_through(self, processor):
        frame = TextFrame(text="hi")
        await processor.process_frame(frame, FrameDirection.DOWNSTREAM)
        processor.push_frame.assert_called_once_with(frame, FrameDirection.DOWNSTREAM)


class TestEnd:
    @pytest.mark.asyncio
    async def test_end_pushes_end_frame_once(self, processor):
        await processor.start_conversation()
        await processor.end_conversation()
        await processor.end_conversation()
        assert len(_pushed(processor, EndFrame)) == 1
        assert processor.manager.state.is_listening is False
        assert processor.voice.stopped

    @pytest.mark.asyncio
    async def test_nothing_spoken_after_end(self, processor):
        await processor.start_conversation()
        await processor.end_conversation()
        await processor.process_frame(
            TranscriptionFrame(text="my truck broke down", user_id="", timestamp=""),
            FrameDirection.DOWNSTREAM,
        )
        assert len(_spoken(processor)) == 1


class TestConfidence:
    def test_reads_deepgram_alternative(self):
        frame = TranscriptionFrame(text="hi", user_id="", timestamp="")
        frame.result = SimpleNamespace(channel=SimpleNamespace(alternatives=[SimpleNamespace(confidence=0.93)]))
        assert _confidence(frame) == 0.93

    def test_missing_result(self):
        frame = TranscriptionFrame(text="hi", user_id="", timestamp="")
        frame.result = None
        assert _confidence(frame) is None
