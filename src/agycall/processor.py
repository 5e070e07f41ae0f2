import logging
from typing import Optional

from pipecat.frames.frames import (
    EndFrame,
    Frame,
    InterimTranscriptionFrame,
    TranscriptionFrame,
    TTSSpeakFrame,
    TTSUpdateSettingsFrame,
)
from pipecat.processors.frame_processor import FrameDirection, FrameProcessor

from agycall.conversation import ConversationManager
from agycall.recognition import SpeechRecognizer
from agycall.voice import VoiceOptions, VoiceProvider

logger = logging.getLogger(__name__)


class FrameVoiceProvider(VoiceProvider):
    """Voice that speaks by pushing frames to the TTS service downstream.

    Synthesis and playback happen later in the pipeline, so ``speak`` returns
    as soon as the frame is queued.
    """

    name = "pipecat"

    def __init__(self, processor: Optional["ConversationProcessor"] = None):
        self.processor = processor
        self.voice_id = ""
        self.stopped = False
        self._voice_changed = False

    def is_supported(self) -> bool:
        return self.processor is not None

    async def speak(self, text: str, options: Optional[VoiceOptions] = None) -> None:
        if self.stopped:
            logger.debug("Voice stopped, not speaking: %r", text)
            return
        if self._voice_changed:
            # Switch voices right before the first line in the new voice.
            self._voice_changed = False
            await self.processor.push_frame(
                TTSUpdateSettingsFrame(settings={"voice": self.voice_id}), FrameDirection.DOWNSTREAM
            )
        await self.processor.push_frame(TTSSpeakFrame(text=text), FrameDirection.DOWNSTREAM)

    def stop(self) -> None:
        self.stopped = True

    def set_voice(self, voice_id: str) -> None:
        if voice_id == self.voice_id:
            return
        self.voice_id = voice_id
        self._voice_changed = True


class FrameRecognizer(SpeechRecognizer):
    """Deepgram STT runs upstream; start/stop only gate delivery of its transcriptions."""

    def start(self) -> None:
        self.active = True

    def stop(self) -> None:
        self.active = False


class ConversationProcessor(FrameProcessor):
    """Custom Pipecat processor that runs the scripted call agents.

    Sits right after STT in the pipeline:
      transport.input() -> STT -> [ConversationProcessor] -> TTS -> transport.output()

    Final transcriptions go to the ConversationManager; what the agent says
    comes back out as TTSSpeakFrames. Every other frame passes through.
    """

    def __init__(
        self,
        *,
        session_id: str,
        agent_type: str = "primary",
        transfer_delay: float = 2.0,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.voice = FrameVoiceProvider(self)
        self.recognizer = FrameRecognizer()
        self.manager = ConversationManager(
            self.voice,
            session_id,
            agent_type,
            recognizer=self.recognizer,
            transfer_delay=transfer_delay,
        )
        self._ended = False

    async def start_conversation(self):
        await self.manager.start_conversation()

    async def end_conversation(self):
        """Hang up: stop the agent and close the pipeline."""
        if self._ended:
            return
        self._ended = True
        await self.manager.end_conversation()
        await self.push_frame(EndFrame(), FrameDirection.DOWNSTREAM)

    async def process_frame(self, frame: Frame, direction: FrameDirection):
        await super().process_frame(frame, direction)

        if isinstance(frame, TranscriptionFrame) and frame.text.strip():
            await self._handle_transcription(frame)
        elif isinstance(frame, InterimTranscriptionFrame):
            # Partial speech; the manager only acts on final results.
            await self.recognizer.emit_result(frame.text, False)
            await self.push_frame(frame, direction)
        else:
            await self.push_frame(frame, direction)

    async def _handle_transcription(self, frame: TranscriptionFrame):
        text = frame.text.strip()
        delivered = await self.recognizer.emit_result(text, True, _confidence(frame))
        if not delivered:
            logger.info("[%s] Not listening, dropped: %s", self.manager.state.agent_type, text)


def _confidence(frame: TranscriptionFrame) -> float | None:
    # Deepgram puts the alternative's confidence in the raw result payload.
    result = getattr(frame, "result", None)
    try:
        return float(result.channel.alternatives[0].confidence)
    except (AttributeError, IndexError, TypeError, ValueError):
        return None
