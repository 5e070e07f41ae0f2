import asyncio
import inspect
import logging
import random
import time
from typing import Any, Callable, Optional

from agycall.agent_types import agent_id_for
from agycall.recognition import SpeechRecognizer
from agycall.scripts import GREETING
from agycall.session import (
    AGENT_CONFIDENCE,
    DEFAULT_USER_CONFIDENCE,
    CallLog,
    ConversationMessage,
    ConversationState,
    TranscriptEntry,
)
from agycall.state_machine import StateMachine
from agycall.voice import VoiceProvider, VoiceProviderError, voice_config, voice_options

logger = logging.getLogger(__name__)

DEFAULT_TRANSFER_DELAY_S = 2.0


class ConversationManager:
    """Drives one call: greeting, turns, transfers between agents, hang-up.

    Flow per caller utterance:
    1. Record it (message callback, transcript, ``user_input`` log)
    2. Feed it to StateMachine.process()
    3. If the machine asks for a transfer: say the transition phrase, hand off
       to the target agent and greet with its script
    4. Otherwise say the reply; the machine has already advanced the step

    Turns are serialized: an utterance that arrives mid-turn (or mid-transfer)
    waits until the previous one has been spoken in full.
    """

    def __init__(
        self,
        voice: VoiceProvider,
        session_id: str,
        agent_type: str,
        agent_id: str | None = None,
        *,
        recognizer: SpeechRecognizer | None = None,
        machine: StateMachine | None = None,
        transfer_delay: float = DEFAULT_TRANSFER_DELAY_S,
        rng: random.Random | None = None,
    ):
        self.voice = voice
        self.recognizer = recognizer
        self.machine = machine or StateMachine(rng=rng)
        self.transfer_delay = transfer_delay
        self.state = ConversationState(
            session_id=session_id,
            agent_type=agent_type,
            agent_id=agent_id if agent_id is not None else agent_id_for(agent_type),
        )
        self._turn_lock = asyncio.Lock()
        self._observer_tasks: set[asyncio.Task] = set()
        self._on_state_update: Optional[Callable[[ConversationState], Any]] = None
        self._on_message: Optional[Callable[[ConversationMessage], Any]] = None
        self._on_transfer_request: Optional[Callable[[str], Any]] = None

        if recognizer is not None:
            recognizer.set_callbacks(self._on_recognition_result, self._on_recognition_error)

    def set_callbacks(
        self,
        *,
        on_state_update: Optional[Callable[[ConversationState], Any]] = None,
        on_message: Optional[Callable[[ConversationMessage], Any]] = None,
        on_transfer_request: Optional[Callable[[str], Any]] = None,
    ) -> None:
        """Register observers. Any of them may be sync or async.

        ``on_transfer_request`` is awaited before the handoff completes.
        Async ``on_state_update`` and ``on_message`` observers run as
        background tasks so that state bookkeeping never blocks a turn.
        """
        self._on_state_update = on_state_update
        self._on_message = on_message
        self._on_transfer_request = on_transfer_request

    # ── Lifecycle ──

    async def start_conversation(self) -> None:
        if not self.voice.is_supported():
            raise VoiceProviderError(f"Voice provider {self.voice.name!r} is not supported")

        self.state.started_at = time.time()
        self._apply_agent_voice()
        await self.speak(self.machine.greeting(self.state.agent_type))
        self.start_listening()

    async def end_conversation(self) -> None:
        """Hang up from any step: stop listening and any speech in progress."""
        if self.state.has_ended:
            return
        self.stop_listening()
        self.voice.stop()
        self.state.ended_at = time.time()
        self._add_log("conversation_ended", "Conversation ended by user")
        logger.info(
            "[%s] Conversation %s ended at step %s",
            self.state.agent_type,
            self.state.session_id,
            self.state.current_step,
        )

    def start_listening(self) -> None:
        if self.state.is_listening:
            return
        self.state.is_listening = True
        if self.recognizer is not None:
            self.recognizer.start()
        self._add_log("listening_started", "Started listening for user input")

    def stop_listening(self) -> None:
        if not self.state.is_listening:
            return
        self.state.is_listening = False
        if self.recognizer is not None:
            self.recognizer.stop()
        self._add_log("listening_stopped", "Stopped listening")

    # ── Turns ──

    async def speak(self, text: str) -> None:
        """Say ``text`` as the current agent. Synthesis failures are logged, not raised.

        Nothing is said once the conversation has ended.
        """
        if not text or self.state.has_ended:
            return
        self._emit_message(ConversationMessage(speaker="agent", text=text, confidence=AGENT_CONFIDENCE))
        self._add_transcript("agent", text, AGENT_CONFIDENCE)
        self._add_log("agent_response", text)
        try:
            await self.voice.speak(text, voice_options(self.state.agent_type))
        except Exception as e:
            logger.warning("Speech synthesis failed, continuing without audio: %s", e)
            self._add_log("error", f"Speech error: {e}")

    async def handle_user_input(self, text: str, confidence: float | None = None) -> None:
        """Process one caller utterance. Blank input is ignored; anything else
        is recorded and stored exactly as given."""
        if not text.strip():
            return
        async with self._turn_lock:
            if self.state.has_ended:
                logger.debug("Ignoring input after conversation ended: %r", text)
                return

            if confidence is None:
                confidence = DEFAULT_USER_CONFIDENCE
            logger.info("[%s/%s] Caller: %s", self.state.agent_type, self.state.current_step, text)
            self._emit_message(ConversationMessage(speaker="user", text=text, confidence=confidence))
            self._add_transcript("user", text, confidence)
            self._add_log("user_input", text)

            action = self.machine.process(self.state, text)
            self._update_state()

            await self.speak(action.speak)
            if action.transfer_to:
                await self._handle_transfer(action.transfer_to)

    async def _handle_transfer(self, to_agent_type: str) -> None:
        self.state.is_transferring = True
        self._add_log("transfer_initiated", f"Transferring to {to_agent_type} agent")

        if self._on_transfer_request is not None:
            try:
                ack = self._on_transfer_request(to_agent_type)
                if inspect.isawaitable(ack):
                    await ack
            except Exception as e:
                logger.warning("Transfer request to %s failed, handing off locally: %s", to_agent_type, e)
                self._add_log("error", f"Transfer request failed: {e}")
        if self.transfer_delay > 0 and not self.state.has_ended:
            await asyncio.sleep(self.transfer_delay)

        # Caller hung up while the handoff was pending
        if self.state.has_ended:
            self.state.is_transferring = False
            logger.info("Transfer to %s abandoned, conversation ended", to_agent_type)
            return

        from_agent = self.state.agent_type
        self.state.agent_type = to_agent_type
        self.state.agent_id = agent_id_for(to_agent_type)
        self.state.current_step = GREETING
        self.state.is_transferring = False
        self.state.transfer_count += 1
        self._apply_agent_voice()
        self._add_log("transfer_completed", f"Transferred from {from_agent} to {to_agent_type} agent")

        await self.speak(self.machine.greeting(to_agent_type))

    # ── Recognizer hooks ──

    async def _on_recognition_result(self, text: str, is_final: bool, confidence: float | None) -> None:
        if not is_final:
            return
        await self.handle_user_input(text, confidence)

    def _on_recognition_error(self, error: str) -> None:
        self._add_log("error", f"Speech recognition error: {error}")
        self.stop_listening()

    # ── Accessors ──

    def get_state(self) -> ConversationState:
        return self.state.snapshot()

    def get_collected_data(self) -> dict:
        return dict(self.state.collected_data)

    # ── Internal helpers ──

    def _apply_agent_voice(self) -> None:
        self.voice.set_voice(voice_config(self.state.agent_type)["voice_id"])

    def _notify(self, callback: Callable[..., Any], *args) -> None:
        result = callback(*args)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._observer_tasks.add(task)
            task.add_done_callback(self._observer_done)

    def _observer_done(self, task: asyncio.Task) -> None:
        self._observer_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Conversation observer failed: %s", task.exception())

    def _emit_message(self, message: ConversationMessage) -> None:
        if self._on_message is not None:
            self._notify(self._on_message, message)

    def _add_transcript(self, speaker: str, text: str, confidence: float | None) -> None:
        self.state.transcript.append(TranscriptEntry(speaker=speaker, text=text, confidence=confidence))
        self._update_state()

    def _add_log(self, log_type: str, message: str) -> None:
        self.state.logs.append(CallLog(
            session_id=self.state.session_id,
            log_type=log_type,
            message=message,
            metadata={"step": self.state.current_step, "agent_type": self.state.agent_type},
        ))
        self._update_state()

    def _update_state(self) -> None:
        if self._on_state_update is not None:
            self._notify(self._on_state_update, self.state.snapshot())
