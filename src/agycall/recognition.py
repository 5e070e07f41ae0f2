import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# (text, is_final, confidence)
ResultCallback = Callable[[str, bool, Optional[float]], Any]
ErrorCallback = Callable[[str], Any]


async def _call(callback, *args):
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class SpeechRecognizer(ABC):
    """Source of recognized caller utterances.

    The recognizer owns no conversation logic; it only delivers results and
    errors to whoever registered callbacks, and only while started.
    """

    def __init__(self):
        self.active = False
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    def set_callbacks(self, on_result: ResultCallback, on_error: ErrorCallback) -> None:
        self._on_result = on_result
        self._on_error = on_error

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    async def emit_result(self, text: str, is_final: bool = True, confidence: float | None = None) -> bool:
        """Deliver a result. Returns False if it was dropped because we're stopped."""
        if not self.active:
            logger.debug("Recognizer inactive, dropping result: %r", text)
            return False
        if self._on_result is not None:
            await _call(self._on_result, text, is_final, confidence)
        return True

    async def emit_error(self, error: str) -> None:
        logger.warning("Speech recognition error: %s", error)
        if self._on_error is not None:
            await _call(self._on_error, error)


class ScriptedRecognizer(SpeechRecognizer):
    """Recognizer fed from a list of strings (CLI and tests)."""

    def __init__(self):
        super().__init__()
        self.start_count = 0
        self.stop_count = 0

    def start(self) -> None:
        self.active = True
        self.start_count += 1

    def stop(self) -> None:
        self.active = False
        self.stop_count += 1

    async def feed(self, utterances, confidence: float | None = None) -> int:
        """Emit each utterance as a final result; returns how many were delivered."""
        delivered = 0
        for text in utterances:
            if await self.emit_result(text, True, confidence):
                delivered += 1
        return delivered
