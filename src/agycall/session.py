import copy
import time
import uuid
from dataclasses import dataclass, field

from agycall.scripts import GREETING

AGENT_CONFIDENCE = 1.0
DEFAULT_USER_CONFIDENCE = 0.9


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class TranscriptEntry:
    speaker: str  # "agent" | "user"
    text: str
    timestamp: float = field(default_factory=time.time)
    confidence: float | None = None
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "speaker": self.speaker,
            "text": self.text,
            "timestamp": self.timestamp,
            "confidence": self.confidence,
        }


@dataclass
class CallLog:
    session_id: str
    log_type: str
    message: str
    timestamp: float = field(default_factory=time.time)
    metadata: dict = field(default_factory=dict)
    id: str = field(default_factory=_new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "log_type": self.log_type,
            "message": self.message,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


@dataclass
class ConversationMessage:
    speaker: str
    text: str
    timestamp: float = field(default_factory=time.time)
    confidence: float | None = None


@dataclass
class ConversationState:
    session_id: str
    agent_type: str
    agent_id: str = ""
    current_step: str = GREETING

    # Answers keyed by the step's data key, stored exactly as spoken
    collected_data: dict = field(default_factory=dict)

    is_listening: bool = False
    is_transferring: bool = False

    transcript: list = field(default_factory=list)
    logs: list = field(default_factory=list)

    # Call metadata
    started_at: float = 0.0
    ended_at: float = 0.0
    turn_count: int = 0
    transfer_count: int = 0

    @property
    def has_ended(self) -> bool:
        return self.ended_at > 0

    def snapshot(self) -> "ConversationState":
        """Independent copy safe to hand to callbacks and API responses."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "agent_type": self.agent_type,
            "agent_id": self.agent_id,
            "current_step": self.current_step,
            "collected_data": dict(self.collected_data),
            "is_listening": self.is_listening,
            "is_transferring": self.is_transferring,
            "transcript": [entry.to_dict() for entry in self.transcript],
            "logs": [log.to_dict() for log in self.logs],
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "turn_count": self.turn_count,
            "transfer_count": self.transfer_count,
        }
