import random

import pytest
from agycall.conversation import ConversationManager
from agycall.recognition import ScriptedRecognizer
from agycall.session import ConversationState
from agycall.state_machine import StateMachine
from agycall.voice import TextOnlyVoiceProvider


@pytest.fixture
def state():
    return ConversationState(session_id="test-session", agent_type="primary", agent_id="1")


@pytest.fixture
def machine():
    return StateMachine(rng=random.Random(7))


@pytest.fixture
def voice():
    return TextOnlyVoiceProvider()


@pytest.fixture
def recognizer():
    return ScriptedRecognizer()


@pytest.fixture
def make_manager(voice, recognizer):
    """Build a ConversationManager on the text voice with no transfer pause."""
    def _make(agent_type="primary", **kwargs):
        kwargs.setdefault("transfer_delay", 0)
        kwargs.setdefault("rng", random.Random(7))
        kwargs.setdefault("recognizer", recognizer)
        return ConversationManager(voice, "test-session", agent_type, **kwargs)
    return _make
