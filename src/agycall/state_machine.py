import logging
import random
from dataclasses import dataclass

from agycall.agent_types import AgentType
from agycall.intent import classify_intent, transition_name
from agycall.scripts import (
    CLOSING,
    GREETING,
    UNRECOGNIZED_REPLY,
    Script,
    get_script,
    has_script,
    random_response,
)
from agycall.session import ConversationState

logger = logging.getLogger(__name__)


@dataclass
class Action:
    speak: str = ""
    next_step: str | None = None
    transfer_to: str | None = None


def _transition(state: ConversationState, new_step: str):
    """Helper to move to a new step, logging the change."""
    logger.debug("[%s] %s -> %s", state.agent_type, state.current_step, new_step)
    state.current_step = new_step


class StateMachine:
    """Walks one agent script per turn.

    ``process`` is synchronous and side-effect free apart from the state it is
    handed: it records answers, advances ``current_step`` and reports what the
    agent should say. Transfers are only requested here; the conversation
    manager performs the handoff.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def valid_steps(self, agent_type: str) -> tuple[str, ...]:
        return get_script(agent_type).steps

    def greeting(self, agent_type: str) -> str:
        return random_response(get_script(agent_type).greeting, self.rng)

    def process(self, state: ConversationState, user_text: str) -> Action:
        state.turn_count += 1

        if not has_script(state.agent_type):
            logger.warning("No script for agent type %r", state.agent_type)
            return Action(speak=UNRECOGNIZED_REPLY)

        if state.agent_type == AgentType.PRIMARY:
            return self._handle_primary(state, user_text)
        return self._handle_specialized(state, get_script(state.agent_type), user_text)

    # ── Handlers ──

    def _handle_primary(self, state: ConversationState, text: str) -> Action:
        script = get_script(state.agent_type)
        target = classify_intent(text)
        if target is None:
            # No forced advance: keep asking until the caller names an intent.
            return Action(speak=script.question("intent_detection"))

        phrase = random_response(script.transitions[transition_name(target)], self.rng)
        logger.info("Intent classified as %s", target.value)
        return Action(speak=phrase, transfer_to=target.value)

    def _handle_specialized(self, state: ConversationState, script: Script, text: str) -> Action:
        step = state.current_step

        if step == CLOSING:
            return Action(speak=script.continuation)

        if step not in script.steps:
            logger.warning("Step %r is not in the %s script; replying generically", step, state.agent_type)
            return Action(speak=script.continuation)

        if step != GREETING:
            state.collected_data[script.data_key(step)] = text

        next_step = script.next_step(step)
        if next_step == CLOSING:
            speak = random_response(script.transitions.get(script.completion, ()), self.rng)
        else:
            speak = script.question(next_step)

        _transition(state, next_step)
        return Action(speak=speak, next_step=next_step)
