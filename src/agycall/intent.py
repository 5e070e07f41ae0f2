from agycall.agent_types import AgentType

BREAKDOWN_KEYWORDS = frozenset({
    "breakdown", "broken", "stuck", "emergency", "truck", "problem", "help", "tow",
})

JOB_KEYWORDS = frozenset({
    "job", "work", "employment", "application", "hire", "position", "career",
})

GENERAL_KEYWORDS = frozenset({
    "question", "information", "service", "pricing", "quote", "logistics",
})

# Checked in order; the first set with a hit wins.
INTENT_KEYWORDS = (
    (AgentType.BREAKDOWN, BREAKDOWN_KEYWORDS),
    (AgentType.JOB_APPLICATION, JOB_KEYWORDS),
    (AgentType.GENERAL, GENERAL_KEYWORDS),
)

TRANSITION_NAMES = {
    AgentType.BREAKDOWN: "to_breakdown",
    AgentType.JOB_APPLICATION: "to_job_application",
    AgentType.GENERAL: "to_general",
}


def contains_any_keyword(text: str, keywords) -> bool:
    """Check if any keyword appears anywhere in text (plain substring match).

    "helping" matches "help" and "trucking" matches "truck"; the routing
    keywords are coarse on purpose.
    """
    lower = text.lower()
    return any(kw in lower for kw in keywords)


def classify_intent(text: str) -> AgentType | None:
    """Pick the specialized agent for a caller's utterance.

    Returns None when no keyword set matches.
    """
    for agent_type, keywords in INTENT_KEYWORDS:
        if contains_any_keyword(text, keywords):
            return agent_type
    return None


def transition_name(agent_type: AgentType) -> str:
    return TRANSITION_NAMES[agent_type]
