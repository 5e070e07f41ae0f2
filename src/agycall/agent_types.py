from dataclasses import dataclass
from enum import Enum

SPECIALIZED_AGENTS = {"breakdown", "job-application", "general"}


class AgentType(str, Enum):
    PRIMARY = "primary"
    BREAKDOWN = "breakdown"
    JOB_APPLICATION = "job-application"
    GENERAL = "general"

    @property
    def is_specialized(self) -> bool:
        return self.value in SPECIALIZED_AGENTS


@dataclass(frozen=True)
class AgentProfile:
    id: str
    name: str
    type: AgentType
    description: str
    scripted_flows: tuple[str, ...]


AGENTS = {
    AgentType.PRIMARY: AgentProfile(
        id="1",
        name="Primary Agent",
        type=AgentType.PRIMARY,
        description="Main call routing agent that identifies caller intent and routes to appropriate specialized agents",
        scripted_flows=("caller-identification", "intent-detection", "routing"),
    ),
    AgentType.BREAKDOWN: AgentProfile(
        id="2",
        name="Breakdown Assistant",
        type=AgentType.BREAKDOWN,
        description="Specialized agent for handling driver breakdown reports and emergency situations",
        scripted_flows=("breakdown-assessment", "location-capture", "issue-diagnosis"),
    ),
    AgentType.JOB_APPLICATION: AgentProfile(
        id="3",
        name="Job Application Agent",
        type=AgentType.JOB_APPLICATION,
        description="Handles job applications and candidate screening for various positions",
        scripted_flows=("application-intake", "qualification-screening", "interview-scheduling"),
    ),
    AgentType.GENERAL: AgentProfile(
        id="4",
        name="General Support",
        type=AgentType.GENERAL,
        description="Handles general inquiries and provides basic information",
        scripted_flows=("general-inquiry", "information-provision", "escalation"),
    ),
}


def parse_agent_type(value: str) -> AgentType | None:
    """Return the AgentType for ``value``, or None if it names no known agent."""
    try:
        return AgentType(value)
    except ValueError:
        return None


def agent_id_for(agent_type: str) -> str:
    known = parse_agent_type(agent_type)
    if known is None:
        return ""
    return AGENTS[known].id
