from agycall.agent_types import AGENTS, AgentType, SPECIALIZED_AGENTS, agent_id_for, parse_agent_type


def test_four_agents_with_stable_ids():
    assert {a.value: p.id for a, p in AGENTS.items()} == {
        "primary": "1",
        "breakdown": "2",
        "job-application": "3",
        "general": "4",
    }


def test_profiles_match_their_key():
    for agent_type, profile in AGENTS.items():
        assert profile.type is agent_type
        assert profile.name
        assert len(profile.scripted_flows) == 3


def test_only_primary_is_not_specialized():
    assert not AgentType.PRIMARY.is_specialized
    assert all(AgentType(t).is_specialized for t in SPECIALIZED_AGENTS)


def test_agent_type_compares_equal_to_its_string():
    assert AgentType.JOB_APPLICATION == "job-application"


def test_parse_agent_type():
    assert parse_agent_type("breakdown") is AgentType.BREAKDOWN
    assert parse_agent_type("billing") is None
    assert parse_agent_type("") is None


def test_agent_id_for():
    assert agent_id_for("general") == "4"
    assert agent_id_for("nonexistent") == ""
