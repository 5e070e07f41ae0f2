from agycall.session import CallLog, TranscriptEntry
from agycall.transcript import to_plain_text, to_json_array, to_timestamped_dump


def _log(log_type, message, ts, step="greeting", agent="primary"):
    return CallLog(
        session_id="s1",
        log_type=log_type,
        message=message,
        timestamp=ts,
        metadata={"step": step, "agent_type": agent},
    )


class TestToPlainText:
    def test_basic_conversation(self):
        transcript = [
            TranscriptEntry(speaker="agent", text="Hello! Thank you for calling AGY Logistics."),
            TranscriptEntry(speaker="user", text="My truck broke down."),
            TranscriptEntry(speaker="agent", text="Let me connect you."),
        ]
        assert to_plain_text(transcript) == (
            "Agent: Hello! Thank you for calling AGY Logistics.\n"
            "Caller: My truck broke down.\n"
            "Agent: Let me connect you."
        )

    def test_empty_transcript(self):
        assert to_plain_text([]) == ""


class TestToJsonArray:
    def test_roles_and_confidence(self):
        transcript = [
            TranscriptEntry(speaker="agent", text="Hi", confidence=1.0),
            TranscriptEntry(speaker="user", text="Hello"),
        ]
        assert to_json_array(transcript) == [
            {"role": "agent", "content": "Hi", "confidence": 1.0},
            {"role": "user", "content": "Hello"},
        ]


class TestToTimestampedDump:
    def test_relative_times_and_roles(self):
        logs = [
            _log("agent_response", "Hello!", 1000.0),
            _log("listening_started", "Started listening for user input", 1000.1),
            _log("user_input", "my truck broke down", 1003.46),
            _log("transfer_initiated", "Transferring to breakdown agent", 1004.0),
            _log("agent_response", "Hi, I'm the Breakdown Assistant.", 1006.0, agent="breakdown"),
        ]
        dump = to_timestamped_dump(logs, start_time=1000.0, session_id="s1", final_agent="breakdown", final_step="greeting")
        assert dump["session_id"] == "s1"
        assert dump["final_agent"] == "breakdown"
        entries = dump["entries"]
        assert [e["t"] for e in entries] == [0.0, 0.1, 3.5, 4.0, 6.0]
        assert [e["role"] for e in entries] == ["agent", "event", "user", "event", "agent"]
        assert entries[3]["name"] == "transfer_initiated"
        assert entries[4]["agent"] == "breakdown"
        assert entries[2]["step"] == "greeting"

    def test_zero_start_time_uses_first_log(self):
        logs = [_log("agent_response", "Hello!", 50.0), _log("user_input", "hi", 52.0)]
        dump = to_timestamped_dump(logs, start_time=0, session_id="s1", final_agent="primary", final_step="greeting")
        assert [e["t"] for e in dump["entries"]] == [0.0, 2.0]

    def test_empty(self):
        dump = to_timestamped_dump([], start_time=0, session_id="s1", final_agent="primary", final_step="greeting")
        assert dump["entries"] == []
