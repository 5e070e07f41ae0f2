import json
import logging
import pytest
import httpx
import respx
from agycall.post_call import (
    build_logs_payload,
    build_session_payload,
    chunk_transcript_dump,
    handle_conversation_ended,
)
from agycall.session import CallLog, ConversationState, TranscriptEntry

CALLS_URL = "https://app.example.com/api/webhook/call-sessions"
LOGS_URL = "https://app.example.com/api/webhook/call-logs"


@pytest.fixture
def completed_state():
    """A call that was routed to breakdown and walked to closing."""
    s = ConversationState(session_id="CA_test_123", agent_type="breakdown", agent_id="2")
    s.current_step = "closing"
    s.started_at = 1000.0
    s.ended_at = 1095.0
    s.turn_count = 6
    s.transfer_count = 1
    s.collected_data = {
        "safety_status": "yes I'm off the road",
        "location": "I-80 mile 12",
        "vehicle_info": "white Freightliner",
        "problem_description": "engine overheated",
    }
    s.transcript = [
        TranscriptEntry(speaker="agent", text="Hello! Thank you for calling AGY Logistics.", timestamp=1000.0, confidence=1.0),
        TranscriptEntry(speaker="user", text="my truck broke down on the highway", timestamp=1004.0, confidence=0.9),
    ]
    s.logs = [
        CallLog(session_id="CA_test_123", log_type="agent_response", message="Hello! Thank you for calling AGY Logistics.",
                timestamp=1000.0, metadata={"step": "greeting", "agent_type": "primary"}),
        CallLog(session_id="CA_test_123", log_type="user_input", message="my truck broke down on the highway",
                timestamp=1004.0, metadata={"step": "greeting", "agent_type": "primary"}),
    ]
    return s


@pytest.fixture
def primary_state():
    """Caller hung up before naming an intent."""
    s = ConversationState(session_id="CA_hangup", agent_type="primary", agent_id="1")
    s.started_at = 2000.0
    s.ended_at = 2010.0
    return s


class TestBuildSessionPayload:
    def test_completed(self, completed_state):
        payload = build_session_payload(completed_state, end_time=1095.0)
        assert payload["session_id"] == "CA_test_123"
        assert payload["agent_id"] == "2"
        assert payload["agent_type"] == "breakdown"
        assert payload["final_step"] == "closing"
        assert payload["outcome"] == "completed"
        assert payload["duration_seconds"] == 95
        assert payload["collected_data"]["location"] == "I-80 mile 12"
        assert payload["transcript"].startswith("Agent: Hello!")
        assert payload["transcript_object"][1] == {
            "role": "user", "content": "my truck broke down on the highway", "confidence": 0.9,
        }
        assert payload["started_at"].startswith("1970-01-01T00:16:40")

    def test_transferred_but_not_finished(self, completed_state):
        completed_state.current_step = "location"
        assert build_session_payload(completed_state, 1095.0)["outcome"] == "transferred"

    def test_abandoned_on_primary(self, primary_state):
        payload = build_session_payload(primary_state, 2010.0)
        assert payload["outcome"] == "abandoned"
        assert payload["collected_data"] == {}

    def test_zero_start_time(self, primary_state):
        primary_state.started_at = 0.0
        assert build_session_payload(primary_state, 2010.0)["duration_seconds"] == 0


def test_logs_payload(completed_state):
    payload = build_logs_payload(completed_state)
    assert payload["session_id"] == "CA_test_123"
    assert [log["log_type"] for log in payload["logs"]] == ["agent_response", "user_input"]


class TestChunkTranscriptDump:
    def test_single_chunk(self):
        dump = {"session_id": "s1", "entries": [{"t": 0.0, "role": "agent", "content": "Hi"}]}
        lines = chunk_transcript_dump(dump)
        assert len(lines) == 1
        assert lines[0].startswith("TRANSCRIPT_DUMP|1/1|")
        assert json.loads(lines[0].split("|", 2)[2]) == dump

    def test_empty_entries(self):
        lines = chunk_transcript_dump({"session_id": "s1", "entries": []})
        assert lines == ['TRANSCRIPT_DUMP|1/1|{"session_id": "s1", "entries": []}']

    def test_splits_large_dumps(self):
        entries = [{"t": float(i), "role": "user", "content": "x" * 200} for i in range(40)]
        lines = chunk_transcript_dump({"session_id": "s1", "entries": entries}, max_bytes=1000)
        total = len(lines)
        assert total > 1
        rebuilt = []
        for i, line in enumerate(lines):
            prefix, body = line.split("|", 2)[1], line.split("|", 2)[2]
            assert prefix == f"{i + 1}/{total}"
            assert len(body.encode("utf-8")) <= 1000
            rebuilt.extend(json.loads(body)["entries"])
        assert rebuilt == entries
        assert all(json.loads(line.split("|", 2)[2])["session_id"] == "s1" for line in lines)

    def test_header_only_in_first_chunk(self):
        entries = [{"t": float(i), "role": "agent", "content": "y" * 300} for i in range(10)]
        dump = {"session_id": "s1", "final_agent": "general", "outcome": "completed", "entries": entries}
        lines = chunk_transcript_dump(dump, max_bytes=800)
        first = json.loads(lines[0].split("|", 2)[2])
        later = json.loads(lines[-1].split("|", 2)[2])
        assert first["outcome"] == "completed"
        assert set(later) == {"session_id", "entries"}

    def test_oversized_utterance_is_truncated(self):
        entries = [
            {"t": 0.0, "role": "user", "content": "z" * 5000},
            {"t": 1.0, "role": "agent", "content": "Thanks."},
        ]
        lines = chunk_transcript_dump({"session_id": "s1", "entries": entries}, max_bytes=1000)
        bodies = [json.loads(line.split("|", 2)[2]) for line in lines]
        assert all(len(line.split("|", 2)[2].encode("utf-8")) <= 1000 for line in lines)
        rebuilt = [e for body in bodies for e in body["entries"]]
        assert rebuilt[0]["content"].endswith("...")
        assert rebuilt[0]["content"].startswith("zzz")
        assert rebuilt[1] == entries[1]


class TestHandleConversationEnded:
    @pytest.mark.asyncio
    async def test_logs_dump_without_dashboard(self, completed_state, monkeypatch, caplog):
        monkeypatch.delenv("DASHBOARD_CALLS_URL", raising=False)
        monkeypatch.delenv("DASHBOARD_WEBHOOK_SECRET", raising=False)
        with caplog.at_level(logging.INFO, logger="agycall.post_call"):
            await handle_conversation_ended(completed_state)
        dumps = [r.getMessage() for r in caplog.records if r.getMessage().startswith("TRANSCRIPT_DUMP|")]
        assert len(dumps) == 1
        body = json.loads(dumps[0].split("|", 2)[2])
        assert body["session_id"] == "CA_test_123"
        assert body["outcome"] == "completed"
        assert body["duration_s"] == 95.0
        assert "skipping post-call sync" in caplog.text

    @respx.mock
    @pytest.mark.asyncio
    async def test_syncs_session_and_logs(self, completed_state, monkeypatch):
        monkeypatch.setenv("DASHBOARD_CALLS_URL", CALLS_URL)
        monkeypatch.setenv("DASHBOARD_LOGS_URL", LOGS_URL)
        monkeypatch.setenv("DASHBOARD_WEBHOOK_SECRET", "secret")
        calls = respx.post(CALLS_URL).mock(return_value=httpx.Response(200, json={"success": True}))
        logs = respx.post(LOGS_URL).mock(return_value=httpx.Response(200, json={"success": True}))

        await handle_conversation_ended(completed_state)

        sent = json.loads(calls.calls[0].request.content)
        assert sent["outcome"] == "completed"
        assert sent["collected_data"]["safety_status"] == "yes I'm off the road"
        assert logs.called

    @respx.mock
    @pytest.mark.asyncio
    async def test_logs_url_optional(self, primary_state, monkeypatch):
        monkeypatch.setenv("DASHBOARD_CALLS_URL", CALLS_URL)
        monkeypatch.delenv("DASHBOARD_LOGS_URL", raising=False)
        monkeypatch.setenv("DASHBOARD_WEBHOOK_SECRET", "secret")
        calls = respx.post(CALLS_URL).mock(return_value=httpx.Response(200, json={"success": True}))
        await handle_conversation_ended(primary_state)
        assert calls.call_count == 1
