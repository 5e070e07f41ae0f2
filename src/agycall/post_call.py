import json
import os
import time
import logging
from datetime import datetime, timezone

from agycall.agent_types import parse_agent_type
from agycall.scripts import CLOSING
from agycall.session import ConversationState
from agycall.transcript import to_plain_text, to_json_array, to_timestamped_dump
from agycall.dashboard_sync import DashboardClient

logger = logging.getLogger(__name__)


def _derive_outcome(state: ConversationState) -> str:
    """Map the final conversation state to an outcome string."""
    agent = parse_agent_type(state.agent_type)
    if agent is None or not agent.is_specialized:
        return "abandoned"
    if state.current_step == CLOSING:
        return "completed"
    return "transferred"


def _iso(ts: float) -> str:
    if ts > 0:
        return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
    return datetime.now(timezone.utc).isoformat()


def build_session_payload(state: ConversationState, end_time: float) -> dict:
    """Build the dashboard session record for a finished conversation."""
    duration = int(end_time - state.started_at) if state.started_at > 0 else 0

    return {
        "session_id": state.session_id,
        "agent_id": state.agent_id,
        "agent_type": state.agent_type,
        "final_step": state.current_step,
        "outcome": _derive_outcome(state),
        "started_at": _iso(state.started_at),
        "ended_at": _iso(end_time),
        "duration_seconds": duration,
        "turn_count": state.turn_count,
        "transfer_count": state.transfer_count,

        # What the caller told the specialized agent, verbatim
        "collected_data": dict(state.collected_data),

        # Transcript
        "transcript": to_plain_text(state.transcript),
        "transcript_object": to_json_array(state.transcript),
    }


def build_logs_payload(state: ConversationState) -> dict:
    return {
        "session_id": state.session_id,
        "logs": [log.to_dict() for log in state.logs],
    }


TRUNCATION_MARK = "..."


def _json_size(value) -> int:
    return len(json.dumps(value).encode("utf-8"))


def _fit_entry(entry: dict, limit: int) -> dict:
    """Shorten an entry's content until the entry serializes within ``limit`` bytes."""
    if _json_size(entry) <= limit or not entry.get("content"):
        return entry
    fitted = dict(entry)
    content = entry["content"]
    while content and _json_size(fitted) > limit:
        content = content[: len(content) * 3 // 4]
        fitted["content"] = content + TRUNCATION_MARK
    return fitted


def chunk_transcript_dump(dump: dict, max_bytes: int = 3500) -> list[str]:
    """Split a conversation dump into ``TRANSCRIPT_DUMP|N/M|{json}`` log lines.

    The first chunk carries the dump header (final agent and step, outcome,
    duration); every chunk carries ``session_id`` so that dumps of
    concurrent conversations can be told apart when their lines interleave.
    Entries are never split across chunks. An utterance too long to fit a
    chunk on its own is cut short and marked with ``...``.
    """
    header = {k: v for k, v in dump.items() if k != "entries"}
    follow_up = {"session_id": dump.get("session_id", "")}
    first_room = max_bytes - _json_size({**header, "entries": []})
    later_room = max_bytes - _json_size({**follow_up, "entries": []})
    # +2 per entry for the separator and closing bracket
    entry_limit = min(first_room, later_room) - 2

    groups: list[list[dict]] = [[]]
    room = first_room
    for entry in dump.get("entries", []):
        entry = _fit_entry(entry, entry_limit)
        cost = _json_size(entry) + 2
        if groups[-1] and cost > room:
            groups.append([])
            room = later_room
        groups[-1].append(entry)
        room -= cost

    total = len(groups)
    lines = []
    for i, group in enumerate(groups):
        body = {**(header if i == 0 else follow_up), "entries": group}
        lines.append(f"TRANSCRIPT_DUMP|{i + 1}/{total}|{json.dumps(body)}")
    return lines


async def handle_conversation_ended(state: ConversationState):
    """Post-call orchestrator. Runs after the conversation has ended."""
    end_time = state.ended_at or time.time()

    # 1. Structured transcript dump for scripts/call_transcript.py
    dump = to_timestamped_dump(
        state.logs,
        start_time=state.started_at,
        session_id=state.session_id,
        final_agent=state.agent_type,
        final_step=state.current_step,
    )
    dump["duration_s"] = round(end_time - state.started_at, 1) if state.started_at > 0 else 0
    dump["outcome"] = _derive_outcome(state)
    for line in chunk_transcript_dump(dump):
        logger.info(line)

    # 2. Dashboard sync
    calls_url = os.getenv("DASHBOARD_CALLS_URL", "")
    logs_url = os.getenv("DASHBOARD_LOGS_URL", "")
    webhook_secret = os.getenv("DASHBOARD_WEBHOOK_SECRET", "")

    if not calls_url or not webhook_secret:
        logger.warning("Dashboard webhook not configured, skipping post-call sync")
        return

    dashboard = DashboardClient(calls_url=calls_url, logs_url=logs_url, webhook_secret=webhook_secret)

    session_result = await dashboard.send_session(build_session_payload(state, end_time))
    logger.info(f"Dashboard session sync: {session_result}")

    if logs_url:
        logs_result = await dashboard.send_logs(build_logs_payload(state))
        logger.info(f"Dashboard log sync: {logs_result}")

    logger.info(
        f"Post-call complete for {state.session_id}: agent={state.agent_type}, "
        f"step={state.current_step}, outcome={dump['outcome']}"
    )
