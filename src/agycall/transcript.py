from agycall.session import CallLog, TranscriptEntry

# Log types that carry spoken text, mapped to transcript roles
_SPOKEN_LOG_ROLES = {"agent_response": "agent", "user_input": "user"}


def to_plain_text(transcript: list[TranscriptEntry]) -> str:
    """Convert a transcript to plain text.

    Agent lines prefixed with "Agent:", caller lines with "Caller:".
    """
    if not transcript:
        return ""

    lines = []
    for entry in transcript:
        if entry.speaker == "agent":
            lines.append(f"Agent: {entry.text}")
        elif entry.speaker == "user":
            lines.append(f"Caller: {entry.text}")
    return "\n".join(lines)


def to_json_array(transcript: list[TranscriptEntry]) -> list[dict]:
    """Convert a transcript to the {role, content} array the dashboard stores."""
    result = []
    for entry in transcript:
        if entry.speaker not in ("agent", "user"):
            continue
        item = {"role": entry.speaker, "content": entry.text}
        if entry.confidence is not None:
            item["confidence"] = entry.confidence
        result.append(item)
    return result


def to_timestamped_dump(
    logs: list[CallLog],
    start_time: float,
    session_id: str,
    final_agent: str,
    final_step: str,
) -> dict:
    """Build a timestamped dump of a conversation from its lifecycle logs.

    Spoken lines become agent/user entries; everything else (transfers,
    listening changes, errors) becomes an "event" entry named by log type.
    Timestamps are relative seconds from call start. If start_time is 0, the
    first log's timestamp is used as the base.
    """
    base_time = start_time
    if base_time <= 0 and logs:
        base_time = logs[0].timestamp

    entries = []
    for log in logs:
        e = {
            "t": round(log.timestamp - base_time, 1),
            "agent": log.metadata.get("agent_type", ""),
            "step": log.metadata.get("step", ""),
        }
        role = _SPOKEN_LOG_ROLES.get(log.log_type)
        if role:
            e["role"] = role
            e["content"] = log.message
        else:
            e["role"] = "event"
            e["name"] = log.log_type
            e["content"] = log.message
        entries.append(e)

    return {
        "session_id": session_id,
        "final_agent": final_agent,
        "final_step": final_step,
        "entries": entries,
    }
