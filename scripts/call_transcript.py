#!/usr/bin/env python3
"""Print the timestamped transcript of a conversation from server logs.

Usage:
    python scripts/call_transcript.py server.log                 # last conversation
    fly logs --no-tail | python scripts/call_transcript.py       # read stdin
    python scripts/call_transcript.py server.log --raw           # raw JSON
    python scripts/call_transcript.py server.log --session-id CA...
    python scripts/call_transcript.py server.log --gap-threshold 3
"""

import argparse
import json
import sys


def parse_transcript_lines(lines: list[str], session_id: str | None = None) -> list[dict]:
    """Parse TRANSCRIPT_DUMP lines from log output into transcript dicts.

    Chunks are matched to their conversation by ``session_id``, so dumps of
    concurrent conversations may interleave. Chunks without one belong to the
    most recent dump. Returns complete transcripts, most recent last. If
    session_id is given, only that conversation is returned.
    """
    transcripts: list[dict] = []
    open_dumps: dict[str, dict] = {}

    for line in lines:
        if "TRANSCRIPT_DUMP|" not in line:
            continue

        dump_part = line[line.index("TRANSCRIPT_DUMP|"):]
        parts = dump_part.split("|", 2)
        if len(parts) < 3:
            continue

        try:
            chunk_num, _total = (int(n) for n in parts[1].split("/"))
            body = json.loads(parts[2].strip())
        except ValueError:
            continue

        sid = body.get("session_id")
        if chunk_num == 1:
            transcript = dict(body, entries=list(body.get("entries", [])))
            transcripts.append(transcript)
            open_dumps[sid] = transcript
            continue

        transcript = open_dumps.get(sid) if sid is not None else (transcripts[-1] if transcripts else None)
        if transcript is not None:
            transcript["entries"].extend(body.get("entries", []))

    if session_id:
        transcripts = [t for t in transcripts if t.get("session_id") == session_id]
    return transcripts


def format_transcript(transcript: dict, gap_threshold: float = 2.0) -> str:
    """Format a transcript dict into human-readable output with gap annotations."""
    lines = []

    sid = transcript.get("session_id", "unknown")
    duration = transcript.get("duration_s", 0)
    final_agent = transcript.get("final_agent", "unknown")
    final_step = transcript.get("final_step", "unknown")
    outcome = transcript.get("outcome", "")
    header = f"Conversation {sid} | {duration}s | {final_agent}/{final_step}"
    if outcome:
        header += f" | {outcome}"
    lines.append(header)
    lines.append("═" * 55)
    lines.append("")

    entries = transcript.get("entries", [])
    prev_t = None

    for entry in entries:
        t = entry.get("t", 0.0)
        role = entry.get("role", "")
        agent = entry.get("agent", "")
        step = entry.get("step", "")

        if prev_t is not None:
            gap = t - prev_t
            if gap >= gap_threshold:
                if gap >= 5.0:
                    lines.append(f"      ┆ +{gap:.1f}s ⚠ SLOW")
                else:
                    lines.append(f"      ┆ +{gap:.1f}s")

        tag = f"[{agent}/{step}]" if agent or step else ""
        t_str = f"{t:5.1f}s"
        content = entry.get("content", "")

        if role == "agent":
            lines.append(f"{t_str} {tag:<32} Agent: {content}")
        elif role == "user":
            lines.append(f"{t_str} {tag:<32} Caller: {content}")
        elif role == "event":
            name = entry.get("name", "event")
            if name.startswith("transfer"):
                lines.append(f"{t_str} {tag:<32} ↪ {content}")
            elif name == "error":
                lines.append(f"{t_str} {tag:<32} ⚠ {content}")
            # listening start/stop is too noisy to show

        prev_t = t

    if entries:
        lines.append(f"{duration:5.1f}s {'':32} ☎ Conversation ended")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(description="Print the transcript of the last conversation in a log")
    parser.add_argument("logfile", nargs="?", default="-", help="Log file to read (default: stdin)")
    parser.add_argument("--raw", action="store_true", help="Output raw JSON")
    parser.add_argument("--session-id", type=str, default=None, help="Filter by session id")
    parser.add_argument("--gap-threshold", type=float, default=2.0, help="Gap threshold in seconds (default: 2.0)")
    args = parser.parse_args()

    if args.logfile == "-":
        lines = sys.stdin.read().splitlines()
    else:
        try:
            with open(args.logfile, encoding="utf-8", errors="replace") as f:
                lines = f.read().splitlines()
        except OSError as e:
            print(f"Error: cannot read {args.logfile}: {e}", file=sys.stderr)
            sys.exit(1)

    transcripts = parse_transcript_lines(lines, session_id=args.session_id)

    if not transcripts:
        print("No conversation transcripts found in the log.", file=sys.stderr)
        sys.exit(1)

    transcript = transcripts[-1]

    if args.raw:
        print(json.dumps(transcript, indent=2))
    else:
        print(format_transcript(transcript, gap_threshold=args.gap_threshold))


if __name__ == "__main__":
    main()
