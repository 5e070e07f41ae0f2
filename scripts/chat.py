#!/usr/bin/env python3
"""Talk to the call agents on the terminal.

Usage:
    python scripts/chat.py                        # start with the primary agent
    python scripts/chat.py --agent breakdown      # start with a specialized agent
    python scripts/chat.py --transfer-delay 2     # pause like a real transfer

Type "quit" (or Ctrl-D) to hang up. The collected data is printed at the end.
"""

import argparse
import asyncio
import json
import logging
import sys

from agycall.agent_types import AgentType
from agycall.conversation import ConversationManager
from agycall.recognition import ScriptedRecognizer
from agycall.session import ConversationMessage
from agycall.voice import TextOnlyVoiceProvider

QUIT_WORDS = {"quit", "exit", "bye", "hang up"}


def print_message(message: ConversationMessage, agent_type: str) -> None:
    if message.speaker == "agent":
        print(f"[{agent_type}] Agent: {message.text}")


async def run_chat(agent_type: str, delay: float, lines) -> dict:
    voice = TextOnlyVoiceProvider()
    recognizer = ScriptedRecognizer()
    manager = ConversationManager(
        voice,
        session_id="terminal",
        agent_type=agent_type,
        recognizer=recognizer,
        transfer_delay=delay,
    )
    manager.set_callbacks(
        on_message=lambda m: print_message(m, manager.state.agent_type),
        on_transfer_request=lambda to: print(f"  ... transferring to {to} agent ..."),
    )

    await manager.start_conversation()
    for line in lines:
        text = line.strip()
        if text.lower() in QUIT_WORDS:
            break
        await recognizer.feed([text])

    await manager.end_conversation()
    return manager.get_collected_data()


def _stdin_lines():
    while True:
        try:
            yield input("You: ")
        except EOFError:
            print()
            return


def main():
    parser = argparse.ArgumentParser(description="Chat with the AGY call agents")
    parser.add_argument(
        "--agent",
        choices=[t.value for t in AgentType],
        default=AgentType.PRIMARY.value,
        help="Agent to start with (default: primary)",
    )
    parser.add_argument("--transfer-delay", type=float, default=0.0, help="Seconds to pause on transfer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logs")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, stream=sys.stderr)

    try:
        collected = asyncio.run(run_chat(args.agent, args.transfer_delay, _stdin_lines()))
    except KeyboardInterrupt:
        return
    print("Collected data:")
    print(json.dumps(collected, indent=2))


if __name__ == "__main__":
    main()
