"""Interactive CLI for chatting with the companion without the HTTP server.

Usage:
    python scripts/run_cli.py --username jonas [--mood happy] [--explain]
"""

import argparse
import logging
import os
import sys

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent import config  # noqa: E402
from agent.chat import ChatService  # noqa: E402
from agent.errors import ChatError  # noqa: E402
from memory.extractor import explain  # noqa: E402


def _print_memories(title: str, memories: dict) -> None:
    for category, items in memories.items():
        for item in items:
            polarity = ""
            if "is_positive" in item:
                polarity = " (+)" if item["is_positive"] else " (-)"
            print(f"  \033[1;33m{title} {category}:\033[0m {item['content']}{polarity}")


def main():
    """Run an interactive chat loop in the terminal."""
    parser = argparse.ArgumentParser(description="Chat with the companion.")
    parser.add_argument("--username", required=True)
    parser.add_argument("--mood", default=None, help="happy, sad, normal or roast")
    parser.add_argument(
        "--explain", action="store_true", help="show which extraction rules fire"
    )
    args = parser.parse_args()

    logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    service = ChatService()
    if service.store.find_by_username(args.username) is None:
        service.store.create_user(args.username)
        print(f"Created user '{args.username}'.")

    print("=" * 60)
    print("  Companion — CLI Mode")
    print("  Type 'quit' or 'exit' to stop.")
    print("=" * 60)
    print()

    if args.mood:
        try:
            greeting = service.start_conversation(args.username, args.mood)
            print(f"\033[1;35mAI:\033[0m {greeting['initial_message']}\n")
        except ChatError as e:
            print(f"\033[1;31mError:\033[0m {e}")

    while True:
        try:
            user_input = input("\033[1;36mYou:\033[0m ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nViso gero!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            print("Viso gero!")
            break

        if args.explain:
            for match in explain(user_input):
                print(f"  \033[1;32m{match.category}:\033[0m {match.pattern} → {match.captured!r}")

        try:
            result = service.send_message(args.username, user_input, args.mood)
        except ChatError as e:
            print(f"\033[1;31mError:\033[0m {e}")
            continue

        _print_memories("learned", result["extracted_memories"])
        _print_memories("recalled", result["relevant_memories"])
        print(f"\033[1;35mAI:\033[0m {result['response']}")
        print()


if __name__ == "__main__":
    main()
