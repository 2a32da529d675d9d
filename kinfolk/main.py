"""CLI entry point for the Kinfolk assistant.

A terminal chat loop for trying the assistant locally.  For the web
frontend, use the FastAPI server (kinfolk/server.py).

Usage:
    python -m kinfolk.main                          # empty dataset
    python -m kinfolk.main --data people.json       # seed people from a file
    python -m kinfolk.main --debug                  # show API calls
"""

from __future__ import annotations

import argparse
import logging
import uuid

from dotenv import load_dotenv

from kinfolk.agent import create_kinfolk_agent, dispatch_turn
from kinfolk.config import PEOPLE_DATA_PATH
from kinfolk.models import MutationStatus
from kinfolk.services.store import InMemoryStore
from kinfolk.session import ConversationSession

logger = logging.getLogger(__name__)

_STATUS_MARKS = {
    MutationStatus.APPLIED: "+",
    MutationStatus.FAILED: "!",
    MutationStatus.SKIPPED: "=",
}


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("kinfolk").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Kinfolk assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--data", default=PEOPLE_DATA_PATH,
        help="JSON file with the people to load (defaults to PEOPLE_DATA_PATH)",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    store = InMemoryStore.from_json_file(args.data) if args.data else InMemoryStore()

    print("\n" + "=" * 60)
    print("  Kinfolk - CLI Chat")
    print("=" * 60)
    print(f"  {len(store.list_people())} people loaded.")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60 + "\n")

    agent = create_kinfolk_agent(store)
    session = ConversationSession(str(uuid.uuid4()))
    logger.info("Started new session: %s", session.session_id)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye! Take care of your loved ones.")
            break

        if user_input.lower() == "new":
            session = ConversationSession(str(uuid.uuid4()))
            print(f"\n>> New session started: {session.session_id[:8]}...\n")
            continue

        try:
            result = dispatch_turn(agent, session, user_input, store.list_people())
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            logger.exception("Error processing message")
            print(f"\nKinfolk: I'm sorry, something went wrong: {e}\n")
            continue

        print(f"\nKinfolk: {result.text}")
        for outcome in result.mutations:
            print(f"  [{_STATUS_MARKS[outcome.status]}] {outcome.message}")
        print()


if __name__ == "__main__":
    main()
