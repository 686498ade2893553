#!/usr/bin/env python3

from assistant import Assistant
from logger import get_logger

logger = get_logger()

EXIT_WORDS = ("exit", "quit", "退出")


def cmd_ask(args, services):
    """Answer a question about the ledger."""
    answer = Assistant(services).ask(" ".join(args.question))
    logger.info(answer)


def cmd_record(args, services):
    """Record one or more transactions described in free text."""
    outcome = Assistant(services).record_many(" ".join(args.text))
    logger.info(outcome.reply())


def cmd_voice(args, services):
    """Record a single transaction from a speech transcript."""
    outcome = Assistant(services).record_voice(" ".join(args.transcript))
    logger.info(outcome.reply())


def cmd_chat(args, services):
    """Interactive session: statements are recorded, questions are answered."""
    assistant = Assistant(services)
    logger.info("Tally assistant. Type 'exit' to leave.")
    while True:
        try:
            text = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            logger.info("")
            break

        if text.lower() in EXIT_WORDS:
            break
        reply = assistant.handle(text)
        if reply:
            logger.info(reply)


def setup_parser(subparsers):
    """Setup the assistant commands (ask, record, voice, chat).

    Args:
        subparsers: The subparsers object from the main CLI
    """
    ask_parser = subparsers.add_parser(
        "ask",
        help="Ask a question about your spending",
        description="Ask in plain language, e.g. '这个月餐饮花了多少'",
    )
    ask_parser.add_argument("question", nargs="+", help="The question")
    ask_parser.set_defaults(func=cmd_ask)

    record_parser = subparsers.add_parser(
        "record",
        help="Record transactions from free text",
        description=(
            "Record one or more transactions, e.g. '午饭15，打车20' "
            "or 'coffee 4.5 then groceries 32'"
        ),
    )
    record_parser.add_argument("text", nargs="+", help="What you spent or earned")
    record_parser.set_defaults(func=cmd_record)

    voice_parser = subparsers.add_parser(
        "voice",
        help="Record a transaction from a speech transcript",
    )
    voice_parser.add_argument("transcript", nargs="+", help="Transcribed speech")
    voice_parser.set_defaults(func=cmd_voice)

    chat_parser = subparsers.add_parser("chat", help="Interactive assistant session")
    chat_parser.set_defaults(func=cmd_chat)
