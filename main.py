"""
Command-line runner for the voice-intake resolution pipeline.

Runs one complaint through begin -> handle -> summarize against the
customer records file and prints the case summary.

Usage:
    python main.py --customer cust_1001 --transcript "Please waive my annual fee"
    python main.py --customer cust_1001 --card 1881 --audio complaint.wav
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from card_agent.config import settings
from card_agent.errors import ResolutionError
from card_agent.pipeline import ResolutionPipeline
from card_agent.tools.actions import AccountActions
from card_agent.tools.customer import CustomerStore
from card_agent.tools.speech import SpeechClient

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resolve a credit card complaint from text or audio."
    )
    parser.add_argument("--customer", required=True, help="Customer id, e.g. cust_1001.")
    parser.add_argument("--card", default=None, help="Last four digits of the card (default: first card).")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--transcript", default=None, help="Complaint text.")
    source.add_argument("--audio", default=None, help="Path to a recorded complaint.")
    parser.add_argument(
        "--mime-type",
        default=settings.resolution.default_mime_type,
        help="MIME type of the audio file.",
    )
    parser.add_argument(
        "--data",
        default=settings.store.customer_data_path,
        help="Path to the customer records JSON file.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")
    return parser


async def _run(args: argparse.Namespace) -> int:
    audio = Path(args.audio).read_bytes() if args.audio else None
    customers = CustomerStore.from_file(args.data)

    async with SpeechClient() as speech:
        pipeline = ResolutionPipeline(customers, AccountActions(customers), speech)
        try:
            intake = await pipeline.begin(
                customer_id=args.customer,
                card_last4=args.card,
                transcript=args.transcript,
                audio=audio,
                mime_type=args.mime_type,
            )
            await pipeline.handle(intake.session_id)
            result = await pipeline.summarize(intake.session_id)
        except ResolutionError as e:
            logger.error("Resolution failed: %s", e)
            return 1
        finally:
            pipeline.store.close()

    sys.stdout.write(result.model_dump_json(indent=2) + "\n")
    return 0


def main() -> None:
    args = _build_parser().parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    data_path = Path(args.data)
    if not data_path.exists():
        logger.error("Customer data file not found: %s", data_path)
        sys.exit(1)

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
