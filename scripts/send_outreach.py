#!/usr/bin/env python3
"""
Outreach Dispatch Script

Sends the invite or follow-up email to a batch of signups from the command line,
with the same idempotency and per-item reporting as the API.

Usage:
    python send_outreach.py --stage invite 101 102 103
    python send_outreach.py --stage follow-up 101 102
    python send_outreach.py --stage invite --preview 101
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.errors import OutreachError
from domain.signup import OutreachStage
from repositories.client import get_supabase_client
from repositories.signup_repository import SignupRepository
from services.config import load_outreach_settings
from services.dispatch_service import DispatchFailure, DispatchResult, DispatchStatus, OutreachDispatcher
from services.email_channel import ResendEmailChannel

STAGES = {
    "invite": OutreachStage.INVITE,
    "follow-up": OutreachStage.FOLLOW_UP,
}


def format_result(result: DispatchResult) -> str:
    line = f"{result.id:>8}  {result.status.value:<12}"
    if result.error:
        line += f"  {result.error}"
    if result.failure:
        line += f"  [{result.failure.value}]"
    return line


def print_summary(results: List[DispatchResult]) -> None:
    sent = sum(1 for r in results if r.status is DispatchStatus.SENT)
    already = sum(1 for r in results if r.status is DispatchStatus.ALREADY_SENT)
    errors = [r for r in results if r.status is DispatchStatus.ERROR]
    unrecorded = [r for r in errors if r.failure is DispatchFailure.NOT_RECORDED]

    print()
    print("=" * 60)
    print("DISPATCH SUMMARY")
    print("=" * 60)
    print(f"Sent:          {sent}")
    print(f"Already sent:  {already}")
    print(f"Errors:        {len(errors)}")
    if unrecorded:
        print()
        print("Delivered but NOT recorded (reconcile manually):")
        for r in unrecorded:
            print(f"  signup {r.id} (message id: {r.message_id})")
    print("=" * 60)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Send an outreach stage to a batch of waitlist signups"
    )

    parser.add_argument(
        "--stage",
        "-s",
        required=True,
        choices=sorted(STAGES),
        help="Outreach stage to send"
    )

    parser.add_argument(
        "--preview",
        action="store_true",
        help="Print the rendered email for the first ID instead of sending"
    )

    parser.add_argument(
        "ids",
        nargs="+",
        type=int,
        help="Signup IDs, processed in the given order"
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        settings = load_outreach_settings()
        dispatcher = OutreachDispatcher(
            SignupRepository(get_supabase_client()),
            ResendEmailChannel(settings.resend_api_key),
            settings,
        )
        stage = STAGES[args.stage]

        if args.preview:
            rendered = dispatcher.preview(args.ids[0], stage)
            print(f"Subject: {rendered.subject}")
            print()
            print(rendered.html)
            return 0

        results = dispatcher.dispatch(args.ids, stage)
        for result in results:
            print(format_result(result))
        print_summary(results)

        return 1 if any(r.status is DispatchStatus.ERROR for r in results) else 0

    except KeyboardInterrupt:
        print("\n\nDispatch interrupted by user")
        return 130

    except (OutreachError, RuntimeError) as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
