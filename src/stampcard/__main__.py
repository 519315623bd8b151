"""Command line entry point for the loyalty ledger.

Example:
    python -m stampcard scan "COMPANY:0000042:Corner Cafe"
    python -m stampcard redeem company-0000042
    python -m stampcard sync
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any, Sequence

from loguru import logger

from stampcard import __version__
from stampcard.app import StampcardApp, create_app
from stampcard.core.logging import configure_logging
from stampcard.core.settings import get_settings
from stampcard.domain.qr import decode
from stampcard.schemas.customer import ProgressKind


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="stampcard", description="Offline-first loyalty ledger")
    commands = parser.add_subparsers(dest="command", required=True)

    decode_parser = commands.add_parser("decode", help="Decode a QR payload without recording it.")
    decode_parser.add_argument("raw", help="Raw string read from the QR code.")

    scan_parser = commands.add_parser("scan", help="Record a scan against the local customer record.")
    scan_parser.add_argument("raw", help="Raw string read from the QR code.")

    redeem_parser = commands.add_parser("redeem", help="Redeem an earned reward or campaign.")
    redeem_parser.add_argument("entity_id", help="Reward or campaign id.")
    redeem_parser.add_argument("--campaign", action="store_true", help="Redeem a campaign instead of a reward.")

    profile_parser = commands.add_parser("profile", help="Update profile fields.")
    profile_parser.add_argument(
        "fields",
        nargs="+",
        metavar="FIELD=VALUE",
        help="Profile fields by camelCase or snake_case name, e.g. name='Ada Lovelace'.",
    )

    commands.add_parser("sync", help="Push queued changes and pull remote updates once.")
    commands.add_parser("status", help="Show sync status and customer totals.")
    commands.add_parser("logout", help="Upload the record if newer and clear the session.")
    return parser.parse_args(argv)


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _parse_fields(pairs: Sequence[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise SystemExit(f"Invalid field assignment: {pair!r}")
        fields[key.strip()] = value
    return fields


async def _dispatch(app: StampcardApp, args: argparse.Namespace) -> int:
    if args.command == "scan":
        result = await app.scanner.process(args.raw)
        _emit(
            {
                "status": result.status.value,
                "message": result.message,
                "kind": result.kind.value if result.kind else None,
                "newlyEarned": result.outcome.is_newly_earned if result.outcome else False,
            }
        )
        return 0 if result.outcome else 1

    if args.command == "redeem":
        if args.campaign:
            progress = await app.ledger.redeem_campaign(args.entity_id)
        else:
            progress = await app.ledger.redeem(args.entity_id)
        if progress is None:
            logger.error("Nothing earned to redeem", entity_id=args.entity_id)
            return 1
        _emit(progress.model_dump(mode="json", by_alias=True, exclude_none=True))
        return 0

    if args.command == "profile":
        record = await app.ledger.update_profile(_parse_fields(args.fields))
        _emit(record.profile.model_dump(mode="json", by_alias=True, exclude_none=True))
        return 0

    if args.command == "sync":
        result = await app.sync()
        full = await app.customer_sync.perform_full_sync()
        _emit({**result.model_dump(), "fullSync": asdict(full)})
        return 0 if not result.errors and full.success else 1

    if args.command == "status":
        status = await app.sync_manager.get_status()
        stats = await app.ledger.get_stats()
        _emit(
            {
                "sync": status.model_dump(mode="json", by_alias=True),
                "stats": stats.model_dump(mode="json", by_alias=True),
                "activeRewards": len(await app.ledger.list_active(ProgressKind.REWARD)),
                "earnedRewards": len(await app.ledger.list_earned(ProgressKind.REWARD)),
                "deadLetters": len(await app.queue.dead_letters()),
                "telemetry": app.observability.snapshot().as_dict(),
            }
        )
        return 0

    if args.command == "logout":
        result = await app.customer_sync.logout()
        _emit(asdict(result))
        return 0 if result.success else 1

    raise SystemExit(f"Unknown command: {args.command}")


async def _run(args: argparse.Namespace) -> int:
    app = await create_app()
    try:
        return await _dispatch(app, args)
    finally:
        await app.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(
        service_name=settings.service_name,
        environment=settings.environment,
        version=__version__,
        level=settings.log_level,
        log_format=settings.log_format,
    )

    if args.command == "decode":
        payload = decode(args.raw)
        _emit({"type": payload.type, "data": asdict(payload.data) if payload.data is not None else None})
        return 0 if payload.type != "unknown" else 1

    exit_code = asyncio.run(_run(args))
    logger.success("Command completed", command=args.command, exit_code=exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
