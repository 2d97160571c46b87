"""Command-line interface for the equipment rental webhook."""

from __future__ import annotations

import argparse
import logging
import sys

import httpx

from .config import LOG_LEVELS, ConfigurationError, Settings
from .records_gateway import RecordsApiError
from .runner import run_record_update

logger = logging.getLogger("rental_sync")

FAILURE_MESSAGE = "The script encountered an unrecoverable error."


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Synchronise equipment rental data for a triggering record"
    )
    parser.add_argument("record_id", help="Identifier of the triggering record")
    parser.add_argument(
        "project_id", nargs="?", help="Project identifier (accepted, not used)"
    )
    parser.add_argument(
        "--refresh-asset",
        action="store_true",
        help="Treat the record as an asset and mirror its current child rental",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Override the LOG_LEVEL environment setting",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # --help exits 0; a missing record id is a failed run
        return 0 if exc.code == 0 else 1

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logging.basicConfig(level=args.log_level or logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        print(FAILURE_MESSAGE, file=sys.stderr)
        return 1

    logging.basicConfig(
        level=args.log_level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        outcome = run_record_update(
            args.record_id,
            args.project_id,
            settings=settings,
            refresh=args.refresh_asset,
        )
    except (RecordsApiError, httpx.HTTPError) as exc:
        logger.error("Error during record processing: %s", exc)
        print(FAILURE_MESSAGE, file=sys.stderr)
        return 1
    except Exception:
        logger.exception("Unexpected error during record processing")
        print(FAILURE_MESSAGE, file=sys.stderr)
        return 1

    logger.info(
        "Finished %s (%s); updated %d record(s)",
        outcome.record_id,
        outcome.classification.value if outcome.classification else "no action",
        len(outcome.updated_ids),
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
