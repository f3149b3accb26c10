#!/usr/bin/env python3
"""CLI helper that corrects a local DOCX manuscript without the HTTP server."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path


def _configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="DOCX file to correct")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the corrections as JSON to this file instead of stdout",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging()

    project_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(project_root / "src"))

    from corrector.config import load_env_file  # noqa: WPS433
    from corrector.errors import EngineUnavailableError  # noqa: WPS433
    from corrector.services.correction import CorrectionService  # noqa: WPS433

    load_env_file()

    if not args.path.is_file():
        logging.error("File not found: %s", args.path)
        return 1

    try:
        service = CorrectionService()
    except EngineUnavailableError as error:
        logging.error("Correction engine is not available: %s", error)
        return 1

    data = args.path.read_bytes()
    job_id = service.register_job(args.path.name)
    outcome = asyncio.run(service.process_document(job_id, args.path.name, data))
    if outcome is None:
        record = service.registry.get(job_id)
        logging.error("Job %s failed: %s", job_id, record.error if record else "unknown error")
        return 1

    payload = {
        **outcome.metadata.to_record(),
        "corrections": [correction.to_record() for correction in outcome.corrections],
    }
    rendered = json.dumps(payload, ensure_ascii=False, indent=2)
    if args.output:
        args.output.write_text(rendered, encoding="utf-8")
        logging.info("Wrote %s corrections to %s", len(outcome.corrections), args.output)
    else:
        print(rendered)

    rejected = sum(1 for correction in outcome.corrections if correction.verified is False)
    logging.info(
        "Job %s: %s corrections (%s flagged as false positives), %s tokens, persisted=%s",
        job_id,
        len(outcome.corrections),
        rejected,
        outcome.usage.total_tokens,
        outcome.persisted,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
