#!/usr/bin/env python3
"""
CLI entrypoint for the election research pipeline.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from civic_client import CivicClient
from config import ElectionSourceConfig
from errors import ConfigurationError, SeedSourceError
from file_utils import RunArtifactManager
from logging_utils import get_error_info, log_exception, setup_run_logging
from model_gateway import OpenAIModelGateway
from models import SeedElection
from pipeline import ElectionResearchPipeline
from scheduling import SchedulingPolicy
from seed_sources import read_seed_elections_csv


def enable_debug_logging() -> None:
    logging.getLogger().setLevel(logging.DEBUG)
    for handler in logging.getLogger().handlers:
        handler.setLevel(logging.DEBUG)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Research candidates for upcoming elections.")
    parser.add_argument("--csv", type=str, default=ElectionSourceConfig.CSV_FILE_PATH or None,
                        help="Read seed elections from a CSV file instead of the Civic API.")
    parser.add_argument("--limit", type=int, default=ElectionSourceConfig.ELECTION_LIMIT,
                        help="Process at most this many elections (0 = all).")
    parser.add_argument("--output-dir", type=str, default=ElectionSourceConfig.OUTPUT_DIR,
                        help="Directory for run artifacts.")
    parser.add_argument("--no-delay", action="store_true",
                        help="Skip rate-limit delays between model calls.")
    parser.add_argument("--debug", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def load_seeds(csv_path: Optional[str]) -> List[SeedElection]:
    if csv_path:
        return read_seed_elections_csv(csv_path)
    return CivicClient(ElectionSourceConfig.GOOGLE_API_KEY).active_elections()


def apply_limit(seeds: List[SeedElection], limit: int) -> List[SeedElection]:
    if limit and limit > 0 and len(seeds) > limit:
        logging.getLogger(__name__).info(f"Limiting run to the first {limit} of {len(seeds)} elections")
        return seeds[:limit]
    return seeds


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        ElectionSourceConfig.validate(require_civic=not args.csv)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}")
        return 1

    recorder = RunArtifactManager(args.output_dir)
    source = f"csv:{args.csv}" if args.csv else "civic-api"
    level = getattr(logging, ElectionSourceConfig.LOG_LEVEL, logging.INFO)
    run_logger, log_path = setup_run_logging(recorder.run_dir, source, level=level)
    if args.debug:
        enable_debug_logging()
        run_logger.debug("Debug logging enabled.")

    try:
        seeds = apply_limit(load_seeds(args.csv), args.limit)
    except (SeedSourceError, ConfigurationError) as exc:
        log_exception(run_logger, exc, context="load_seeds", source=source)
        recorder.record_summary({"status": "failed", "error": get_error_info(exc, {"stage": "load_seeds"})})
        return 1

    recorder.record_seeds(seeds, source)
    if not seeds:
        run_logger.warning("No elections to process.")
        recorder.save_elections([])
        return 0

    policy = SchedulingPolicy.immediate() if args.no_delay else SchedulingPolicy()
    try:
        gateway = OpenAIModelGateway(api_key=ElectionSourceConfig.OPENAI_API_KEY)
        pipeline = ElectionResearchPipeline(gateway, policy=policy, logger=run_logger, recorder=recorder)
        elections = pipeline.process_batch(seeds)
    except ConfigurationError as exc:
        log_exception(run_logger, exc, context="process_batch", source=source)
        recorder.record_summary({"status": "aborted", "error": get_error_info(exc, {"stage": "process_batch"})})
        return 1

    output_path = recorder.save_elections(elections)
    run_logger.info(f"Run complete: {len(elections)} elections written to {output_path}")
    run_logger.info(f"Log file: {log_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
