#!/usr/bin/env python3
"""Generate sample BTO data by simulating a launch.

Writes the CSV files the engine loads at startup (ApplicantList.csv,
ProjectList.csv, ApplicationList.csv, ...) and, optionally, JSON
snapshots and domain events through the configured sinks.
"""

import argparse
import json
import sys
from datetime import date, datetime
from pathlib import Path

from bto_alloc.config import BtoConfig, EventConfig, ScenarioConfig
from bto_alloc.exceptions import BtoError
from bto_alloc.logging import get_logger, setup_logging
from bto_alloc.scenarios import LaunchScenario
from bto_alloc.sinks import build_sinks
from bto_alloc.store import AllocationStore, CsvStorage

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    config = BtoConfig.from_env()

    parser = argparse.ArgumentParser(description="Generate sample BTO launch data")
    parser.add_argument(
        "--projects",
        type=int,
        default=3,
        help="Number of projects, one per manager (default: 3)",
    )
    parser.add_argument(
        "--applicants",
        type=int,
        default=50,
        help="Number of applicants to generate (default: 50)",
    )
    parser.add_argument(
        "--officers",
        type=int,
        default=5,
        help="Number of officers to generate (default: 5)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=config.seed if config.seed is not None else 42,
        help="Random seed for reproducibility (default: SEED or 42)",
    )
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Simulated launch day, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=config.storage.data_dir,
        help=f"Directory for the CSV files (default: {config.storage.data_dir})",
    )
    parser.add_argument(
        "--sinks",
        type=str,
        default=",".join(config.events.sinks),
        help="Comma-separated event sinks: console, json, kafka (default: EVENT_SINKS)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=config.log_level,
        help="Log level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs",
    )
    args = parser.parse_args(argv)
    args.config = config
    return args


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level, "json" if args.json_logs else "standard")

    config: BtoConfig = args.config
    try:
        config.events = EventConfig(
            sinks=tuple(s.strip() for s in args.sinks.split(",") if s.strip()),
            topic_prefix=config.events.topic_prefix,
            output_dir=config.events.output_dir,
            pretty_json=config.events.pretty_json,
        )
        sinks = build_sinks(config)
    except BtoError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    scenario_config = ScenarioConfig(
        num_projects=args.projects,
        num_applicants=args.applicants,
        num_officers=args.officers,
    )

    logger.info("=" * 60)
    logger.info("BTO sample data - launch simulation")
    logger.info("=" * 60)
    logger.info("Projects: %d, applicants: %d, officers: %d", args.projects, args.applicants, args.officers)
    logger.info("Seed: %d", args.seed)
    logger.info("Data dir: %s", args.data_dir)
    logger.info("Event sinks: %s", ", ".join(config.events.sinks) or "none")

    started = datetime.now()
    scenario = LaunchScenario(
        scenario_config,
        seed=args.seed,
        today=args.today,
        rules=config.eligibility,
        store=AllocationStore(),
        event_sinks=sinks,
    )

    try:
        store = scenario.generate()
        CsvStorage(args.data_dir, config.storage.date_format).save_all(store)
        scenario.export(sinks)
    except BtoError as exc:
        logger.error("Generation failed [%s]: %s", exc.code, exc)
        return 1
    finally:
        for sink in sinks:
            sink.close()

    elapsed = (datetime.now() - started).total_seconds()
    logger.info("Done in %.2fs", elapsed)
    print(json.dumps(scenario.get_launch_summary(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
