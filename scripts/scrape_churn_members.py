"""CLI entrypoint: scrape members about to churn from an admin roster."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from roster_churn.config import get_output_dir, get_scrape_inputs
from roster_churn.logging_utils import setup_scrape_logging
from roster_churn.roster import ChurnRosterScraper, FileArtifactSink, ScrapeConfig, SeleniumConfig, SeleniumWorker
from roster_churn.roster.detector import DetectorConfig
from roster_churn.roster.loader import LoaderConfig

LOGGER = logging.getLogger("scrape_churn_members")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find trial/paid members about to churn on an admin roster")
    parser.add_argument(
        "--target-url",
        type=str,
        default=None,
        help="Community URL or identifier (falls back to ROSTER_TARGET_URL env).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for snapshots, dataset.jsonl and summary.json (default: ROSTER_OUTPUT_DIR or ./output). "
        "Each run writes into a timestamped subdirectory.",
    )
    parser.add_argument(
        "--headed",
        action="store_false",
        dest="headless",
        help="Show the Chrome window (headless by default).",
    )
    parser.set_defaults(headless=True)
    parser.add_argument(
        "--chrome-binary",
        type=Path,
        default=None,
        help="Path to Chrome/Chromium binary to launch (defaults to Selenium Manager discovery).",
    )
    parser.add_argument(
        "--settle",
        type=float,
        default=2.0,
        help="Seconds to wait after each scroll, detail open and dismissal (default 2).",
    )
    parser.add_argument(
        "--max-scrolls",
        type=int,
        default=20,
        help="Maximum scroll iterations while loading the roster (default 20).",
    )
    parser.add_argument(
        "--stable-scrolls",
        type=int,
        default=3,
        help="Consecutive unchanged height measurements that count as fully loaded (default 3).",
    )
    parser.add_argument(
        "--lookback",
        type=int,
        default=500,
        help="Characters to search backwards from a churn phrase for the member's @handle (default 500).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARN", "ERROR", "CRITICAL"],
        help="Console logging verbosity (default INFO). File always logs DEBUG.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-essential console output.",
    )
    parser.add_argument(
        "--no-color",
        action="store_false",
        dest="color",
        help="Disable ANSI colors on the console (colored only on a terminal by default).",
    )
    parser.set_defaults(color=None)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    console_log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    if args.quiet:
        console_log_level = logging.WARN
    setup_scrape_logging(console_level=console_log_level, quiet=args.quiet, use_color=args.color)

    try:
        inputs = get_scrape_inputs(args.target_url)
    except RuntimeError as err:
        LOGGER.error(str(err))
        return 2

    run_dir = (args.output_dir or get_output_dir()) / f"{inputs.community}_{datetime.now():%Y%m%d_%H%M%S}"
    sink = FileArtifactSink(run_dir)
    worker = SeleniumWorker(
        SeleniumConfig(headless=args.headless, chrome_binary=args.chrome_binary),
        sink=sink,
    )
    config = ScrapeConfig(
        loader=LoaderConfig(
            settle_seconds=args.settle,
            stable_threshold=max(1, args.stable_scrolls),
            max_iterations=max(1, args.max_scrolls),
        ),
        detector=DetectorConfig(lookback_chars=max(1, args.lookback)),
        detail_settle_seconds=args.settle,
    )

    LOGGER.info("Scraping churning members from %s into %s", inputs.community, run_dir)
    try:
        summary = ChurnRosterScraper(worker, sink, config).run(inputs)
    except KeyboardInterrupt:
        LOGGER.warning("Interrupted by user; shutting down cleanly")
        return 130
    except Exception as err:
        LOGGER.error("Scrape aborted: %s", err)
        return 1
    finally:
        worker.quit()

    LOGGER.info("Results saved to %s (%d members)", sink.root, summary.total_found)
    return 0


if __name__ == "__main__":
    sys.exit(main())
