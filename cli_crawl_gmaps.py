#!/usr/bin/env python3
"""
CLI for the Google Maps crawler.

Reads one query per line (``<query> #!# <id>`` to tag results) from a file
or stdin, crawls every search and its places, and prints a summary.

Example:
    echo "coffee shops berlin #!#42" | python cli_crawl_gmaps.py --input - --depth 5 --results places.jsonl
"""

import argparse
import asyncio
import json
import signal
import sys

from runner.logging_setup import configure_logging, setup_logging
from scrape_gmaps.gmaps_config import get_config
from scrape_gmaps.gmaps_errors import ConfigurationError
from scrape_gmaps.job_engine import JobEngine
from scrape_gmaps.seeds import create_seed_jobs

logger = setup_logging("gmaps_cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the Google Maps crawler')
    parser.add_argument('--input', default='-', help='Query file, one query per line ("-" for stdin)')
    parser.add_argument('--lang', default=None, help='Interface language code (default: GMAPS_LANG or "en")')
    parser.add_argument('--depth', type=int, default=None, help='Feed scroll depth per search')
    parser.add_argument('--email', action='store_true', default=None, help='Flag place records for email extraction')
    parser.add_argument('--concurrency', type=int, default=None, help='Number of browser workers')
    parser.add_argument('--results', default=None, help='Write place records to this JSON lines file')
    parser.add_argument('--accept-listing', action='store_true', default=None,
                        help='Treat searches that stay on a listing page as a results feed')
    parser.add_argument('--headless', dest='headless', action='store_true', default=None, help='Run browsers headless')
    parser.add_argument('--headed', dest='headless', action='store_false', help='Show the browser windows')
    return parser


def read_lines(path: str):
    if path == '-':
        return sys.stdin.read().splitlines()
    with open(path, encoding='utf-8') as f:
        return f.read().splitlines()


def apply_args(config, args):
    """Command line flags override environment configuration."""
    if args.lang is not None:
        config.lang_code = args.lang
    if args.depth is not None:
        config.max_depth = args.depth
    if args.email is not None:
        config.extract_email = args.email
    if args.concurrency is not None:
        config.engine.concurrency = args.concurrency
    if args.accept_listing is not None:
        config.navigation.accept_listing_pages = args.accept_listing
    if args.headless is not None:
        config.playwright.headless = args.headless
    return config


async def crawl(config, lines):
    engine = JobEngine(config)

    loop = asyncio.get_running_loop()
    loop.add_signal_handler(signal.SIGTERM, engine.stop)

    jobs = create_seed_jobs(config.lang_code, lines, config.max_depth, config.extract_email, config)
    logger.info(f"Starting crawl: {len(jobs)} search jobs")

    results = await engine.run(jobs)
    return results, engine.get_stats()


def write_results(path: str, results):
    with open(path, 'w', encoding='utf-8') as f:
        for record in results:
            f.write(json.dumps(record.to_dict()) + '\n')


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = apply_args(get_config(), args)
    try:
        config.validate()
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level, config.log_dir)

    print("Starting Google Maps Crawler")
    print(f"Language: {config.lang_code}")
    print(f"Depth: {config.max_depth}")
    print(f"Concurrency: {config.engine.concurrency}")
    print("-" * 60)

    lines = read_lines(args.input)
    results, stats = asyncio.run(crawl(config, lines))

    if args.results:
        write_results(args.results, results)
        print(f"Wrote {len(results)} place records to {args.results}")

    print("-" * 60)
    print("Crawl Complete!")
    print(f"Jobs Completed: {stats['jobs_completed']}")
    print(f"Jobs Failed: {stats['jobs_failed']}")
    print(f"Retries: {stats['jobs_retried']}")
    print(f"Places Found: {stats['places_found']}")
    print(f"Place Records: {stats['results']}")

    return 0 if stats['jobs_failed'] == 0 else 1


if __name__ == '__main__':
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nCancelled by user", file=sys.stderr)
        sys.exit(130)
