#!/usr/bin/env python3
"""
Command line entry point for the Google Maps scraper.

Usage:
    cd backend
    python -m maps_scraper.main --input INPUT.json

Examples:
    python -m maps_scraper.main --input INPUT.json --max-places 20
    python -m maps_scraper.main --input INPUT.json --log-level DEBUG
"""

import argparse
import asyncio
import json
import logging
import re
import sys
from typing import List, Optional

from .base import ConfigurationError, RunResult
from .config import ScrapeInput, load_input
from .context import RunContext
from .manager import ScrapeOrchestrator
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

# Libraries that are chatty at INFO
QUIET_LOGGERS = ['crawlee', 'crawlee.storages', 'playwright', 'httpx', 'httpcore', 'apify_client']


class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


def setup_logging(settings: Settings, level: Optional[str] = None):
    """Console handler with colors, file handler with colors stripped."""
    settings.log_dir.mkdir(exist_ok=True)

    file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
    file_handler.setFormatter(ColorStripFormatter(settings.log_format))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(settings.log_format))

    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        handlers=[file_handler, console_handler],
        force=True  # Override any existing configuration
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


async def run_scrape(scrape_input: ScrapeInput, settings: Settings) -> RunResult:
    async with RunContext.open(scrape_input, settings) as ctx:
        return await ScrapeOrchestrator(ctx).run()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Scrape places from Google Maps')
    parser.add_argument('--input', default='INPUT.json', help='Path to the run input JSON')
    parser.add_argument('--max-places', type=int, help='Override maxPlaces from the input')
    parser.add_argument('--log-level', type=str, help='Override LOG_LEVEL (e.g. DEBUG)')

    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings, args.log_level)

    try:
        with open(args.input, encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input {args.input}: {e}")
        return 2

    if args.max_places is not None and isinstance(data, dict):
        data['maxPlaces'] = args.max_places

    try:
        scrape_input = load_input(data)
        result = asyncio.run(run_scrape(scrape_input, settings))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
