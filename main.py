#!/usr/bin/env python3
"""
Main entry point for the site mirroring crawler.
"""

import asyncio
import argparse
import logging
import sys
from typing import List, Optional

from sitemirror import __version__
from sitemirror.errors import ConfigError
from sitemirror.utils.config import load_config, Config
from sitemirror.utils.logger import setup_logging, log_system_info
from sitemirror.crawler.scheduler import CrawlerScheduler


class CrawlerApp:
    """Main application class for the mirroring crawler."""

    def __init__(self):
        self.scheduler: Optional[CrawlerScheduler] = None
        self.logger = logging.getLogger(__name__)

    async def run(self, config: Config) -> int:
        """Run one crawl to completion."""
        crawl = config.crawl
        self.logger.info("=== SITE MIRROR STARTING ===")
        self.logger.info(f"Seed URL: {crawl.seed_url}")
        self.logger.info(f"Max depth: {crawl.max_depth}")
        self.logger.info(f"Workers: {crawl.workers}")
        self.logger.info(f"Output directory: {crawl.output_dir}")
        self.logger.info(f"Same domain only: {crawl.same_domain}")
        log_system_info()

        self.scheduler = CrawlerScheduler(config)
        try:
            await self.scheduler.initialize()
            stats = await self.scheduler.start_crawling()
        finally:
            await self.scheduler.close()
            self.logger.info("=== SITE MIRROR FINISHED ===")

        self.logger.info(f"Mirrored {stats.saved} files, {stats.failed} failures")
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recursively mirror a website to a local directory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py https://example.com                    # depth 1 into ./mirror
  python main.py https://example.com --depth 3 -w 10    # deeper, more workers
  python main.py --config mirror.yaml                   # seed and options from YAML
  python main.py https://example.com --allow-external  # follow other hosts too
        """
    )

    parser.add_argument('url', nargs='?', help='Seed URL to start mirroring from')
    parser.add_argument('--url', dest='url_option', metavar='URL', help='Seed URL (alternative to the positional argument)')
    parser.add_argument('-d', '--depth', type=int, help='Maximum recursion depth (default: 1)')
    parser.add_argument('-w', '--workers', type=int, help='Number of concurrent workers (default: 5)')
    parser.add_argument('-o', '--output', help='Output directory (default: ./mirror)')
    parser.add_argument('-t', '--timeout', type=float, help='Per-request timeout in seconds (default: 30)')
    parser.add_argument('--user-agent', help='User-Agent header sent with every request')
    parser.add_argument('--allow-external', action='store_true',
                        help='Also download links on hosts other than the seed host')
    parser.add_argument('--manifest', action='store_true',
                        help='Write manifest.json with every mirrored URL')
    parser.add_argument('--config', help='Path to a YAML configuration file')
    parser.add_argument('--log-level', help='Logging level (default: INFO)')
    parser.add_argument('--log-file', help='Also log to this file (rotated)')
    parser.add_argument('--json-logs', action='store_true', help='Emit logs as JSON')
    parser.add_argument('--metrics-port', type=int, help='Expose Prometheus metrics on this port')
    parser.add_argument('--version', action='version', version=f'Site Mirror {__version__}')

    return parser


def args_to_overrides(args: argparse.Namespace) -> dict:
    """Translate parsed flags into config overrides (None means "not given")."""
    return {
        'crawl': {
            'seed_url': args.url_option or args.url,
            'max_depth': args.depth,
            'workers': args.workers,
            'output_dir': args.output,
            'request_timeout': args.timeout,
            'user_agent': args.user_agent,
            'same_domain': False if args.allow_external else None,
            'write_manifest': True if args.manifest else None,
        },
        'logging': {
            'level': args.log_level,
            'file': args.log_file,
            'json': True if args.json_logs else None,
        },
        'monitoring': {
            'metrics_enabled': True if args.metrics_port else None,
            'prometheus_port': args.metrics_port,
        },
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, args_to_overrides(args))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(config))
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
