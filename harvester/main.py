"""
Main entry point for the resumable Muck Rack harvester.
"""

import argparse
import functools
import json
import signal
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import (
    CrawlConfig,
    HarvesterConfig,
    MultiloginConfig,
    RateLimitConfig,
    RetryConfig,
    default_data_dir,
    default_headless,
    default_retry_failed_on_resume,
)
from .context import CrawlContext
from .crawl_controller import CrawlController
from .errors import ConfigError, HarvesterError
from .muckrack import EXTRACTORS


def load_environment(env_path: Optional[Path] = None):
    """Load .env from the working directory if present."""
    env_path = env_path or Path.cwd() / '.env'
    if not env_path.exists():
        print(f"⚠️  Warning: .env file not found at {env_path}")
        print("Using environment variables from system")
    else:
        load_dotenv(env_path)
        print("✓ Loaded environment from .env")


def signal_handler(context: CrawlContext, signum, frame):
    """Handle SIGINT/SIGTERM for graceful shutdown."""
    print("\n\n" + "=" * 60)
    print("STOP SIGNAL RECEIVED - SHUTTING DOWN GRACEFULLY")
    print("=" * 60)
    context.request_stop(signal.Signals(signum).name)
    print("Waiting for current operation to complete...")


def install_signal_handlers(context: CrawlContext):
    handler = functools.partial(signal_handler, context)
    signal.signal(signal.SIGINT, handler)
    # SIGTERM is not reliably available on Windows
    if hasattr(signal, 'SIGTERM') and sys.platform != 'win32':
        signal.signal(signal.SIGTERM, handler)


def build_config(args) -> HarvesterConfig:
    """Combine CLI arguments with environment defaults."""
    rate_limit = RateLimitConfig(base_delay=args.delay)
    retry = RetryConfig(max_retries=args.retries)
    crawl = CrawlConfig(
        max_items=args.max_items,
        start_page=args.start_page,
        batch_size=args.batch_size,
        retry_failed_on_resume=default_retry_failed_on_resume(),
    )
    return HarvesterConfig(
        target=args.target,
        data_dir=args.data_dir or default_data_dir(),
        headless=default_headless() if args.headless is None else args.headless,
        local_browser=args.local_browser,
        rate_limit=rate_limit,
        retry=retry,
        crawl=crawl,
        multilogin=MultiloginConfig.from_env(),
    )


def print_summary(result):
    print("\n" + "=" * 60)
    print("CRAWL INTERRUPTED" if result.phase == 'interrupted' else "CRAWL COMPLETE")
    print("=" * 60)
    print(f"Target:      {result.target}")
    print(f"Phase:       {result.phase}")
    print(f"Duration:    {result.duration_seconds / 60:.1f} minutes")
    print(f"Collected:   {result.total_collected}")
    print(f"Processed:   {result.total_processed}")
    print(f"Skipped:     {result.total_skipped}")
    print(f"Failed:      {result.total_failed}")
    print(f"Speed:       {result.items_per_hour:.1f} items/hour")

    if result.failed_urls:
        print(f"\nFailed URLs ({len(result.failed_urls)}):")
        for f in result.failed_urls[:10]:
            print(f"  - {f['url']}: {f['reason'][:50]}")
        if len(result.failed_urls) > 10:
            print(f"  ... and {len(result.failed_urls) - 10} more")

    if result.phase == 'interrupted':
        print("\nRun again with --resume to continue from the checkpoint")


def run_crawl(args, config: HarvesterConfig) -> int:
    """Run a full crawl with CrawlController."""
    context = CrawlContext()
    controller = CrawlController(config, context=context)
    install_signal_handlers(context)

    result = controller.run(fresh=args.fresh, resume=args.resume)
    print_summary(result)
    return 0 if result.success or result.phase == 'interrupted' else 1


def run_stats(config: HarvesterConfig) -> int:
    stats = CrawlController(config).get_stats()
    print(json.dumps(stats, indent=2))
    return 0


def run_force_stop(config: HarvesterConfig) -> int:
    """Stop a remote browser profile left locked by a previous run."""
    from .browser import MultiloginSessionFactory

    config.multilogin.validate()
    print("Force stopping Multilogin profile...")
    MultiloginSessionFactory(config.multilogin).force_stop()
    print("✓ Profile stopped")
    return 0


def run_single(url: str, config: HarvesterConfig) -> int:
    controller = CrawlController(config)
    if not controller.extractor.accepts(url):
        print(f"⚠️  {url} does not look like a {config.target} page")

    print(f"Extracting: {url}")
    record = controller.extract_one(url)
    if record is None:
        print("✗ Failed to extract")
        return 1
    print(json.dumps(record, indent=2, ensure_ascii=False))
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='harvester',
        description='Resumable Muck Rack directory harvester',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start or continue a crawl
  harvester

  # Discard all saved state and start over
  harvester --fresh

  # Resume, skipping URL collection when enough URLs are queued
  harvester --resume --headless

  # Crawl media outlets with a local browser
  harvester --target outlets --local-browser

  # Show saved progress
  harvester --stats

  # Single URL
  harvester --url https://muckrack.com/jane-doe
"""
    )

    start = parser.add_mutually_exclusive_group()
    start.add_argument(
        '--fresh',
        action='store_true',
        help='Clear all saved state and start from scratch'
    )
    start.add_argument(
        '--resume',
        action='store_true',
        help='Resume from checkpoint, skipping URL collection if enough URLs exist'
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--headless',
        dest='headless',
        action='store_true',
        default=None,
        help='Run browser in headless mode (default from HEADLESS)'
    )
    mode.add_argument(
        '--headed',
        dest='headless',
        action='store_false',
        help='Run browser with a visible window'
    )

    parser.add_argument(
        '--target',
        choices=sorted(EXTRACTORS),
        default='profiles',
        help='Directory to crawl (default: profiles)'
    )
    parser.add_argument(
        '--max-items',
        type=int,
        default=175000,
        help='Target number of detail records (default: 175000)'
    )
    parser.add_argument(
        '--start-page',
        type=int,
        default=1,
        help='First listing page to collect (default: 1)'
    )
    parser.add_argument(
        '--batch-size',
        type=int,
        default=50,
        help='Records per archived batch file (default: 50)'
    )
    parser.add_argument(
        '--delay',
        type=float,
        default=2.0,
        help='Base delay between detail pages in seconds (default: 2.0)'
    )
    parser.add_argument(
        '--retries',
        type=int,
        default=3,
        help='Max attempts per URL (default: 3)'
    )
    parser.add_argument(
        '--data-dir',
        type=Path,
        help='Directory for state, batches and CSV output (default from HARVESTER_DATA_DIR)'
    )
    parser.add_argument(
        '--local-browser',
        action='store_true',
        help='Use a local SeleniumBase browser instead of Multilogin'
    )

    commands = parser.add_mutually_exclusive_group()
    commands.add_argument(
        '--stats',
        action='store_true',
        help='Print saved progress statistics and exit'
    )
    commands.add_argument(
        '--force-stop',
        action='store_true',
        help='Stop a locked Multilogin profile and exit'
    )
    commands.add_argument(
        '--url',
        type=str,
        help='Extract a single detail URL and print the record'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    load_environment()
    config = build_config(args)

    try:
        if args.stats:
            return run_stats(config)
        if args.force_stop:
            return run_force_stop(config)
        if args.url:
            return run_single(args.url, config)
        return run_crawl(args, config)
    except ConfigError as e:
        print(f"✗ Configuration error: {e}")
        return 2
    except HarvesterError as e:
        print(f"✗ Crawl failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
