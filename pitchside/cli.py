"""
Maintenance commands.

Usage:
    pitchside update-leagues   # unconditional leagues refresh (exit 1 on failure)
    pitchside cleanup          # purge past matches and expired analytics
"""
import argparse
import logging
import sys
from typing import List, Optional

from pitchside.cache.manager import get_aggregation_cache
from pitchside.errors import RateLimited, UpstreamUnavailable

logger = logging.getLogger("pitchside.cli")


def update_leagues() -> int:
    try:
        envelope = get_aggregation_cache().refresh_leagues()
    except (UpstreamUnavailable, RateLimited) as e:
        logger.error(f"Leagues update failed: {e}")
        return 1
    logger.info(f"Leagues update complete: {len(envelope.payload['leagues'])} leagues, "
                f"{envelope.payload['match_count']} matches")
    return 0


def cleanup(retention_days: Optional[int] = None) -> int:
    cache = get_aggregation_cache()
    matches = cache.cleanup_old_matches()
    analytics = cache.analytics.cleanup_old_analytics(retention_days)
    logger.info(f"Cleanup complete: {matches} matches, {analytics} analytics records removed")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    parser = argparse.ArgumentParser(prog="pitchside", description="Pitchside maintenance commands")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("update-leagues", help="Refresh scheduled matches for every league")
    cleanup_parser = commands.add_parser("cleanup", help="Purge past matches and expired analytics")
    cleanup_parser.add_argument(
        "--retention-days",
        type=int,
        default=None,
        help="Keep analytics updated within this many days (default from settings)",
    )

    args = parser.parse_args(argv)
    if args.command == "update-leagues":
        return update_leagues()
    return cleanup(args.retention_days)


if __name__ == "__main__":
    sys.exit(main())
