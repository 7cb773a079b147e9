# main.py
"""CLI entry point for reading-activity content generation."""

from __future__ import annotations

import argparse
import sys

from models import ActivityType
from orchestration.cli_runner import ALL_ACTIVITIES, run


def main(argv: list[str] | None = None) -> int:
    """Parse command-line arguments and generate activity content."""
    parser = argparse.ArgumentParser(
        description="Generate reading activity content for a story."
    )
    parser.add_argument("story_file", help="Path to a UTF-8 text file with the story")
    parser.add_argument(
        "--activity",
        default=ActivityType.WHO.value,
        choices=[t.value for t in ActivityType] + [ALL_ACTIVITIES],
        help="Activity type to generate, or 'all'",
    )
    parser.add_argument("--age", type=int, default=9, help="Reader age in years")
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Skip the cache lookup and regenerate",
    )
    args = parser.parse_args(argv)
    if args.age < 0:
        parser.error("--age must be zero or greater")
    return run(args.story_file, args.activity, args.age, use_cache=not args.no_cache)


if __name__ == "__main__":
    sys.exit(main())
