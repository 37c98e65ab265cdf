"""
S3 sync entry point.

Environment variables (used as defaults):
- SOURCE_DIR: Local source directory
- S3_BUCKET: Destination bucket
- DEST_DIR: Key prefix (empty = bucket root)
- EXCLUDE_PATTERNS / INCLUDE_PATTERNS: Space-separated glob patterns
- DELETE_REMOVED / DRY_RUN: "true" to enable
- EXTRA_ARGS: Additional raw ``aws s3 sync`` arguments
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from cdk_cost_guardian.config import load_config
from cdk_cost_guardian.exceptions import ConfigError
from cdk_cost_guardian.handlers.common import configure_logging, write_github_output
from cdk_cost_guardian.sync.s3 import S3Sync, S3SyncError, SyncOptions, build_sync_args

logger = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    env = os.environ.get
    parser = argparse.ArgumentParser(description="Sync a local directory to S3")
    parser.add_argument("--source", default=env("SOURCE_DIR", ""), help="Local directory")
    parser.add_argument("--bucket", default=env("S3_BUCKET", ""), help="Destination bucket")
    parser.add_argument("--prefix", default=env("DEST_DIR", ""), help="Destination prefix")
    parser.add_argument(
        "--exclude",
        default=env("EXCLUDE_PATTERNS"),
        help="Space-separated exclude patterns (default: from config)",
    )
    parser.add_argument(
        "--include",
        default=env("INCLUDE_PATTERNS"),
        help="Space-separated include patterns (default: from config)",
    )
    parser.add_argument("--extra-args", default=env("EXTRA_ARGS", ""), help="Raw extra arguments")
    parser.add_argument(
        "--delete",
        action="store_true",
        default=_env_flag("DELETE_REMOVED"),
        help="Delete remote files missing locally",
    )
    parser.add_argument(
        "--dry-run", action="store_true", default=_env_flag("DRY_RUN"), help="Show what would sync"
    )
    parser.add_argument("--config-dir", help="Directory holding config.yaml")
    parser.add_argument("--env", help="Config environment (dev, staging, prod)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, syncer: S3Sync | None = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = _parse_args(argv)
    configure_logging(args.verbose)

    try:
        defaults = load_config(args.config_dir, args.env).s3_sync
        options = SyncOptions(
            delete_removed=args.delete or defaults.delete_removed,
            exclude_patterns=(
                args.exclude.split() if args.exclude is not None else list(defaults.exclude_patterns)
            ),
            include_patterns=(
                args.include.split() if args.include is not None else list(defaults.include_patterns)
            ),
            dry_run=args.dry_run,
            extra_args=SyncOptions.from_strings(extra=args.extra_args).extra_args
            + list(defaults.extra_args),
        )
    except (ConfigError, OSError, ValueError) as e:
        logger.error("Invalid sync settings: %s", e)
        return 1

    write_github_output("flags", " ".join(build_sync_args(options)))

    syncer = syncer or S3Sync()
    try:
        result = syncer.sync(args.source or ".", args.bucket, args.prefix, options)
    except S3SyncError as e:
        logger.error("%s", e)
        return 1

    if result.stdout:
        sys.stdout.write(result.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
