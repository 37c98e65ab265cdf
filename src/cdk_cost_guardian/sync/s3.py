"""Sync a local directory to S3 with the AWS CLI."""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


class S3SyncError(Exception):
    """Error syncing files to S3."""

    pass


@dataclass
class SyncOptions:
    """Flags for ``aws s3 sync``."""

    delete_removed: bool = False
    exclude_patterns: list[str] = field(default_factory=list)
    include_patterns: list[str] = field(default_factory=list)
    dry_run: bool = False
    extra_args: list[str] = field(default_factory=list)

    @classmethod
    def from_strings(
        cls,
        exclude: str = "",
        include: str = "",
        extra: str = "",
        delete_removed: bool = False,
        dry_run: bool = False,
    ) -> SyncOptions:
        """Build options from space-separated CI inputs."""
        return cls(
            delete_removed=delete_removed,
            exclude_patterns=exclude.split(),
            include_patterns=include.split(),
            dry_run=dry_run,
            extra_args=shlex.split(extra),
        )


def build_sync_args(options: SyncOptions) -> list[str]:
    """
    Build the ``aws s3 sync`` flags.

    Excludes come before includes: the CLI applies filters in order, so an
    include re-admits files an earlier exclude dropped.
    """
    args: list[str] = []
    if options.delete_removed:
        args.append("--delete")
    for pattern in options.exclude_patterns:
        args.extend(["--exclude", pattern])
    for pattern in options.include_patterns:
        args.extend(["--include", pattern])
    if options.dry_run:
        args.append("--dryrun")
    args.extend(options.extra_args)
    return args


def destination_uri(bucket: str, prefix: str = "") -> str:
    """Build the S3 destination, ``s3://bucket/`` or ``s3://bucket/prefix/``."""
    bucket = bucket.strip().removeprefix("s3://").strip("/")
    if not bucket:
        raise S3SyncError("S3 bucket name is required")
    prefix = prefix.strip().strip("/")
    if prefix:
        return f"s3://{bucket}/{prefix}/"
    return f"s3://{bucket}/"


class S3Sync:
    """Run ``aws s3 sync`` for a local directory."""

    def __init__(
        self,
        aws_cli: str = "aws",
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        """
        Initialize the syncer.

        Args:
            aws_cli: AWS CLI executable.
            runner: Callable with the ``subprocess.run`` signature.
        """
        self.aws_cli = aws_cli
        self.runner = runner

    def command(
        self,
        source_dir: str | Path,
        bucket: str,
        prefix: str = "",
        options: SyncOptions | None = None,
    ) -> list[str]:
        """Build the full sync command line."""
        source = Path(source_dir).as_posix().rstrip("/") + "/"
        return [
            self.aws_cli,
            "s3",
            "sync",
            source,
            destination_uri(bucket, prefix),
            *build_sync_args(options or SyncOptions()),
        ]

    def sync(
        self,
        source_dir: str | Path,
        bucket: str,
        prefix: str = "",
        options: SyncOptions | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Sync a directory to S3.

        Args:
            source_dir: Local directory to upload.
            bucket: Destination bucket.
            prefix: Key prefix inside the bucket (empty for the bucket root).
            options: Sync flags.

        Returns:
            The completed AWS CLI process.

        Raises:
            S3SyncError: If the source is missing, the CLI is unavailable, or
                the sync fails.
        """
        if not Path(source_dir).is_dir():
            raise S3SyncError(f"Source directory not found: {source_dir}")

        cmd = self.command(source_dir, bucket, prefix, options)
        logger.info("Syncing %s -> %s", cmd[3], cmd[4])

        try:
            return self.runner(cmd, check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise S3SyncError(f"AWS CLI not found: {self.aws_cli}") from e
        except subprocess.CalledProcessError as e:
            raise S3SyncError(
                f"aws s3 sync failed with exit code {e.returncode}: {(e.stderr or '').strip()}"
            ) from e
