"""Tests for the S3 sync wrapper."""

import subprocess

import pytest

from cdk_cost_guardian.sync.s3 import (
    S3Sync,
    S3SyncError,
    SyncOptions,
    build_sync_args,
    destination_uri,
)


class FakeRunner:
    """Records commands instead of running them."""

    def __init__(self, returncode=0, stdout="", stderr="", exc=None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.exc = exc
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.exc is not None:
            raise self.exc
        if self.returncode and kwargs.get("check"):
            raise subprocess.CalledProcessError(
                self.returncode, cmd, output=self.stdout, stderr=self.stderr
            )
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


class TestBuildSyncArgs:
    """Tests for building sync flags."""

    def test_defaults_are_empty(self):
        """Test that default options add no flags."""
        assert build_sync_args(SyncOptions()) == []

    def test_all_flags_in_order(self):
        """Test flag order with every option set."""
        options = SyncOptions.from_strings(
            exclude="*.tmp .git/*",
            include="keep.tmp",
            extra="--cache-control 'max-age=60, public'",
            delete_removed=True,
            dry_run=True,
        )

        assert build_sync_args(options) == [
            "--delete",
            "--exclude", "*.tmp",
            "--exclude", ".git/*",
            "--include", "keep.tmp",
            "--dryrun",
            "--cache-control", "max-age=60, public",
        ]


class TestDestinationUri:
    """Tests for destination URIs."""

    @pytest.mark.parametrize(
        "bucket,prefix,expected",
        [
            ("site", "", "s3://site/"),
            ("site", "docs", "s3://site/docs/"),
            ("s3://site/", "/docs/v1/", "s3://site/docs/v1/"),
        ],
    )
    def test_uri(self, bucket, prefix, expected):
        """Test bucket and prefix normalization."""
        assert destination_uri(bucket, prefix) == expected

    def test_bucket_required(self):
        """Test that a blank bucket is rejected."""
        with pytest.raises(S3SyncError):
            destination_uri("  ")


class TestS3Sync:
    """Tests for running the sync."""

    def test_runs_without_shell(self, tmp_path):
        """Test the command run for a sync."""
        runner = FakeRunner(stdout="upload: a.txt to s3://site/a.txt\n")
        syncer = S3Sync(runner=runner)

        result = syncer.sync(tmp_path, "site", "docs", SyncOptions(delete_removed=True))

        cmd, kwargs = runner.calls[0]
        assert cmd == ["aws", "s3", "sync", f"{tmp_path.as_posix()}/", "s3://site/docs/", "--delete"]
        assert kwargs == {"check": True, "capture_output": True, "text": True}
        assert "upload: a.txt" in result.stdout

    def test_missing_source(self, tmp_path):
        """Test that a missing source fails before running."""
        runner = FakeRunner()
        with pytest.raises(S3SyncError, match="Source directory not found"):
            S3Sync(runner=runner).sync(tmp_path / "missing", "site")
        assert runner.calls == []

    def test_cli_failure(self, tmp_path):
        """Test that a failed CLI run raises S3SyncError."""
        runner = FakeRunner(returncode=1, stderr="AccessDenied\n")
        with pytest.raises(S3SyncError, match="exit code 1: AccessDenied"):
            S3Sync(runner=runner).sync(tmp_path, "site")

    def test_cli_not_installed(self, tmp_path):
        """Test that a missing AWS CLI raises S3SyncError."""
        runner = FakeRunner(exc=FileNotFoundError("aws"))
        with pytest.raises(S3SyncError, match="AWS CLI not found"):
            S3Sync(runner=runner).sync(tmp_path, "site")
