"""File sync to object storage."""

from cdk_cost_guardian.sync.s3 import (
    S3Sync,
    S3SyncError,
    SyncOptions,
    build_sync_args,
    destination_uri,
)

__all__ = ["S3Sync", "S3SyncError", "SyncOptions", "build_sync_args", "destination_uri"]
