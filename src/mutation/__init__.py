"""Batch mutation of package versions (delist, deprecate)."""

from .engine import BatchMutationEngine, BatchSession, CancelToken, partition_targets  # noqa: F401

__all__ = ["BatchMutationEngine", "BatchSession", "CancelToken", "partition_targets"]
