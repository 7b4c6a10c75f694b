"""Snapshot persistence for infrakit."""

from .store import MergeResult, SnapshotStore, belongs_to_scope, partition_scope

__all__ = ["MergeResult", "SnapshotStore", "belongs_to_scope", "partition_scope"]
