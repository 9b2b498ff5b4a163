"""Identifiers shared across the cluster."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class NodeId:
    """Unique, hashable identifier of a node in the cluster."""

    value: str = ""

    def __str__(self) -> str:
        return self.value