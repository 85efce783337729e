"""Server statistics model."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class StatEntry:
    """One server-reported statistic."""

    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}


def stats_to_dict(entries: Iterable[StatEntry]) -> dict[str, str]:
    """Fold stat entries into a mapping. Later duplicates win."""
    return {entry.key: entry.value for entry in entries}
