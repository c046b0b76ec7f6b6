"""Paid-state store protocol."""

from __future__ import annotations

from typing import Mapping, Protocol

from ..models import PaidRecord


class PaidStateStore(Protocol):
    """Durable key-value persistence of paid overlays for one user."""

    def load(self) -> dict[str, PaidRecord]:
        """Return the persisted mapping keyed by reminder id."""
        ...

    def save(self, records: Mapping[str, PaidRecord]) -> None:
        """Replace the persisted mapping with ``records``."""
        ...
