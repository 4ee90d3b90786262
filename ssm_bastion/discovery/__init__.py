"""Bastion discovery package: the inventory query Protocol and public exports."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from .models import Filter


@runtime_checkable
class InventoryClient(Protocol):
    """Protocol that every instance inventory client must satisfy."""

    def describe_instances(self, filters: Sequence[Filter]) -> dict[str, Any]:
        """Return ``{"Reservations": [{"Instances": [...]}, ...]}`` for the given filters."""
        ...
