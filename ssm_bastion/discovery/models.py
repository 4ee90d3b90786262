"""Data models for inventory query filters and discovered EC2 instances."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

RUNNING_STATE = "running"


@dataclass(frozen=True)
class Filter:
    """One provider-side predicate for ``describe_instances``."""

    name: str
    values: tuple[str, ...]

    def to_api(self) -> dict[str, Any]:
        return {"Name": self.name, "Values": list(self.values)}

    @classmethod
    def running(cls) -> Filter:
        return cls(name="instance-state-name", values=(RUNNING_STATE,))

    @classmethod
    def tag(cls, key: str, value: str) -> Filter:
        return cls(name=f"tag:{key}", values=(value,))


@dataclass(frozen=True)
class Instance:
    """Read-only snapshot of a single EC2 instance returned by the inventory query."""

    instance_id: str
    state: str = "unknown"
    private_ip: str | None = None
    public_ip: str | None = None
    tags: tuple[tuple[str, str], ...] = field(default_factory=tuple)

    @property
    def tag_map(self) -> dict[str, str]:
        return dict(self.tags)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Instance:
        """Parse a raw ``describe_instances`` instance record.

        Tag entries missing either Key or Value are dropped.
        """
        tags = tuple(
            (t["Key"], t["Value"])
            for t in raw.get("Tags") or []
            if t.get("Key") is not None and t.get("Value") is not None
        )
        return cls(
            instance_id=raw.get("InstanceId", ""),
            state=(raw.get("State") or {}).get("Name", "unknown"),
            private_ip=raw.get("PrivateIpAddress"),
            public_ip=raw.get("PublicIpAddress"),
            tags=tags,
        )


def parse_tags(spec: str) -> dict[str, str]:
    """Parse ``Role=bastion,Function=port-forward`` into a tag mapping.

    Pairs without ``=`` are ignored and only the first ``=`` separates key
    from value. A repeated key keeps its last value.
    """
    tags: dict[str, str] = {}
    for pair in (spec or "").split(","):
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        tags[key] = value.strip()
    return tags


def build_filters(expected_tags: dict[str, str]) -> list[Filter]:
    """The running-state filter followed by one ``tag:<Key>`` filter per expected tag."""
    return [Filter.running()] + [Filter.tag(k, v) for k, v in expected_tags.items()]


def flatten_reservations(response: dict[str, Any]) -> list[Instance]:
    """Reservation order, then instance order, exactly as the provider returned them."""
    return [
        Instance.from_api(raw)
        for reservation in response.get("Reservations", [])
        for raw in reservation.get("Instances", [])
    ]
