"""Bastion resolution: one inventory query, then concurrent first-match-wins tag checks."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Sequence

from ..exceptions import BastionError, NotFoundError, QueryError
from . import InventoryClient
from .models import Filter, Instance, flatten_reservations
from .tag_filter import TagMatcher

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 8


class _ResultCell:
    """Single-assignment slot shared by the tag-check workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: Instance | None = None

    def offer(self, instance: Instance) -> bool:
        """Record ``instance`` if the cell is still empty. Returns True for the winner only."""
        with self._lock:
            if self._value is not None:
                return False
            self._value = instance
            return True

    @property
    def value(self) -> Instance | None:
        with self._lock:
            return self._value


class BastionResolver:
    """Finds exactly one running instance whose tags match the expected set.

    Candidates come back from a single ``describe_instances`` call and are
    verified on a bounded thread pool. The first worker to record a match
    wins; once it does, no further candidates are admitted. Which of several
    equally valid matches wins depends on provider ordering and thread
    scheduling and is not stable across calls.
    """

    def __init__(self, client: InventoryClient, pool_size: int = DEFAULT_POOL_SIZE):
        if pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        self._client = client
        self._pool_size = pool_size

    def resolve(
        self,
        filters: Sequence[Filter],
        expected_tags: dict[str, str],
        verbose: bool = False,
    ) -> str:
        """Return the instance ID of one matching instance.

        Raises QueryError if the inventory query fails and NotFoundError if
        no candidate carries every expected tag.
        """
        start = time.monotonic()
        candidates = self._query(filters)
        logger.debug(
            "Checking %d candidate instances", len(candidates),
            extra={"candidates": len(candidates)},
        )

        matcher = TagMatcher(expected_tags, verbose=verbose)
        cell = _ResultCell()
        found = threading.Event()
        # The gate blocks the loop so unadmitted candidates never queue in the pool
        gate = threading.BoundedSemaphore(self._pool_size)
        futures: list[Future] = []

        with ThreadPoolExecutor(max_workers=self._pool_size, thread_name_prefix="tag-check") as pool:
            for instance in candidates:
                if found.is_set():
                    break
                gate.acquire()
                try:
                    futures.append(pool.submit(_check, instance, matcher, cell, found, gate))
                except BaseException:
                    gate.release()
                    raise
            # leaving the block waits for every admitted check

        for future in futures:
            future.result()

        winner = cell.value
        elapsed = round(time.monotonic() - start, 3)
        if winner is None:
            logger.debug(
                "No match among %d candidates", len(candidates),
                extra={"elapsed_seconds": elapsed},
            )
            raise NotFoundError(expected_tags)

        logger.debug(
            "Resolved bastion %s", winner.instance_id,
            extra={"instance_id": winner.instance_id, "elapsed_seconds": elapsed},
        )
        if verbose:
            log_instance_details(winner)
        return winner.instance_id

    def _query(self, filters: Sequence[Filter]) -> list[Instance]:
        try:
            response = self._client.describe_instances(filters)
            return flatten_reservations(response)
        except BastionError:
            raise
        except Exception as exc:
            raise QueryError(f"Failed to describe instances: {exc}") from exc


def _check(
    instance: Instance,
    matcher: TagMatcher,
    cell: _ResultCell,
    found: threading.Event,
    gate: threading.BoundedSemaphore,
) -> None:
    try:
        if matcher.matches(instance) and cell.offer(instance):
            found.set()
    finally:
        gate.release()


def log_instance_details(instance: Instance) -> None:
    logger.info(
        "Instance ID: %s, State: %s, Private IP: %s, Public IP: %s",
        instance.instance_id,
        instance.state,
        instance.private_ip or "",
        instance.public_ip or "",
        extra={"instance_id": instance.instance_id},
    )
    logger.info("Tags:")
    for key, value in instance.tags:
        logger.info("  %s: %s", key, value)
