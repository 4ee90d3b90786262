"""Exact-match tag verification for discovered instances."""

from __future__ import annotations

import logging

from .models import Instance

logger = logging.getLogger(__name__)


class TagMatcher:
    """Checks that an instance carries every expected tag with an identical value (AND)."""

    def __init__(self, expected_tags: dict[str, str], verbose: bool = False):
        self._expected = dict(expected_tags)
        self._log = logger.info if verbose else logger.debug

    @property
    def expected_tags(self) -> dict[str, str]:
        return dict(self._expected)

    def matches(self, instance: Instance) -> bool:
        tags = instance.tag_map
        for key, value in self._expected.items():
            if key not in tags:
                self._log("Instance %s: tag %s is missing", instance.instance_id, key)
                return False
            if tags[key] != value:
                self._log(
                    "Instance %s: tag %s expected %s, got %s",
                    instance.instance_id, key, value, tags[key],
                )
                return False
        return True
