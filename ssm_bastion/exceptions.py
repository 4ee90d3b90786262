"""Custom exception hierarchy for bastion discovery and session launching."""

from __future__ import annotations


class BastionError(Exception):
    """Base exception for all tool errors."""


class ConfigError(BastionError):
    """Invalid or missing configuration."""


class QueryError(BastionError):
    """The EC2 inventory query failed (network, credentials, malformed filters)."""


class NotFoundError(BastionError):
    """The inventory query succeeded but no instance carried the expected tags."""

    def __init__(self, expected_tags: dict[str, str]):
        self.expected_tags = dict(expected_tags)
        rendered = ",".join(f"{k}={v}" for k, v in sorted(self.expected_tags.items()))
        super().__init__(f"No instance found with tags: {rendered or '<any>'}")


class SessionError(BastionError):
    """The SSM session client could not be started or exited unsuccessfully."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code
