"""AWS boto3 client for the EC2 instance inventory query."""

from __future__ import annotations

import logging
from typing import Any, Sequence

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AWSConfig
from ..exceptions import QueryError
from .models import Filter

logger = logging.getLogger(__name__)


class AWSClient:
    """Runs ``describe_instances`` against EC2 using the standard boto3 credential chain."""

    def __init__(self, aws_config: AWSConfig):
        self._config = aws_config

        session_kwargs: dict[str, Any] = {"region_name": aws_config.region}
        if aws_config.credential_profile:
            session_kwargs["profile_name"] = aws_config.credential_profile

        try:
            session = boto3.Session(**session_kwargs)
            self._ec2 = session.client("ec2")
        except BotoCoreError as exc:
            raise QueryError(f"Failed to create EC2 client: {exc}") from exc

    def describe_instances(self, filters: Sequence[Filter]) -> dict[str, Any]:
        """Query EC2 once, concatenating every result page into a single response."""
        api_filters = [f.to_api() for f in filters]
        logger.debug("Describing instances with filters %s", api_filters)

        reservations: list[dict[str, Any]] = []
        try:
            paginator = self._ec2.get_paginator("describe_instances")
            for page in paginator.paginate(Filters=api_filters):
                reservations.extend(page.get("Reservations", []))
        except (ClientError, BotoCoreError) as exc:
            raise QueryError(f"Failed to describe instances: {exc}") from exc

        logger.debug("Inventory query returned %d reservations", len(reservations))
        return {"Reservations": reservations}
