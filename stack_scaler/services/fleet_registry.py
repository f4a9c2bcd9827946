from __future__ import annotations

import logging
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from stack_scaler.models.fleet import UNKNOWN_HEALTH, EnvironmentStatus, ScalingGroup
from stack_scaler.services.errors import ConnectivityError


logger = logging.getLogger(__name__)


class FleetRegistry:
    """Discovers auto-scaling groups by their environment tag.

    `autoscaling` and `beanstalk` are boto3 clients (or anything exposing the
    same `get_paginator` / `describe_environments` calls).
    """

    def __init__(self, *, autoscaling: Any, beanstalk: Any, environment_tag: str = "name") -> None:
        self._autoscaling = autoscaling
        self._beanstalk = beanstalk
        self._environment_tag = environment_tag
        self._groups: Optional[dict[str, str]] = None

    def _environment_of(self, group: dict[str, Any]) -> Optional[str]:
        for tag in group.get("Tags") or []:
            if tag.get("Key") == self._environment_tag:
                return tag.get("Value")
        return None

    def _describe_groups(self) -> list[ScalingGroup]:
        try:
            paginator = self._autoscaling.get_paginator("describe_auto_scaling_groups")
            groups: list[ScalingGroup] = []
            for page in paginator.paginate():
                for group in page.get("AutoScalingGroups", []):
                    environment = self._environment_of(group)
                    if environment is None:
                        logger.debug("Skipping untagged group %s", group.get("AutoScalingGroupName"))
                        continue
                    groups.append(ScalingGroup.from_aws_group(environment=environment, group=group))
            return groups
        except (BotoCoreError, ClientError) as exc:
            logger.exception("describe_auto_scaling_groups failed")
            raise ConnectivityError("Failed to list auto-scaling groups") from exc

    def discover(self) -> dict[str, str]:
        """Map environment name -> auto-scaling group name (memoized)."""

        if self._groups is None:
            self._groups = {group.environment: group.name for group in self._describe_groups()}
            logger.info("Discovered %d tagged auto-scaling groups", len(self._groups))
        return self._groups

    def group_name(self, environment: str) -> Optional[str]:
        return self.discover().get(environment)

    def instance_counts(self) -> dict[str, int]:
        return {group.environment: group.instance_count for group in self._describe_groups()}

    def _health_grades(self) -> dict[str, str]:
        try:
            response = self._beanstalk.describe_environments()
        except (BotoCoreError, ClientError) as exc:
            logger.exception("describe_environments failed")
            raise ConnectivityError("Failed to list environments") from exc
        return {
            str(env.get("EnvironmentName")): str(env.get("Health") or UNKNOWN_HEALTH)
            for env in response.get("Environments", [])
        }

    def health(self) -> dict[str, str]:
        grades = self._health_grades()
        return {environment: grades.get(environment, UNKNOWN_HEALTH) for environment in self.instance_counts()}

    def status(self) -> list[EnvironmentStatus]:
        grades = self._health_grades()
        counts = self.instance_counts()
        return [
            EnvironmentStatus(environment=environment, count=counts[environment], health=grades.get(environment, UNKNOWN_HEALTH))
            for environment in sorted(counts)
        ]
