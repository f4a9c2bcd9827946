from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional

from stack_scaler.models.session import Capacity, SessionConfig
from stack_scaler.services.capacity import capacity_for
from stack_scaler.services.errors import ConfigurationError
from stack_scaler.services.fleet_registry import FleetRegistry
from stack_scaler.services.notifier import Notifier
from stack_scaler.services.tiers import TierKind, matches_tier


logger = logging.getLogger(__name__)

SCALING_PROCESSES = [
    "Launch",
    "HealthCheck",
    "ReplaceUnhealthy",
    "AZRebalance",
    "AlarmNotification",
    "ScheduledActions",
    "AddToLoadBalancer",
]
METRICS_GRANULARITY = "1Minute"


class ScaleController:
    """Mutates auto-scaling groups: process suspension, metrics collection and capacity."""

    def __init__(
        self,
        *,
        autoscaling: Any,
        registry: FleetRegistry,
        session: SessionConfig,
        notifier: Notifier,
    ) -> None:
        self._autoscaling = autoscaling
        self._registry = registry
        self._session = session
        self._notifier = notifier

    def _resolve(self, environments: Optional[Iterable[str]]) -> list[tuple[str, str]]:
        if environments is None:
            return list(self._registry.discover().items())

        resolved = []
        for environment in environments:
            name = self._registry.group_name(environment)
            if name is None:
                raise ConfigurationError(f"No auto-scaling group is tagged with environment {environment!r}")
            resolved.append((environment, name))
        return resolved

    def _apply(self, group_name: str, capacity: Capacity) -> None:
        self._autoscaling.update_auto_scaling_group(AutoScalingGroupName=group_name, **capacity.as_update_kwargs())

    def scale_down(self, environments: Optional[Iterable[str]] = None) -> list[str]:
        scaled = []
        for environment, group_name in self._resolve(environments):
            count = self._session.suspended_capacity_for(environment)
            self._notifier.info(f"Scaling {environment} down to {count}")
            self._autoscaling.suspend_processes(AutoScalingGroupName=group_name, ScalingProcesses=SCALING_PROCESSES)
            self._autoscaling.disable_metrics_collection(AutoScalingGroupName=group_name)
            self._apply(group_name, Capacity(min_size=count, max_size=count, desired_capacity=count))
            scaled.append(environment)
        return scaled

    def scale_up(
        self,
        environments: Optional[Iterable[str]] = None,
        match: Optional[Callable[[str], bool]] = None,
    ) -> list[str]:
        scaled = []
        for environment, group_name in self._resolve(environments):
            if match is not None and not match(environment):
                continue
            capacity = capacity_for(self._session, environment)
            self._notifier.info(f"Scaling {environment} up to {capacity}")
            self._autoscaling.resume_processes(AutoScalingGroupName=group_name, ScalingProcesses=SCALING_PROCESSES)
            self._autoscaling.enable_metrics_collection(
                AutoScalingGroupName=group_name, Granularity=METRICS_GRANULARITY
            )
            self._apply(group_name, capacity)
            scaled.append(environment)
        return scaled

    def scale_up_tier(self, tier: TierKind) -> list[str]:
        scaled = self.scale_up(match=lambda environment: matches_tier(environment, tier))
        if not scaled:
            logger.warning("No environments matched tier %s", tier.value)
        return scaled

    def scale_up_zookeeper(self) -> list[str]:
        return self.scale_up_tier(TierKind.COORDINATION)

    def scale_up_solr(self) -> list[str]:
        return self.scale_up_tier(TierKind.SEARCH)

    def scale_up_fcrepo(self) -> list[str]:
        return self.scale_up_tier(TierKind.REPOSITORY)

    def scale_up_cantaloupe(self) -> list[str]:
        return self.scale_up_tier(TierKind.IMAGE_SERVER)

    def scale_up_webapps(self) -> list[str]:
        return self.scale_up_tier(TierKind.WEB)
