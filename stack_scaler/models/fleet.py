from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from stack_scaler.models.session import Capacity

UNKNOWN_HEALTH = "Unknown"


class ScalingGroup(BaseModel):
    name: str
    environment: str
    capacity: Capacity
    instance_count: int = 0
    suspended_processes: list[str] = Field(default_factory=list)
    enabled_metrics: list[str] = Field(default_factory=list)

    @staticmethod
    def from_aws_group(*, environment: str, group: dict[str, Any]) -> "ScalingGroup":
        return ScalingGroup(
            name=str(group.get("AutoScalingGroupName")),
            environment=environment,
            capacity=Capacity(
                min_size=group.get("MinSize", 0),
                max_size=group.get("MaxSize", 0),
                desired_capacity=group.get("DesiredCapacity", 0),
            ),
            instance_count=len(group.get("Instances") or []),
            suspended_processes=[p.get("ProcessName", "") for p in group.get("SuspendedProcesses") or []],
            enabled_metrics=[m.get("Metric", "") for m in group.get("EnabledMetrics") or []],
        )


class EnvironmentStatus(BaseModel):
    environment: str
    count: int
    health: str = UNKNOWN_HEALTH

    @property
    def summary(self) -> str:
        noun = "instance" if self.count == 1 else "instances"
        return f"{self.environment}: {self.count} {noun} running ({self.health})"
