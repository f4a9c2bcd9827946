from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from stack_scaler.models.session import SessionConfig
from stack_scaler.services.notifier import RecordingNotifier


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class _FakePaginator:
    def __init__(self, owner: "FakeAutoScaling") -> None:
        self._owner = owner

    def paginate(self) -> list[dict[str, Any]]:
        self._owner.describe_calls += 1
        if self._owner.error is not None:
            raise self._owner.error
        return [{"AutoScalingGroups": list(self._owner.groups)}]


def make_group(environment: Optional[str], name: str, *, instances: int = 0, tag_key: str = "name") -> dict[str, Any]:
    tags = [{"Key": "elasticbeanstalk:environment-id", "Value": "e-123"}]
    if environment is not None:
        tags.append({"Key": tag_key, "Value": environment})
    return {
        "AutoScalingGroupName": name,
        "MinSize": 1,
        "MaxSize": 2,
        "DesiredCapacity": 1,
        "Instances": [{"InstanceId": f"i-{name}-{i}"} for i in range(instances)],
        "Tags": tags,
    }


class FakeAutoScaling:
    def __init__(self, groups: Optional[list[dict[str, Any]]] = None) -> None:
        self.groups = groups or []
        self.error: Optional[Exception] = None
        self.describe_calls = 0
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get_paginator(self, operation: str) -> _FakePaginator:
        assert operation == "describe_auto_scaling_groups"
        return _FakePaginator(self)

    def _record(self, method: str, kwargs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((method, kwargs))
        return {}

    def suspend_processes(self, **kwargs: Any) -> dict[str, Any]:
        return self._record("suspend_processes", kwargs)

    def resume_processes(self, **kwargs: Any) -> dict[str, Any]:
        return self._record("resume_processes", kwargs)

    def enable_metrics_collection(self, **kwargs: Any) -> dict[str, Any]:
        return self._record("enable_metrics_collection", kwargs)

    def disable_metrics_collection(self, **kwargs: Any) -> dict[str, Any]:
        return self._record("disable_metrics_collection", kwargs)

    def update_auto_scaling_group(self, **kwargs: Any) -> dict[str, Any]:
        return self._record("update_auto_scaling_group", kwargs)

    def calls_for(self, group_name: str) -> list[tuple[str, dict[str, Any]]]:
        return [call for call in self.calls if call[1].get("AutoScalingGroupName") == group_name]


class FakeBeanstalk:
    def __init__(self, environments: Optional[list[dict[str, Any]]] = None) -> None:
        self.environments = environments or []
        self.error: Optional[Exception] = None

    def describe_environments(self) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        return {"Environments": list(self.environments)}


OK = {"responseHeader": {"status": 0, "QTime": 3}}


class FakeSolr:
    """Records admin calls; responses come from `responses[action]` (a payload or a callable)."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.responses: dict[str, Any] = {}
        self.core_status: dict[str, dict[str, Any]] = {}

    def collections_api(self, action: str, **params: Any) -> dict[str, Any]:
        action = action.upper()
        self.calls.append((action, params))
        response = self.responses.get(action, OK)
        if callable(response):
            return response(**params)
        return response

    def update(self, collection: str, *, commit: bool = True, optimize: bool = True) -> dict[str, Any]:
        self.calls.append(("UPDATE", {"collection": collection, "commit": commit, "optimize": optimize}))
        return OK

    def cores_api(self, node_name: str, action: str, **params: Any) -> dict[str, Any]:
        self.calls.append(("CORES_" + action.upper(), {"node": node_name}))
        return self.core_status[node_name]

    def actions(self) -> list[str]:
        return [action for action, _ in self.calls]


class FakeZookeeper:
    def __init__(
        self,
        *,
        states: Optional[list[dict[str, str]]] = None,
        live_counts: Optional[list[int]] = None,
        nodes: Optional[list[str]] = None,
        on_probe: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._states = list(states or [])
        self._live_counts = list(live_counts or [])
        self.nodes = nodes or []
        self.on_probe = on_probe
        self.closed = False

    def server_state(self) -> dict[str, str]:
        if self.on_probe:
            self.on_probe("zookeeper")
        if len(self._states) > 1:
            return self._states.pop(0)
        return self._states[0] if self._states else {"zk_state": "unavailable"}

    def live_node_count(self) -> int:
        if self.on_probe:
            self.on_probe("solr")
        if len(self._live_counts) > 1:
            return self._live_counts.pop(0)
        return self._live_counts[0] if self._live_counts else 0

    def live_nodes(self) -> list[str]:
        return list(self.nodes)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def session() -> SessionConfig:
    return SessionConfig.load(
        {
            "dns_zone": "example.edu",
            "scaling": {"site-solr": {"max_size": 3, "desired_capacity": 3}},
            "collections": [],
            "backups": {},
        }
    )
