from __future__ import annotations

import pytest

from stack_scaler.models.session import SessionConfig
from stack_scaler.services.errors import ConfigurationError
from stack_scaler.services.fleet_registry import FleetRegistry
from stack_scaler.services.scale_controller import SCALING_PROCESSES, ScaleController
from stack_scaler.services.tiers import TierKind

from conftest import FakeAutoScaling, FakeBeanstalk, make_group


GROUPS = [
    make_group("site-webapp", "asg-webapp"),
    make_group("site-workers", "asg-workers"),
    make_group("site-solr", "asg-solr"),
    make_group("site-zookeeper", "asg-zk"),
    make_group("site-fcrepo", "asg-fcrepo"),
    make_group("site-cantaloupe", "asg-cantaloupe"),
]


def _controller(session: SessionConfig, notifier, autoscaling: FakeAutoScaling) -> ScaleController:
    registry = FleetRegistry(autoscaling=autoscaling, beanstalk=FakeBeanstalk())
    return ScaleController(autoscaling=autoscaling, registry=registry, session=session, notifier=notifier)


def test_scale_down_suspends_processes_and_zeroes_capacity(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)

    scaled = _controller(session, notifier, autoscaling).scale_down(["site-webapp", "site-solr"])

    assert scaled == ["site-webapp", "site-solr"]
    for group in ("asg-webapp", "asg-solr"):
        calls = autoscaling.calls_for(group)
        assert [method for method, _ in calls] == [
            "suspend_processes",
            "disable_metrics_collection",
            "update_auto_scaling_group",
        ]
        assert calls[0][1]["ScalingProcesses"] == SCALING_PROCESSES
        assert len(calls[0][1]["ScalingProcesses"]) == 7
        assert calls[2][1] == {"AutoScalingGroupName": group, "MinSize": 0, "MaxSize": 0, "DesiredCapacity": 0}
    assert autoscaling.calls_for("asg-zk") == []
    assert "Scaling site-webapp down to 0" in notifier.lines


def test_scale_down_honours_suspended_minimum(notifier) -> None:
    session = SessionConfig.load({"dns_zone": "example.edu", "suspended": {"site-zookeeper": 1}})
    autoscaling = FakeAutoScaling(GROUPS)

    _controller(session, notifier, autoscaling).scale_down()

    update = autoscaling.calls_for("asg-zk")[-1][1]
    assert (update["MinSize"], update["MaxSize"], update["DesiredCapacity"]) == (1, 1, 1)
    assert autoscaling.calls_for("asg-webapp")[-1][1]["DesiredCapacity"] == 0


def test_scale_up_tier_applies_capacity_to_matching_groups(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)

    scaled = _controller(session, notifier, autoscaling).scale_up_tier(TierKind.SEARCH)

    assert scaled == ["site-solr"]
    calls = autoscaling.calls_for("asg-solr")
    assert calls[0] == ("resume_processes", {"AutoScalingGroupName": "asg-solr", "ScalingProcesses": SCALING_PROCESSES})
    assert calls[1] == ("enable_metrics_collection", {"AutoScalingGroupName": "asg-solr", "Granularity": "1Minute"})
    assert calls[2][1] == {"AutoScalingGroupName": "asg-solr", "MinSize": 1, "MaxSize": 3, "DesiredCapacity": 3}
    assert "Scaling site-solr up to 1/3/3" in notifier.lines
    assert len(autoscaling.calls) == 3


def test_web_tier_matches_webapps_and_workers(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)

    assert _controller(session, notifier, autoscaling).scale_up_webapps() == ["site-webapp", "site-workers"]


def test_scale_up_without_match_touches_every_group(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)

    assert len(_controller(session, notifier, autoscaling).scale_up()) == len(GROUPS)


def test_unknown_environment_fails_before_any_mutation(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)

    with pytest.raises(ConfigurationError):
        _controller(session, notifier, autoscaling).scale_down(["site-webapp", "site-missing"])
    assert autoscaling.calls == []


def test_named_environments_resolve_through_registry_lookup(session, notifier) -> None:
    autoscaling = FakeAutoScaling(GROUPS)
    controller = _controller(session, notifier, autoscaling)

    controller.scale_up(["site-zookeeper"])
    controller.scale_up(["site-cantaloupe"])

    assert [call[1]["AutoScalingGroupName"] for call in autoscaling.calls] == ["asg-zk"] * 3 + ["asg-cantaloupe"] * 3
    assert autoscaling.describe_calls == 1
