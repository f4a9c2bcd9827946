from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from kazoo.exceptions import KazooException
from kazoo.handlers.threading import KazooTimeoutError

from stack_scaler.services.errors import ConnectivityError, StabilizationTimeoutError
from stack_scaler.services.zookeeper_service import ZookeeperService


logger = logging.getLogger(__name__)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, (OSError, ConnectivityError, KazooException, KazooTimeoutError))


@dataclass(frozen=True)
class RetryPolicy:
    interval_seconds: float
    deadline_seconds: float
    retryable: Callable[[BaseException], bool] = is_transient


COORDINATION_POLICY = RetryPolicy(interval_seconds=10.0, deadline_seconds=600.0)
SEARCH_POLICY = RetryPolicy(interval_seconds=30.0, deadline_seconds=600.0)


class ReadinessGate:
    """Bounded polling loop that blocks until a probe reports ready.

    Retryable probe errors count as "not ready". Anything else propagates.
    `sleep` and `clock` are injectable so the loop can run on a fake clock.
    """

    def __init__(
        self,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sleep = sleep
        self._clock = clock

    def wait_until(
        self,
        predicate: Callable[[], bool],
        policy: RetryPolicy,
        *,
        awaiting: str,
    ) -> int:
        """Poll `predicate` until it returns True; return the number of polls made.

        Raises:
            StabilizationTimeoutError: once the elapsed time exceeds the policy deadline.
        """

        started = self._clock()
        polls = 0
        while True:
            polls += 1
            try:
                ready = bool(predicate())
            except Exception as exc:
                if not policy.retryable(exc):
                    raise
                logger.debug("Probe for %s failed transiently: %s", awaiting, exc)
                ready = False

            if ready:
                logger.info("%s ready after %d poll(s)", awaiting, polls)
                return polls

            if self._clock() - started > policy.deadline_seconds:
                minutes = policy.deadline_seconds / 60
                message = f"{awaiting} failed to stabilize within {minutes:g} minutes"
                raise StabilizationTimeoutError(message, awaiting=awaiting)

            self._sleep(policy.interval_seconds)


def zookeeper_ready(zookeeper: ZookeeperService, required_nodes: int) -> bool:
    state = zookeeper.server_state()
    try:
        synced = int(state.get("zk_synced_followers", "0"))
    except ValueError:
        synced = 0
    return state.get("zk_server_state") == "leader" and synced >= required_nodes - 1


def solr_ready(zookeeper: ZookeeperService, required_nodes: int) -> bool:
    return zookeeper.live_node_count() >= required_nodes


def wait_for_zookeeper(
    gate: ReadinessGate,
    zookeeper: ZookeeperService,
    required_nodes: int,
    policy: RetryPolicy = COORDINATION_POLICY,
) -> int:
    return gate.wait_until(
        lambda: zookeeper_ready(zookeeper, required_nodes),
        policy,
        awaiting="Zookeeper",
    )


def wait_for_solr(
    gate: ReadinessGate,
    zookeeper: ZookeeperService,
    required_nodes: int,
    policy: RetryPolicy = SEARCH_POLICY,
) -> int:
    return gate.wait_until(
        lambda: solr_ready(zookeeper, required_nodes),
        policy,
        awaiting="Solr",
    )
