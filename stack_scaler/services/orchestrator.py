from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional

from stack_scaler.models.fleet import EnvironmentStatus
from stack_scaler.models.session import SessionConfig
from stack_scaler.services.capacity import capacity_for
from stack_scaler.services.collection_manager import CollectionManager
from stack_scaler.services.fleet_registry import FleetRegistry
from stack_scaler.services.notifier import Notifier
from stack_scaler.services.readiness_gate import ReadinessGate, wait_for_solr, wait_for_zookeeper
from stack_scaler.services.scale_controller import ScaleController
from stack_scaler.services.tiers import TierKind, first_environment_in_tier
from stack_scaler.services.zookeeper_service import ZookeeperService


logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SUSPENDING = "suspending"
    SUSPENDED = "suspended"
    RESUMING = "resuming"
    RUNNING = "running"


WaitFunction = Callable[[ReadinessGate, ZookeeperService, int], int]

TIER_GATES: dict[TierKind, WaitFunction] = {
    TierKind.COORDINATION: wait_for_zookeeper,
    TierKind.SEARCH: wait_for_solr,
}

_GATE_MESSAGES: dict[TierKind, str] = {
    TierKind.COORDINATION: "Waiting for {count} synced zookeeper ensemble nodes",
    TierKind.SEARCH: "Waiting for {count} live solr nodes",
}


class NotifierLeaderObserver:
    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier

    def on_leader(self, collection: str, shard: str, replica: str) -> None:
        self._notifier.info(f"Replacing leader {replica} of {collection}/{shard}")


class Orchestrator:
    """Suspend/resume state machine over the cluster's tiers.

    Phases run strictly in order; a failure aborts every later phase and
    nothing is rolled back. One instance serves one command.
    """

    def __init__(
        self,
        *,
        session: SessionConfig,
        registry: FleetRegistry,
        scaler: ScaleController,
        collections: CollectionManager,
        zookeeper: ZookeeperService,
        notifier: Notifier,
        gate: Optional[ReadinessGate] = None,
        settle_seconds: float = 15.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self._registry = registry
        self._scaler = scaler
        self._collections = collections
        self._zookeeper = zookeeper
        self._notifier = notifier
        self._gate = gate or ReadinessGate(sleep=sleep)
        self._settle_seconds = settle_seconds
        self._sleep = sleep
        self.state = OrchestratorState.IDLE

    def required_nodes(self, tier: TierKind) -> int:
        environment = first_environment_in_tier(self._registry.discover(), tier)
        return capacity_for(self.session, environment).desired_capacity

    def wait_for(self, tier: TierKind) -> int:
        wait = TIER_GATES[tier]
        count = self.required_nodes(tier)
        logger.debug("Gating on %s with %d required nodes", tier.value, count)
        self._notifier.info(_GATE_MESSAGES[tier].format(count=count))
        return wait(self._gate, self._zookeeper, count)

    def suspend(self) -> dict[str, str]:
        self.state = OrchestratorState.SUSPENDING
        self._notifier.info("Backing up solr/zookeeper collections")
        backups = self._collections.backup()
        self.session.backups = backups
        self._notifier.info("Suspending auto-scaling groups")
        self._scaler.scale_down()
        self.state = OrchestratorState.SUSPENDED
        self._notifier.info("Suspend complete")
        return backups

    def resume(self) -> None:
        self.state = OrchestratorState.RESUMING
        self._notifier.info("Resuming auto-scaling groups")
        self._scaler.scale_up_cantaloupe()
        self._scaler.scale_up_fcrepo()
        self._scaler.scale_up_zookeeper()
        self.wait_for(TierKind.COORDINATION)
        self._scaler.scale_up_solr()
        self.wait_for(TierKind.SEARCH)
        self._sleep(self._settle_seconds)
        self._collections.restore_all(self.session.backups)
        self.replace_leaders()
        self._scaler.scale_up_webapps()
        self.state = OrchestratorState.RUNNING
        self._notifier.info("Restore complete")

    def force_up(self) -> list[str]:
        return self._scaler.scale_up()

    def force_down(self) -> list[str]:
        return self._scaler.scale_down()

    def resolr(self, collection: str) -> bool:
        return self._collections.resolr(collection)

    def replace_leaders(self) -> int:
        return self._collections.replace_leaders(NotifierLeaderObserver(self._notifier))

    def reconcile_replicas(self) -> dict[str, int]:
        return self._collections.reconcile_replicas()

    def status(self) -> list[EnvironmentStatus]:
        rows = self._registry.status()
        for row in rows:
            self._notifier.info(row.summary)
        return rows

    def solr_status(self) -> str:
        report = self._collections.status()
        self._notifier.info(report)
        return report

    def close(self) -> None:
        self._zookeeper.close()
