from __future__ import annotations

import io
import json
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from stack_scaler.models.session import SessionConfig
from stack_scaler.models.solr import (
    AdminResponse,
    ClusterStatusResponse,
    CollectionListResponse,
    CoreCloud,
    CoreIndex,
    CoreStatusResponse,
)
from stack_scaler.services.errors import SolrOperationError
from stack_scaler.services.notifier import Notifier
from stack_scaler.services.solr_service import SolrService
from stack_scaler.services.zookeeper_service import ZookeeperService


logger = logging.getLogger(__name__)

BACKUP_PREFIX = "scaling_"
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
# Reconciliation only addresses the first shard of each collection.
RECONCILED_SHARD = "shard1"
STATUS_CORE_COLUMNS = ["collection", "shard", "replica"]
STATUS_INDEX_COLUMNS = ["numDocs", "maxDoc", "deletedDocs", "current", "hasDeletions"]


def backup_name_for(collection: str, at: datetime) -> str:
    return f"{BACKUP_PREFIX}{collection}_backup_{at.strftime(TIMESTAMP_FORMAT)}"


class LeaderObserver(Protocol):
    def on_leader(self, collection: str, shard: str, replica: str) -> None: ...


class NoOpLeaderObserver:
    def on_leader(self, collection: str, shard: str, replica: str) -> None:
        return None


def render_table(headers: Sequence[str], rows: Sequence[Sequence[Any]], *, width: int = 200) -> str:
    """Fixed-column ASCII table, one cell per column."""

    table = Table(*headers, box=box.ASCII)
    for row in rows:
        table.add_row(*("" if cell is None else str(cell) for cell in row))

    buffer = io.StringIO()
    console = Console(file=buffer, width=width, markup=False, highlight=False, color_system=None)
    console.print(table)
    return buffer.getvalue().rstrip("\n")


class CollectionManager:
    """Solr collection lifecycle: backup, restore, leader replacement, replica reconciliation."""

    def __init__(
        self,
        *,
        solr: SolrService,
        zookeeper: ZookeeperService,
        session: SessionConfig,
        notifier: Notifier,
        backup_location: str = "/data/backup",
        now: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._solr = solr
        self._zookeeper = zookeeper
        self._session = session
        self._notifier = notifier
        self._backup_location = backup_location
        self._now = now
        self._sleep = sleep

    # -----------------
    # Reads
    # -----------------

    def _fetch_collections(self) -> list[str]:
        return CollectionListResponse.model_validate(self._solr.collections_api("list")).collections

    def list_collections(self) -> list[str]:
        if not self._session.collections:
            self._session.collections = self._fetch_collections()
        return self._session.collections

    def cluster_status(self) -> ClusterStatusResponse:
        return ClusterStatusResponse.model_validate(self._solr.collections_api("clusterstatus"))

    @staticmethod
    def _require_success(payload: dict[str, Any], *, what: str) -> None:
        response = AdminResponse.model_validate(payload)
        if not response.succeeded:
            reason = f" ({response.error.get('msg')})" if response.error and response.error.get("msg") else ""
            raise SolrOperationError(f"{what} failed{reason}:\n{json.dumps(payload)}", payload=payload)

    # -----------------
    # Backup / restore
    # -----------------

    def backup(self) -> dict[str, str]:
        """Back up every collection; return collection -> backup name. Not persisted here."""

        result: dict[str, str] = {}
        for collection in self.list_collections():
            backup_name = backup_name_for(collection, self._now())
            self._notifier.info(f"Committing and optimizing: {collection}")
            self._solr.update(collection, commit=True, optimize=True)
            self._notifier.info(f"Backing up collection: {collection}")
            payload = self._solr.collections_api(
                "backup", name=backup_name, collection=collection, location=self._backup_location
            )
            self._require_success(payload, what=f"Backup of `{collection}`")
            result[collection] = backup_name
        return result

    def restore_collection(self, collection: str, backup_name: str) -> bool:
        """Restore one collection unless it already exists. Return True if a restore ran."""

        live_nodes = len(self.cluster_status().cluster.live_nodes)
        if collection in self._fetch_collections():
            self._notifier.info(f"Not restoring collection {collection} because it already exists")
            return False

        self._notifier.info(f"Restoring collection: {collection} from {backup_name}")
        # Clears a stale placeholder left behind by a failed restore; the result is not checked.
        self._solr.collections_api("delete", name=collection)
        payload = self._solr.collections_api(
            "restore",
            name=backup_name,
            collection=collection,
            location=self._backup_location,
            maxShardsPerNode=1,
            replicationFactor=live_nodes,
        )
        self._require_success(payload, what=f"Restore of `{collection}`")
        return True

    def restore_all(self, backups: dict[str, str]) -> list[str]:
        restored = []
        for collection, backup_name in backups.items():
            if self.restore_collection(collection, backup_name):
                restored.append(collection)
        return restored

    def resolr(self, collection: str) -> bool:
        backup_name = self._session.backups.get(collection)
        if backup_name is None:
            self._notifier.info(f"Not replacing collection {collection} because no current backup exists.")
            return False

        self._notifier.info(f"Deleting collection: {collection}")
        self._solr.collections_api("delete", name=collection)
        self._sleep(2)
        self.restore_collection(collection, backup_name)
        self._sleep(5)
        self.replace_leaders()
        return True

    # -----------------
    # Replica maintenance
    # -----------------

    def replace_leaders(self, observer: Optional[LeaderObserver] = None) -> int:
        """Delete then re-add each shard leader to force a re-election.

        The shard is briefly leaderless between the delete and the add.
        """

        observer = observer or NoOpLeaderObserver()
        leaders: list[tuple[str, str, str]] = []
        for collection, state in self.cluster_status().cluster.collections.items():
            for shard_name, shard in state.shards.items():
                replica = shard.leader_id()
                if replica is None:
                    logger.warning("No leader found for %s/%s", collection, shard_name)
                    continue
                leaders.append((collection, shard_name, replica))

        for collection, shard_name, replica in leaders:
            observer.on_leader(collection, shard_name, replica)
            self._solr.collections_api("deletereplica", collection=collection, shard=shard_name, replica=replica)
            self._solr.collections_api("addreplica", collection=collection, shard=shard_name)
        return len(leaders)

    def reconcile_replicas(self) -> dict[str, int]:
        """Drop down replicas of `shard1` and add replicas until it spans every live node.

        Returns collection -> number of replicas added.
        """

        cluster = self.cluster_status().cluster
        live_nodes = len(cluster.live_nodes)
        added: dict[str, int] = {}
        for name, details in cluster.collections.items():
            shard = details.shards.get(RECONCILED_SHARD)
            if shard is None:
                logger.warning("Collection %s has no %s; skipping", name, RECONCILED_SHARD)
                continue

            down = shard.replicas_in_state("down")
            active_count = len(shard.replicas_in_state("active"))
            nodes_needed = max(live_nodes - active_count, 0)
            self._notifier.info(
                f"{name}: Removing {len(down)} dead replicas and adding {nodes_needed} new replicas"
            )
            for replica in down:
                self._solr.collections_api(
                    "deletereplica", collection=name, shard=RECONCILED_SHARD, replica=replica, onlyIfDown=True
                )
            for _ in range(nodes_needed):
                self._solr.collections_api("addreplica", collection=name, shard=RECONCILED_SHARD)
            self._solr.collections_api("reload", name=name)
            added[name] = nodes_needed
        return added

    # -----------------
    # Reporting
    # -----------------

    def core_report(self, nodes: Optional[Sequence[str]] = None) -> list[tuple[CoreCloud, CoreIndex]]:
        nodes = list(nodes) if nodes else self._zookeeper.live_nodes()
        entries: dict[tuple[str, str, str], tuple[CoreCloud, CoreIndex]] = {}
        for node in nodes:
            response = CoreStatusResponse.model_validate(self._solr.cores_api(node, "status"))
            for core_name, core in response.status.items():
                identity = core.identity(core_name)
                if identity is None:
                    logger.warning("Skipping core with unrecognised name %s on %s", core_name, node)
                    continue
                entries[(identity.collection, identity.shard, identity.replica)] = (identity, core.index)
        return sorted(entries.values(), key=lambda entry: entry[0].sort_key)

    def status(self, nodes: Optional[Sequence[str]] = None) -> str:
        rows = [
            [identity.collection, identity.shard, identity.replica, *index.row()]
            for identity, index in self.core_report(nodes)
        ]
        return render_table(STATUS_CORE_COLUMNS + STATUS_INDEX_COLUMNS, rows)
