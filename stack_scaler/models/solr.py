from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

_CORE_NAME = re.compile(r"^(?P<collection>.+)_(?P<shard>shard\d+)_(?P<replica>replica.*)$")


class _AdminModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResponseHeader(_AdminModel):
    status: int = -1
    qtime: Optional[int] = Field(default=None, alias="QTime")


class AdminResponse(_AdminModel):
    """Generic collections-admin response.

    Actions report success either with a top-level `success` entry or with
    `responseHeader.status == 0`; both are honoured.
    """

    success: Any = None
    response_header: ResponseHeader = Field(default_factory=ResponseHeader, alias="responseHeader")
    error: Optional[dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return bool(self.success) or self.response_header.status == 0


class CollectionListResponse(AdminResponse):
    collections: list[str] = Field(default_factory=list)


class Replica(_AdminModel):
    core: str = ""
    node_name: str = ""
    base_url: str = ""
    state: str = "down"
    leader: bool = False

    @property
    def active(self) -> bool:
        return self.state == "active"


class Shard(_AdminModel):
    state: str = "active"
    replicas: dict[str, Replica] = Field(default_factory=dict)

    def leader_id(self) -> Optional[str]:
        return next((name for name, replica in self.replicas.items() if replica.leader), None)

    def replicas_in_state(self, state: str) -> dict[str, Replica]:
        return {name: replica for name, replica in self.replicas.items() if replica.state == state}


class CollectionState(_AdminModel):
    shards: dict[str, Shard] = Field(default_factory=dict)


class ClusterState(_AdminModel):
    collections: dict[str, CollectionState] = Field(default_factory=dict)
    live_nodes: list[str] = Field(default_factory=list)


class ClusterStatusResponse(AdminResponse):
    cluster: ClusterState = Field(default_factory=ClusterState)


class CoreCloud(_AdminModel):
    collection: str
    shard: str
    replica: str

    @property
    def sort_key(self) -> str:
        return self.collection + self.shard + self.replica

    @staticmethod
    def from_core_name(name: str) -> Optional["CoreCloud"]:
        match = _CORE_NAME.match(name)
        if match is None:
            return None
        return CoreCloud(**match.groupdict())


class CoreIndex(_AdminModel):
    num_docs: Optional[int] = Field(default=None, alias="numDocs")
    max_doc: Optional[int] = Field(default=None, alias="maxDoc")
    deleted_docs: Optional[int] = Field(default=None, alias="deletedDocs")
    current: Optional[bool] = None
    has_deletions: Optional[bool] = Field(default=None, alias="hasDeletions")

    def row(self) -> list[Any]:
        return [self.num_docs, self.max_doc, self.deleted_docs, self.current, self.has_deletions]


class CoreStatus(_AdminModel):
    name: str = ""
    cloud: Optional[CoreCloud] = None
    index: CoreIndex = Field(default_factory=CoreIndex)

    def identity(self, core_name: str) -> Optional[CoreCloud]:
        return self.cloud or CoreCloud.from_core_name(self.name or core_name)


class CoreStatusResponse(AdminResponse):
    status: dict[str, CoreStatus] = Field(default_factory=dict)
