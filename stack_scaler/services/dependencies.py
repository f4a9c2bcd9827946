from __future__ import annotations

import boto3

from stack_scaler.models.session import SessionConfig
from stack_scaler.services.collection_manager import CollectionManager
from stack_scaler.services.command_service import CommandService
from stack_scaler.services.config import ScalerConfig
from stack_scaler.services.fleet_registry import FleetRegistry
from stack_scaler.services.notifier import LoggingNotifier, Notifier
from stack_scaler.services.orchestrator import Orchestrator
from stack_scaler.services.scale_controller import ScaleController
from stack_scaler.services.session_store import SessionStore
from stack_scaler.services.solr_service import SolrService
from stack_scaler.services.zookeeper_service import ZookeeperService


def build_orchestrator(*, config: ScalerConfig, session: SessionConfig, notifier: Notifier) -> Orchestrator:
    """Construct every client once and hand them to the components of one orchestrator."""

    aws = boto3.session.Session(region_name=config.region_name)
    autoscaling = aws.client("autoscaling")
    registry = FleetRegistry(
        autoscaling=autoscaling,
        beanstalk=aws.client("elasticbeanstalk"),
        environment_tag=config.environment_tag,
    )
    zookeeper = ZookeeperService(host=session.host_for("zk"))
    solr = SolrService(
        base_url=f"http://{session.host_for('solr')}/solr",
        timeout_seconds=config.http_timeout_seconds,
    )

    return Orchestrator(
        session=session,
        registry=registry,
        scaler=ScaleController(autoscaling=autoscaling, registry=registry, session=session, notifier=notifier),
        collections=CollectionManager(
            solr=solr,
            zookeeper=zookeeper,
            session=session,
            notifier=notifier,
            backup_location=config.backup_location,
        ),
        zookeeper=zookeeper,
        notifier=notifier,
        settle_seconds=config.settle_seconds,
    )


def get_command_service() -> CommandService:
    """FastAPI dependency provider for a CommandService instance."""

    config = ScalerConfig.from_env()
    return CommandService(
        store=SessionStore(config.session_file),
        build=lambda session, notifier: build_orchestrator(config=config, session=session, notifier=notifier),
        notifier=LoggingNotifier(),
    )
