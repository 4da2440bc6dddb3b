#!/usr/bin/env python3
"""
YTOPERATOR MASTER ROLES
-----------------------
Primary master cell, secondary master cells and master caches.

All three pin their pods to declared hosts and run a bootstrap job that
publishes the cluster connection. The master cells also take part in the
read-only-exit handshake during a full update.

Author: YTOperator Team
Date: 2026-10-17
"""

import json
from typing import List, Optional, Tuple

from ytoperator.components.base import ServerComponent
from ytoperator.config.generator import ConfigGenerator
from ytoperator.config.settings import OperatorSettings
from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.models import MastersSpec
from ytoperator.resources.bootstrap import InitJob, native_driver_prologue
from ytoperator.resources.labeller import Labeller
from ytoperator.resources.workload import WorkloadHandle

MASTER_BINARY = "/usr/bin/ytserver-master"
MASTER_CONFIG_FILE = "ytserver-master.yson"
MASTER_CACHE_BINARY = "/usr/bin/ytserver-master-cache"
MASTER_CACHE_CONFIG_FILE = "ytserver-master-cache.yson"

EXIT_READ_ONLY_JOB_NAME = "exit-read-only"


def _labeller(cluster: YtsaurusCluster, component_label: str, component_name: str) -> Labeller:
    return Labeller(
        cluster_name=cluster.name,
        namespace=cluster.namespace,
        component_label=component_label,
        component_name=component_name,
        monitoring_port=consts.MASTER_MONITORING_PORT,
        annotations=dict(cluster.spec.extra_pod_annotations),
        labels=dict(cluster.spec.extra_pod_labels),
    )


def set_cluster_connection_script(cfgen: ConfigGenerator) -> List[str]:
    connection = cfgen.get_cluster_connection().decode("utf-8")
    return [
        native_driver_prologue(),
        f"/usr/bin/yt set //sys/@cluster_connection '{connection}'",
    ]


def extra_media(cluster: YtsaurusCluster) -> List[str]:
    """Non-default media declared by data node locations, sorted."""
    media = set()
    for group in cluster.spec.data_nodes:
        for location in group.locations:
            if location.medium != consts.DEFAULT_MEDIUM:
                media.add(location.medium)
    return sorted(media)


class _MasterBase(ServerComponent):
    """Shared wiring of master quorum roles."""

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, settings: OperatorSettings,
                 spec: MastersSpec, labeller: Labeller, stateful_set_name: str, service_name: str):
        self.cfgen = cfgen
        workload = WorkloadHandle(
            labeller, cluster.platform, spec,
            image=cluster.spec.core_image,
            binary_path=MASTER_BINARY,
            config_file_name=MASTER_CONFIG_FILE,
            stateful_set_name=stateful_set_name,
            service_name=service_name,
            rpc_port=consts.MASTER_RPC_PORT,
            generate_config=lambda: cfgen.get_master_config(spec),
        )
        super().__init__(
            labeller, cluster, workload,
            init_job=InitJob(labeller, cluster, cluster.spec.core_image, "default",
                             cfgen.get_native_client_config),
            exit_read_only_job=InitJob(labeller, cluster, cluster.spec.core_image,
                                       EXIT_READ_ONLY_JOB_NAME, cfgen.get_native_client_config),
            pinned=spec,
            default_host_address_label=settings.default_host_address_label,
        )

    def create_init_script(self) -> str:
        return "\n".join(set_cluster_connection_script(self.cfgen))

    def create_exit_read_only_script(self) -> str:
        return "\n".join([
            native_driver_prologue(),
            "/usr/bin/yt execute master_exit_read_only '{}'",
        ])


class MasterCell(_MasterBase):
    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, settings: OperatorSettings):
        spec = cluster.spec.primary_masters
        super().__init__(
            cluster, cfgen, settings, spec,
            _labeller(cluster, consts.YT_COMPONENT_LABEL_MASTER_CELL, "MasterCell"),
            cfgen.get_master_stateful_set_name(),
            cfgen.get_masters_service_name(),
        )


class SecondaryMaster(_MasterBase):
    """
    One secondary master cell. Its handshake conditions carry the
    component name so several cells can progress independently.
    """

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, settings: OperatorSettings,
                 spec: MastersSpec):
        self.cell_tag = spec.cell_tag
        super().__init__(
            cluster, cfgen, settings, spec,
            _labeller(cluster, f"{consts.YT_COMPONENT_LABEL_SECONDARY_MASTER}-{spec.cell_tag}",
                      f"SecondaryMaster{spec.cell_tag}"),
            cfgen.get_secondary_master_stateful_set_name(spec.cell_tag),
            cfgen.get_secondary_masters_service_name(spec.cell_tag),
        )

    def handshake_condition_types(self) -> Tuple[str, str]:
        return (f"{self.name}{consts.CONDITION_MASTER_EXIT_READ_ONLY_PREPARED}",
                f"{self.name}{consts.CONDITION_MASTER_EXITED_READ_ONLY}")


class MasterCache(ServerComponent):
    """Read-serving cache in front of the primary cell; also provisions media."""

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, settings: OperatorSettings,
                 dependency: Optional[ServerComponent] = None):
        self.cfgen = cfgen
        spec = cluster.spec.master_caches
        labeller = _labeller(cluster, consts.YT_COMPONENT_LABEL_MASTER_CACHE, "MasterCache")
        workload = WorkloadHandle(
            labeller, cluster.platform, spec,
            image=cluster.spec.core_image,
            binary_path=MASTER_CACHE_BINARY,
            config_file_name=MASTER_CACHE_CONFIG_FILE,
            stateful_set_name=cfgen.get_master_caches_stateful_set_name(),
            service_name=cfgen.get_master_caches_service_name(),
            rpc_port=consts.MASTER_RPC_PORT,
            generate_config=cfgen.get_master_cache_config,
        )
        super().__init__(
            labeller, cluster, workload,
            init_job=InitJob(labeller, cluster, cluster.spec.core_image, "default",
                             cfgen.get_native_client_config),
            dependency=dependency,
            pinned=spec,
            default_host_address_label=settings.default_host_address_label,
        )

    def init_media(self) -> List[str]:
        commands = []
        for medium in extra_media(self.cluster):
            attributes = json.dumps({"name": medium})
            commands.append(f"/usr/bin/yt get //sys/media/{medium}/@name "
                            f"|| /usr/bin/yt create medium --attr '{attributes}'")
        return commands

    def create_init_script(self) -> str:
        return "\n".join(set_cluster_connection_script(self.cfgen) + self.init_media())
