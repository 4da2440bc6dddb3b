#!/usr/bin/env python3
"""
YTOPERATOR CONFIG GENERATOR
---------------------------
Pure functions from (role, spec) to the serialized config artifact each
workload mounts, plus the naming scheme of every generated object.

The artifacts are JSON with sorted keys so the same spec always yields the
same bytes; the workload handle hashes them to detect drift.

Author: YTOperator Team
Date: 2026-10-17
"""

import json
from typing import Any, Callable, Dict, List, Optional

from ytoperator.core import consts
from ytoperator.core.errors import ConfigGenerationError
from ytoperator.core.models import ClusterSpec, InstanceSpec, MastersSpec, NodesSpec

MAX_CELL_TAG = 0xF000


def format_with_default(base: str, name: str) -> str:
    """'dnd' + 'default' -> 'dnd'; 'dnd' + 'ssd' -> 'dnd-ssd'."""
    if name == consts.DEFAULT_GROUP_NAME:
        return base
    return f"{base}-{name}"


def generate_cell_id(cell_tag: int) -> str:
    return f"65726e65-ad6b7562-{cell_tag:04x}0259-79747361"


def _serialize(config: Dict[str, Any]) -> bytes:
    return json.dumps(config, sort_keys=True, indent=2).encode("utf-8")


class ConfigGenerator:
    """
    Knows the cluster's name, namespace and spec; nothing else.

    Every public get_*_config method returns bytes or raises
    ConfigGenerationError when the spec cannot produce a valid artifact.
    """

    def __init__(self, cluster_name: str, namespace: str, spec: ClusterSpec,
                 cluster_domain: str = "cluster.local"):
        self.cluster_name = cluster_name
        self.namespace = namespace
        self.spec = spec
        self.cluster_domain = cluster_domain

    # --- Naming ---

    def get_master_stateful_set_name(self) -> str:
        return "ms"

    def get_masters_service_name(self) -> str:
        return "masters"

    def get_secondary_master_stateful_set_name(self, cell_tag: int) -> str:
        return f"sms-{cell_tag}"

    def get_secondary_masters_service_name(self, cell_tag: int) -> str:
        return f"secondary-masters-{cell_tag}"

    def get_master_caches_stateful_set_name(self) -> str:
        return "msc"

    def get_master_caches_service_name(self) -> str:
        return "master-caches"

    def get_data_nodes_stateful_set_name(self, name: str) -> str:
        return format_with_default("dnd", name)

    def get_data_nodes_service_name(self, name: str) -> str:
        return format_with_default("data-nodes", name)

    def get_exec_nodes_stateful_set_name(self, name: str) -> str:
        return format_with_default("end", name)

    def get_exec_nodes_service_name(self, name: str) -> str:
        return format_with_default("exec-nodes", name)

    def get_http_proxies_stateful_set_name(self, name: str) -> str:
        return format_with_default("hp", name)

    def get_http_proxies_service_name(self, name: str) -> str:
        return format_with_default("http-proxies", name)

    def get_http_proxies_balancer_service_name(self, name: str) -> str:
        return format_with_default("http-proxies-lb", name)

    def get_pod_fqdn_suffix(self, service_name: str) -> str:
        return f"{service_name}.{self.namespace}.svc.{self.cluster_domain}"

    def get_pod_address(self, pod_hostname: str, service_name: str, port: int) -> str:
        return f"{pod_hostname}.{self.get_pod_fqdn_suffix(service_name)}:{port}"

    @staticmethod
    def get_pod_names(stateful_set_name: str, count: int) -> List[str]:
        return [f"{stateful_set_name}-{idx}" for idx in range(count)]

    # --- Addresses ---

    def _addresses(self, spec: InstanceSpec, stateful_set_name: str, service_name: str,
                   port: int) -> List[str]:
        hosts = list(spec.host_addresses)
        if not hosts:
            suffix = self.get_pod_fqdn_suffix(service_name)
            hosts = [f"{pod}.{suffix}" for pod in self.get_pod_names(stateful_set_name, spec.instance_count)]
        return [f"{host}:{port}" for host in hosts]

    def get_master_addresses(self) -> List[str]:
        return self._addresses(self.spec.primary_masters, self.get_master_stateful_set_name(),
                               self.get_masters_service_name(), consts.MASTER_RPC_PORT)

    def get_secondary_master_addresses(self, spec: MastersSpec) -> List[str]:
        return self._addresses(spec, self.get_secondary_master_stateful_set_name(spec.cell_tag),
                               self.get_secondary_masters_service_name(spec.cell_tag),
                               consts.MASTER_RPC_PORT)

    def get_master_cache_addresses(self) -> List[str]:
        if self.spec.master_caches is None:
            return []
        return self._addresses(self.spec.master_caches, self.get_master_caches_stateful_set_name(),
                               self.get_master_caches_service_name(), consts.MASTER_RPC_PORT)

    # --- Shared fragments ---

    def _check_masters(self, spec: MastersSpec):
        if spec.instance_count < 1:
            raise ConfigGenerationError(f"Master cell {spec.cell_tag} needs at least one instance")
        if not 0 <= spec.cell_tag < MAX_CELL_TAG:
            raise ConfigGenerationError(f"Cell tag {spec.cell_tag} is out of range")

    def _master_cell(self, spec: MastersSpec, addresses: List[str]) -> Dict[str, Any]:
        self._check_masters(spec)
        return {
            "addresses": addresses,
            "cell_id": generate_cell_id(spec.cell_tag),
            "peers": [{"address": address, "voting": True} for address in addresses],
        }

    def _cluster_connection(self) -> Dict[str, Any]:
        connection: Dict[str, Any] = {
            "cluster_name": self.cluster_name,
            "primary_master": self._master_cell(self.spec.primary_masters, self.get_master_addresses()),
            "secondary_masters": [
                self._master_cell(s, self.get_secondary_master_addresses(s))
                for s in self.spec.secondary_masters
            ],
        }
        caches = self.get_master_cache_addresses()
        if caches:
            connection["master_cache"] = {"addresses": caches, "enable_master_cache_discovery": False}
        return connection

    def _address_resolver(self) -> Dict[str, Any]:
        return {
            "enable_ipv4": not self.spec.use_ipv6,
            "enable_ipv6": self.spec.use_ipv6,
            "retries": 1000,
        }

    def _common_server(self, rpc_port: int, monitoring_port: int, role: str) -> Dict[str, Any]:
        return {
            "rpc_port": rpc_port,
            "monitoring_port": monitoring_port,
            "address_resolver": self._address_resolver(),
            "cluster_connection": self._cluster_connection(),
            "logging": {
                "rules": [{"min_level": "info", "writers": ["info"]}],
                "writers": {"info": {"type": "file", "file_name": f"/var/log/{role}.info.log"}},
            },
        }

    # --- Artifacts ---

    def get_cluster_connection(self) -> bytes:
        return _serialize(self._cluster_connection())

    def get_native_client_config(self) -> bytes:
        return _serialize({
            "driver": self._cluster_connection(),
            "address_resolver": self._address_resolver(),
        })

    def get_master_config(self, spec: MastersSpec) -> bytes:
        config = self._common_server(consts.MASTER_RPC_PORT, consts.MASTER_MONITORING_PORT, "master")
        primary = config["cluster_connection"]["primary_master"]
        config["primary_master"] = primary
        config["timestamp_provider"] = {"addresses": primary["addresses"]}
        config["secondary_masters"] = config["cluster_connection"]["secondary_masters"]
        config["cell_tag"] = spec.cell_tag
        self._check_masters(spec)
        return _serialize(config)

    def get_master_cache_config(self) -> bytes:
        if self.spec.master_caches is None:
            raise ConfigGenerationError("Master caches are not declared")
        config = self._common_server(consts.MASTER_RPC_PORT, consts.MASTER_MONITORING_PORT, "master-cache")
        config["primary_master"] = config["cluster_connection"]["primary_master"]
        return _serialize(config)

    def get_data_node_config(self, spec: NodesSpec) -> bytes:
        config = self._common_server(consts.DATA_NODE_RPC_PORT, consts.DATA_NODE_MONITORING_PORT, "data-node")
        locations = spec.locations
        if not locations:
            raise ConfigGenerationError(f"Data node group '{spec.name}' has no chunk store locations")
        config["data_node"] = {
            "store_locations": [
                {"path": loc.path, "medium_name": loc.medium}
                for loc in locations if loc.location_type == "ChunkStore"
            ],
        }
        if not config["data_node"]["store_locations"]:
            raise ConfigGenerationError(f"Data node group '{spec.name}' has no ChunkStore location")
        config["flavors"] = ["data"]
        return _serialize(config)

    def get_exec_node_config(self, spec: NodesSpec) -> bytes:
        config = self._common_server(consts.EXEC_NODE_RPC_PORT, consts.EXEC_NODE_MONITORING_PORT, "exec-node")
        config["exec_node"] = {
            "slot_manager": {
                "locations": [{"path": loc.path} for loc in spec.locations if loc.location_type == "Slots"],
            },
        }
        config["flavors"] = ["exec"]
        return _serialize(config)

    def get_http_proxy_config(self, spec: NodesSpec) -> bytes:
        config = self._common_server(consts.HTTP_PROXY_RPC_PORT, consts.HTTP_PROXY_MONITORING_PORT, "http-proxy")
        config["port"] = consts.HTTP_PROXY_HTTP_PORT
        config["role"] = spec.name
        config["driver"] = config.pop("cluster_connection")
        return _serialize(config)

    def generate(self, role: str, spec: Optional[Any] = None) -> bytes:
        """Uniform entry point: `generate("data-node", nodes_spec)`."""
        table: Dict[str, Callable[[], bytes]] = {
            "master": lambda: self.get_master_config(spec or self.spec.primary_masters),
            "master-cache": self.get_master_cache_config,
            "data-node": lambda: self.get_data_node_config(spec),
            "exec-node": lambda: self.get_exec_node_config(spec),
            "http-proxy": lambda: self.get_http_proxy_config(spec),
            "client": self.get_native_client_config,
            "cluster-connection": self.get_cluster_connection,
        }
        try:
            producer = table[role]
        except KeyError:
            raise ConfigGenerationError(f"Unknown role '{role}'")
        return producer()
