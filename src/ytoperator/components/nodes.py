#!/usr/bin/env python3
"""
YTOPERATOR NODE AND PROXY ROLES
-------------------------------
Data nodes, exec nodes and HTTP proxies. One component per named group;
each one waits for the master cell and the node roles mirror their rack
placement into the catalog once their pods are up.

Author: YTOperator Team
Date: 2026-10-17
"""

import re
from typing import Callable, Optional

from ytoperator.components.base import Component, ServerComponent
from ytoperator.config.generator import ConfigGenerator, format_with_default
from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.models import NodesSpec
from ytoperator.platform.admin import AdminClient
from ytoperator.resources.labeller import Labeller
from ytoperator.resources.workload import WorkloadHandle
from ytoperator.topology.racks import RackSetup

NODE_BINARY = "/usr/bin/ytserver-node"
HTTP_PROXY_BINARY = "/usr/bin/ytserver-http-proxy"


def group_component_name(base: str, name: str) -> str:
    """'DataNode' + 'ssd-fast' -> 'DataNodeSsdFast'; the default group keeps the base."""
    if name == consts.DEFAULT_GROUP_NAME:
        return base
    return base + "".join(part.capitalize() for part in re.split(r"[-_]", name) if part)


class _GroupComponent(ServerComponent):
    component_label = ""
    component_name = ""
    monitoring_port = 0
    rpc_port = 0
    binary_path = NODE_BINARY
    config_file_name = ""
    with_topology = False
    with_balancer = False

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, spec: NodesSpec,
                 dependency: Optional[Component], admin: Optional[AdminClient],
                 stateful_set_name: str, service_name: str, generate_config: Callable[[], bytes]):
        self.cfgen = cfgen
        self.group = spec.name
        labeller = Labeller(
            cluster_name=cluster.name,
            namespace=cluster.namespace,
            component_label=format_with_default(self.component_label, spec.name),
            component_name=group_component_name(self.component_name, spec.name),
            monitoring_port=self.monitoring_port,
            annotations=dict(cluster.spec.extra_pod_annotations),
            labels=dict(cluster.spec.extra_pod_labels),
        )
        workload = WorkloadHandle(
            labeller, cluster.platform, spec,
            image=cluster.spec.core_image,
            binary_path=self.binary_path,
            config_file_name=self.config_file_name,
            stateful_set_name=stateful_set_name,
            service_name=service_name,
            rpc_port=self.rpc_port,
            generate_config=generate_config,
            balancer_service_name=(cfgen.get_http_proxies_balancer_service_name(spec.name)
                                   if self.with_balancer else None),
        )
        rack_setup = None
        if self.with_topology:
            rack_setup = RackSetup(
                cluster, labeller,
                lambda hostname: cfgen.get_pod_address(hostname, service_name, self.rpc_port),
            )
        super().__init__(labeller, cluster, workload, dependency=dependency,
                         rack_setup=rack_setup, admin=admin)


class DataNode(_GroupComponent):
    component_label = consts.YT_COMPONENT_LABEL_DATA_NODE
    component_name = "DataNode"
    monitoring_port = consts.DATA_NODE_MONITORING_PORT
    rpc_port = consts.DATA_NODE_RPC_PORT
    config_file_name = "ytserver-data-node.yson"
    with_topology = True

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, spec: NodesSpec,
                 dependency: Optional[Component] = None, admin: Optional[AdminClient] = None):
        super().__init__(cluster, cfgen, spec, dependency, admin,
                         cfgen.get_data_nodes_stateful_set_name(spec.name),
                         cfgen.get_data_nodes_service_name(spec.name),
                         lambda: cfgen.get_data_node_config(spec))


class ExecNode(_GroupComponent):
    component_label = consts.YT_COMPONENT_LABEL_EXEC_NODE
    component_name = "ExecNode"
    monitoring_port = consts.EXEC_NODE_MONITORING_PORT
    rpc_port = consts.EXEC_NODE_RPC_PORT
    config_file_name = "ytserver-exec-node.yson"
    with_topology = True

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, spec: NodesSpec,
                 dependency: Optional[Component] = None, admin: Optional[AdminClient] = None):
        super().__init__(cluster, cfgen, spec, dependency, admin,
                         cfgen.get_exec_nodes_stateful_set_name(spec.name),
                         cfgen.get_exec_nodes_service_name(spec.name),
                         lambda: cfgen.get_exec_node_config(spec))


class HttpProxy(_GroupComponent):
    component_label = consts.YT_COMPONENT_LABEL_HTTP_PROXY
    component_name = "HttpProxy"
    monitoring_port = consts.HTTP_PROXY_MONITORING_PORT
    rpc_port = consts.HTTP_PROXY_RPC_PORT
    binary_path = HTTP_PROXY_BINARY
    config_file_name = "ytserver-http-proxy.yson"
    with_balancer = True

    def __init__(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator, spec: NodesSpec,
                 dependency: Optional[Component] = None, admin: Optional[AdminClient] = None):
        super().__init__(cluster, cfgen, spec, dependency, admin,
                         cfgen.get_http_proxies_stateful_set_name(spec.name),
                         cfgen.get_http_proxies_service_name(spec.name),
                         lambda: cfgen.get_http_proxy_config(spec))
