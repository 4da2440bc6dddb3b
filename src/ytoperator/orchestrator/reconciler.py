#!/usr/bin/env python3
"""
YTOPERATOR RECONCILER - The Driver
----------------------------------
Builds the component graph of one cluster resource from its declared spec
and drives it one pass at a time. Nothing is cached between passes: every
pass re-reads the resource, rebuilds the components and lets the
orchestrator decide from persisted state alone.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ytoperator.components.base import ServerComponent
from ytoperator.components.masters import MasterCache, MasterCell, SecondaryMaster
from ytoperator.components.nodes import DataNode, ExecNode, HttpProxy
from ytoperator.config.generator import ConfigGenerator
from ytoperator.config.settings import OperatorSettings
from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.conditions import Condition
from ytoperator.core.errors import OperatorError
from ytoperator.core.models import ComponentStatus
from ytoperator.orchestrator.update import StepResult, UpdateOrchestrator
from ytoperator.platform.admin import AdminClient, HttpAdminClient
from ytoperator.platform.client import PlatformClient

logger = logging.getLogger("ytoperator.reconciler")

AdminFactory = Callable[[YtsaurusCluster, ConfigGenerator], Optional[AdminClient]]


def build_components(cluster: YtsaurusCluster, cfgen: ConfigGenerator, settings: OperatorSettings,
                     admin: Optional[AdminClient] = None) -> List[ServerComponent]:
    """Masters first; everything else waits on the primary cell."""
    spec = cluster.spec
    master = MasterCell(cluster, cfgen, settings)
    components: List[ServerComponent] = [master]
    components += [SecondaryMaster(cluster, cfgen, settings, s) for s in spec.secondary_masters]
    if spec.master_caches is not None:
        components.append(MasterCache(cluster, cfgen, settings, dependency=master))
    components += [DataNode(cluster, cfgen, s, dependency=master, admin=admin) for s in spec.data_nodes]
    components += [ExecNode(cluster, cfgen, s, dependency=master, admin=admin) for s in spec.exec_nodes]
    components += [HttpProxy(cluster, cfgen, s, dependency=master, admin=admin) for s in spec.http_proxies]
    return components


def default_admin_url(cfgen: ConfigGenerator) -> Optional[str]:
    """The first declared HTTP proxy group, reached through its balancer service."""
    if not cfgen.spec.http_proxies:
        return None
    service = cfgen.get_http_proxies_balancer_service_name(cfgen.spec.http_proxies[0].name)
    return f"http://{cfgen.get_pod_fqdn_suffix(service)}:{consts.HTTP_PROXY_HTTP_PORT}"


@dataclass
class PassReport:
    cluster: str
    cluster_state: str
    update_state: str
    statuses: Dict[str, ComponentStatus] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    transitions: List[str] = field(default_factory=list)
    conditions: List[Condition] = field(default_factory=list)
    update_conditions: List[Condition] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return not self.errors

    def summary(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for status in self.statuses.values():
            counts[status.sync_status.value] = counts.get(status.sync_status.value, 0) + 1
        return {
            "cluster": self.cluster,
            "state": self.cluster_state,
            "update_state": self.update_state,
            "components": len(self.statuses) + len([n for n in self.errors if n not in self.statuses]),
            "by_status": counts,
            "errors": len(self.errors),
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(self.timestamp)),
        }


class Reconciler:
    """
    Entry point used by the CLI and by tests.

    Args:
        admin_factory: builds the catalog client for a cluster; by default an
            HttpAdminClient pointed at settings.admin_proxy_url or the first
            HTTP proxy group.
    """

    def __init__(self, platform: PlatformClient, settings: Optional[OperatorSettings] = None,
                 admin_factory: Optional[AdminFactory] = None):
        self.platform = platform
        self.settings = settings or OperatorSettings()
        self.admin_factory = admin_factory or self._default_admin

    def _default_admin(self, cluster: YtsaurusCluster, cfgen: ConfigGenerator) -> Optional[AdminClient]:
        url = self.settings.admin_proxy_url or default_admin_url(cfgen)
        if url is None:
            return None
        return HttpAdminClient(url, token=self.settings.admin_token, timeout=self.settings.request_timeout)

    def load(self, name: str) -> YtsaurusCluster:
        cluster = YtsaurusCluster({"metadata": {"name": name, "namespace": self.platform.namespace}},
                                  self.platform)
        cluster.fetch()
        return cluster

    def _prepare(self, cluster: YtsaurusCluster):
        cfgen = ConfigGenerator(cluster.name, cluster.namespace, cluster.spec, self.settings.cluster_domain)
        admin = self.admin_factory(cluster, cfgen)
        return build_components(cluster, cfgen, self.settings, admin), admin

    def _report(self, cluster: YtsaurusCluster, result: StepResult) -> PassReport:
        return PassReport(
            cluster=cluster.name,
            cluster_state=cluster.cluster_state.value,
            update_state=cluster.update_state.value,
            statuses=dict(result.statuses),
            errors=dict(result.errors),
            transitions=list(result.transitions),
            conditions=list(cluster.conditions()),
            update_conditions=list(cluster.update_conditions()),
        )

    def observe(self, name: str) -> PassReport:
        """Fetch plus dry-run of every component. Writes nothing."""
        cluster = self.load(name)
        components, _ = self._prepare(cluster)
        result = StepResult()
        for component in components:
            try:
                component.fetch()
                result.statuses[component.name] = component.status()
            except OperatorError as e:
                logger.error(f"{component.name}: {e}")
                result.errors[component.name] = str(e)
        return self._report(cluster, result)

    def reconcile_once(self, name: str) -> PassReport:
        cluster = self.load(name)
        components, admin = self._prepare(cluster)
        result = UpdateOrchestrator(cluster, components, admin).step()
        report = self._report(cluster, result)
        if report.ok:
            logger.info(f"Pass over {name} complete: {report.cluster_state}/{report.update_state}")
        else:
            logger.warning(f"Pass over {name} finished with {len(report.errors)} error(s)")
        return report

    def run(self, name: str, interval: Optional[float] = None, max_passes: Optional[int] = None,
            on_pass: Optional[Callable[[PassReport], None]] = None,
            sleep: Callable[[float], None] = time.sleep) -> int:
        """
        Reconciles at a fixed cadence. A pass that fails outright (the
        resource cannot be read) is logged and retried on the next tick.
        """
        interval = self.settings.reconcile_interval if interval is None else interval
        passes = 0
        while max_passes is None or passes < max_passes:
            try:
                report = self.reconcile_once(name)
            except OperatorError as e:
                logger.error(f"Pass over {name} aborted: {e}")
            else:
                if on_pass is not None:
                    on_pass(report)
            passes += 1
            if max_passes is None or passes < max_passes:
                sleep(interval)
        return passes
