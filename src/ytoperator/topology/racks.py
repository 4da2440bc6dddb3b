#!/usr/bin/env python3
"""
YTOPERATOR TOPOLOGY SYNCHRONIZER
--------------------------------
Mirrors physical placement (host / rack / datacenter) of a component's
running pods into the cluster's metadata catalog, so the engine can make
failure-domain aware placement decisions.

Catalog layout touched here:
  //sys/racks/<rack>                         (rack object)
  //sys/data_centers/<dc>                    (data_center object)
  //sys/hosts/<host>/@rack, @data_center
  //sys/cluster_nodes/<address>/@rack, @data_center
  //sys/racks/<rack>/@data_center

Every per-item operation is independent: a failure is logged, collected,
and the loop moves on. The next pass heals whatever was left behind.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Set, Tuple

from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.errors import AlreadyExistsError, OperatorError
from ytoperator.core.models import TopologyFact
from ytoperator.platform.admin import AdminClient
from ytoperator.resources.labeller import Labeller

logger = logging.getLogger("ytoperator.topology")


@dataclass(frozen=True)
class TopologyFailure:
    operation: str      # ensure-rack, set-host-rack, ...
    subject: str        # the rack / host / address being written
    error: str


class RackSetup:
    """
    Args:
        address_of: maps a pod's hostname to its in-cluster host:port.
    """

    def __init__(self, cluster: YtsaurusCluster, labeller: Labeller,
                 address_of: Callable[[str], str]):
        self.cluster = cluster
        self.labeller = labeller
        self.address_of = address_of

    # --- Discovery ---

    def collect_facts(self) -> List[TopologyFact]:
        spec = self.cluster.spec.rack_awareness
        pods = self.cluster.platform.list("Pod", self.labeller.get_selector_label_map())

        facts = []
        for pod in pods:
            if ((pod.get("status") or {}).get("phase")) != "Running":
                continue
            labels = (pod.get("metadata") or {}).get("labels") or {}
            rack = labels.get(spec.rack_label)
            if not rack:
                continue
            pod_spec = pod.get("spec") or {}
            hostname = pod_spec.get("hostname") or pod["metadata"]["name"]
            facts.append(TopologyFact(
                host=pod_spec.get("nodeName") or None,
                address=self.address_of(hostname),
                rack=rack,
                datacenter=labels.get(spec.dc_label) or None,
            ))
        return facts

    @staticmethod
    def group(facts: List[TopologyFact]) -> Tuple[Dict[str, Set[str]], Dict[str, Set[str]], Dict[str, Set[str]]]:
        """rack -> hosts, rack -> addresses, dc -> racks."""
        rack_hosts: Dict[str, Set[str]] = defaultdict(set)
        rack_addresses: Dict[str, Set[str]] = defaultdict(set)
        dc_racks: Dict[str, Set[str]] = defaultdict(set)
        for fact in facts:
            if fact.host:
                rack_hosts[fact.rack].add(fact.host)
            rack_addresses[fact.rack].add(fact.address)
            if fact.datacenter:
                dc_racks[fact.datacenter].add(fact.rack)
        return rack_hosts, rack_addresses, dc_racks

    # --- Sync ---

    def set_racks(self, admin: AdminClient) -> List[TopologyFailure]:
        spec = self.cluster.spec.rack_awareness
        if not spec.enable:
            return []

        logger.info(f"Syncing racks for {self.labeller.component_name} "
                    f"(rack_label={spec.rack_label}, dc_label={spec.dc_label})")

        rack_hosts, rack_addresses, dc_racks = self.group(self.collect_facts())
        failures: List[TopologyFailure] = []

        def attempt(operation: str, subject: str, fn: Callable[[], None]) -> bool:
            try:
                fn()
            except OperatorError as e:
                logger.error(f"Topology {operation} failed for '{subject}': {e}")
                failures.append(TopologyFailure(operation, subject, str(e)))
                return False
            return True

        racks = sorted(set(rack_hosts) | set(rack_addresses))
        for rack in racks:
            if not attempt("ensure-rack", rack,
                           lambda: self._ensure_object(admin, consts.RACKS_PATH, "rack", rack)):
                continue
            for host in sorted(rack_hosts.get(rack, ())):
                attempt("set-host-rack", host,
                        lambda: self._set_attr(admin, f"{consts.HOSTS_PATH}/{host}/@rack", rack))
            for address in sorted(rack_addresses.get(rack, ())):
                attempt("set-address-rack", address,
                        lambda: self._set_attr(admin, f"{consts.CLUSTER_NODES_PATH}/{address}/@rack", rack))

        for dc in sorted(dc_racks):
            if not attempt("ensure-dc", dc,
                           lambda: self._ensure_object(admin, consts.DATA_CENTERS_PATH, "data_center", dc)):
                continue
            for rack in sorted(dc_racks[dc]):
                if not attempt("set-rack-dc", rack,
                               lambda: self._set_attr(admin, f"{consts.RACKS_PATH}/{rack}/@data_center", dc)):
                    continue
                for host in sorted(rack_hosts.get(rack, ())):
                    attempt("set-host-dc", host,
                            lambda: self._set_attr(admin, f"{consts.HOSTS_PATH}/{host}/@data_center", dc))
                for address in sorted(rack_addresses.get(rack, ())):
                    attempt("set-address-dc", address,
                            lambda: self._set_attr(admin, f"{consts.CLUSTER_NODES_PATH}/{address}/@data_center", dc))

        if failures:
            logger.warning(f"Topology sync for {self.labeller.component_name} left {len(failures)} item(s) behind")
        return failures

    @staticmethod
    def _ensure_object(admin: AdminClient, root: str, kind: str, name: str):
        if admin.exists(f"{root}/{name}"):
            logger.debug(f"{kind} '{name}' already exists")
            return
        logger.info(f"Creating {kind} '{name}'")
        try:
            admin.create(kind, {"name": name})
        except AlreadyExistsError:
            logger.debug(f"{kind} '{name}' was created concurrently")

    @staticmethod
    def _set_attr(admin: AdminClient, path: str, value: str):
        if admin.get(path) == value:
            return
        admin.set(path, value)
