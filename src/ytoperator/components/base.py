#!/usr/bin/env python3
"""
YTOPERATOR COMPONENT STATE MACHINE
----------------------------------
One named, independently reconciled unit of the cluster. Every role driver
(masters, caches, nodes, proxies) is a ServerComponent configured with
role-specific hooks; the decision logic below is shared by all of them.

evaluate(dry) is the only entry point. status() calls it with dry=True and
must not write anything; sync() calls it with dry=False. Because both go
through the same ordered checks, the probe and the action cannot drift.

Evaluation order, first applicable wins:
  1. cluster may start an update and the workload changed disruptively
     -> NeedFullUpdate (nothing applied)
  2. cluster is Updating
     -> read-only-exit handshake (masters, WaitingForMasterExitReadOnly)
     -> shared update-phase handler (may fall through)
  3. workload diverges from desired -> apply (not dry), Pending
  4. pods not ready -> Blocked "pods"
  5. dependency not Ready -> Blocked <dependency name>
     (topology sync happens here, not dry only)
  6. bootstrap job attached -> its evaluation is ours
  7. Ready

Author: YTOperator Team
Date: 2026-10-17
"""

import abc
import logging
from typing import List, Optional, Tuple

from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.conditions import Condition
from ytoperator.core.models import (
    ClusterState, ComponentStatus, InstanceSpec, SyncStatus, UpdateState,
)
from ytoperator.platform.admin import AdminClient
from ytoperator.resources.bootstrap import InitJob, RestartPhase
from ytoperator.resources.labeller import Labeller
from ytoperator.resources.placement import add_host_affinity
from ytoperator.resources.workload import WorkloadHandle
from ytoperator.topology.racks import RackSetup, TopologyFailure

logger = logging.getLogger("ytoperator.components")


class Component(abc.ABC):
    """Fetch / Status / Sync / IsUpdatable / Name."""

    def __init__(self, labeller: Labeller, cluster: YtsaurusCluster):
        self.labeller = labeller
        self.cluster = cluster

    @property
    def name(self) -> str:
        return self.labeller.component_name

    def is_updatable(self) -> bool:
        return False

    @abc.abstractmethod
    def fetch(self):
        """Reads the observed state of everything this component owns."""

    @abc.abstractmethod
    def evaluate(self, dry: bool) -> ComponentStatus:
        ...

    def status(self) -> ComponentStatus:
        return self.evaluate(dry=True)

    def sync(self) -> ComponentStatus:
        return self.evaluate(dry=False)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


def handle_updating_cluster_state(cluster: YtsaurusCluster, component: Component,
                                  workload: WorkloadHandle, dry: bool) -> Optional[ComponentStatus]:
    """
    Shared behaviour of a component while the cluster is Updating.
    Returns None when evaluation should fall through to the normal path.
    """
    if not component.is_updatable():
        return None

    state = cluster.update_state
    if state == UpdateState.WAITING_FOR_PODS_REMOVAL:
        labeller = component.labeller
        removed = labeller.get_pods_removed_condition()
        if cluster.is_update_status_condition_true(removed):
            return ComponentStatus.simple(SyncStatus.UPDATING)
        if not dry:
            started = labeller.get_pods_removing_started_condition()
            if not cluster.is_update_status_condition_true(started):
                logger.info(f"{component.name}: removing pods for full update")
                workload.remove_pods()
                cluster.set_update_status_condition(Condition.make(
                    started, True, message=f"Pods removing of {component.name} started"))
            if workload.are_pods_removed():
                cluster.set_update_status_condition(Condition.make(
                    removed, True, message=f"Pods of {component.name} removed"))
        return ComponentStatus.waiting(SyncStatus.UPDATING, "pods removal")

    if state == UpdateState.WAITING_FOR_PODS_CREATION:
        return None

    return ComponentStatus.simple(SyncStatus.UPDATING)


class ServerComponent(Component):
    """
    Workload-backed component driven by the shared state machine.

    Args:
        workload: the server instance set, service and config artifact.
        init_job: optional bootstrap job run once pods are ready.
        dependency: component that must report Ready before this one proceeds.
        rack_setup/admin: optional topology synchronizer and the catalog client it writes to.
        exit_read_only_job: set on master roles that take part in the read-only-exit handshake.
        pinned: instance spec whose host_addresses pin the workload's pods.
    """

    updatable = True

    def __init__(self, labeller: Labeller, cluster: YtsaurusCluster, workload: WorkloadHandle,
                 init_job: Optional[InitJob] = None,
                 dependency: Optional[Component] = None,
                 rack_setup: Optional[RackSetup] = None,
                 admin: Optional[AdminClient] = None,
                 exit_read_only_job: Optional[InitJob] = None,
                 pinned: Optional[InstanceSpec] = None,
                 default_host_address_label: str = consts.DEFAULT_HOST_ADDRESS_LABEL):
        super().__init__(labeller, cluster)
        self.workload = workload
        self.init_job = init_job
        self.dependency = dependency
        self.rack_setup = rack_setup
        self.admin = admin
        self.exit_read_only_job = exit_read_only_job
        self.pinned = pinned
        self.default_host_address_label = default_host_address_label
        self.topology_failures: List[TopologyFailure] = []

        if init_job is not None and not self._overrides("create_init_script"):
            raise TypeError(f"{type(self).__name__} has an init job but no init script")
        if exit_read_only_job is not None and not self._overrides("create_exit_read_only_script"):
            raise TypeError(f"{type(self).__name__} has a read-only exit job but no exit script")

        if pinned is not None and pinned.host_addresses:
            self.workload.template_hook = self._pin_to_hosts

    def is_updatable(self) -> bool:
        return self.updatable

    def _overrides(self, hook: str) -> bool:
        return getattr(type(self), hook) is not getattr(ServerComponent, hook)

    # --- Hooks ---

    def create_init_script(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} has an init job but no init script")

    def create_exit_read_only_script(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not exit read-only mode")

    @property
    def participates_in_handshake(self) -> bool:
        return self.exit_read_only_job is not None

    def handshake_condition_types(self) -> Tuple[str, str]:
        """(prepared, exited) condition types of this participant."""
        return consts.CONDITION_MASTER_EXIT_READ_ONLY_PREPARED, consts.CONDITION_MASTER_EXITED_READ_ONLY

    def get_host_address_label(self) -> str:
        if self.pinned is not None and self.pinned.host_address_label:
            return self.pinned.host_address_label
        return self.default_host_address_label

    def _pin_to_hosts(self, stateful_set):
        add_host_affinity(stateful_set, self.get_host_address_label(), self.pinned.host_addresses)

    # --- Lifecycle ---

    def fetch(self):
        self.workload.fetch()
        for job in (self.init_job, self.exit_read_only_job):
            if job is not None:
                job.fetch()

    def evaluate(self, dry: bool) -> ComponentStatus:
        cluster = self.cluster

        if cluster.is_ready_to_update() and self.workload.need_update():
            return ComponentStatus.simple(SyncStatus.NEED_FULL_UPDATE)

        if cluster.cluster_state == ClusterState.UPDATING:
            if (self.participates_in_handshake
                    and cluster.update_state == UpdateState.WAITING_FOR_MASTER_EXIT_READ_ONLY):
                return self._exit_read_only(dry)
            status = handle_updating_cluster_state(cluster, self, self.workload, dry)
            if status is not None:
                return status

        if self.workload.need_sync():
            if not dry:
                logger.info(f"{self.name}: applying desired workload")
                self.workload.sync()
            return ComponentStatus.waiting(SyncStatus.PENDING, "components")

        if not self.workload.are_pods_ready():
            return ComponentStatus.waiting(SyncStatus.BLOCKED, "pods")

        if self.dependency is not None and not self.dependency.status().is_ready:
            return ComponentStatus.waiting(SyncStatus.BLOCKED, self.dependency.name)

        if not dry and self.rack_setup is not None:
            self._sync_topology()

        if self.init_job is not None:
            if not dry:
                self.init_job.set_init_script(self.create_init_script())
            return self.init_job.evaluate(dry)

        return ComponentStatus.simple(SyncStatus.READY)

    def desired_objects(self) -> List[dict]:
        """Everything this component would apply, bootstrap job included."""
        objects = self.workload.desired_objects()
        if self.init_job is not None:
            self.init_job.set_init_script(self.create_init_script())
            objects += [self.init_job.build_config_map(), self.init_job.build_job()]
        return objects

    def _sync_topology(self):
        if not self.cluster.spec.rack_awareness.enable:
            return
        if self.admin is None:
            logger.warning(f"{self.name}: rack awareness requested but no admin client configured")
            return
        self.topology_failures = self.rack_setup.set_racks(self.admin)

    # --- Read-only-exit handshake ---

    def handshake_phase(self) -> RestartPhase:
        """Derived from persisted conditions only."""
        prepared, exited = self.handshake_condition_types()
        if self.cluster.is_update_status_condition_true(exited):
            return RestartPhase.COMMITTED
        if self.cluster.is_update_status_condition_true(prepared):
            return RestartPhase.PREPARED
        return RestartPhase.NOT_PREPARED

    def _exit_read_only(self, dry: bool) -> ComponentStatus:
        prepared, exited = self.handshake_condition_types()
        job = self.exit_read_only_job
        phase = self.handshake_phase()

        if phase == RestartPhase.COMMITTED:
            return ComponentStatus.simple(SyncStatus.UPDATING)

        if phase == RestartPhase.NOT_PREPARED:
            if not job.is_restart_prepared():
                job.prepare_restart(dry)
            if not dry:
                self._set_condition(prepared, True, "Masters are ready to exit read-only state")
            return ComponentStatus.waiting(SyncStatus.UPDATING, "master read-only exit")

        if not dry:
            job.set_init_script(self.create_exit_read_only_script())
            job.commit_restart(dry)
            self._set_condition(exited, True, "Masters exited read-only state")
            self._set_condition(prepared, False, "Masters are ready to exit read-only state")
        return ComponentStatus.waiting(SyncStatus.UPDATING, "master read-only exit")

    def _set_condition(self, type_: str, value: bool, message: str):
        self.cluster.set_update_status_condition(Condition.make(type_, value, message=message))
