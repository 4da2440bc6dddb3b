#!/usr/bin/env python3
"""
YTOPERATOR UPDATE ORCHESTRATOR
------------------------------
Sequences every component of one cluster through bootstrap, steady state
and the cluster-wide full update. One call to step() is one pass; the
only memory between passes is the cluster resource status.

Full update sub-phases, in order:
  PossibilityCheck -> WaitingForSafeModeEnabled -> WaitingForPodsRemoval
  -> WaitingForPodsCreation -> WaitingForMasterExitReadOnly
  -> WaitingForSafeModeDisabled -> (Running)
A failed possibility check parks the cluster in ImpossibleToStart until the
disruptive change is reverted.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ytoperator.components.base import ServerComponent
from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.conditions import Condition
from ytoperator.core.errors import AdminClientError, OperatorError
from ytoperator.core.models import ClusterState, ComponentStatus, SyncStatus, UpdateState
from ytoperator.platform.admin import AdminClient

logger = logging.getLogger("ytoperator.orchestrator")


@dataclass
class StepResult:
    """What one pass observed and did, per component."""
    statuses: Dict[str, ComponentStatus] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    transitions: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class UpdateOrchestrator:
    def __init__(self, cluster: YtsaurusCluster, components: List[ServerComponent],
                 admin: Optional[AdminClient] = None):
        self.cluster = cluster
        self.components = components
        self.admin = admin
        self.result = StepResult()

    @property
    def updatable(self) -> List[ServerComponent]:
        return [c for c in self.components if c.is_updatable()]

    @property
    def handshake_participants(self) -> List[ServerComponent]:
        return [c for c in self.components if c.participates_in_handshake]

    def step(self) -> StepResult:
        self.result = StepResult()
        self._fetch()
        state = self.cluster.cluster_state

        if state in (ClusterState.CREATED, ClusterState.INITIALIZING):
            self._initialize()
        elif state == ClusterState.RUNNING:
            self._running()
        elif state == ClusterState.UPDATING:
            self._updating()
        elif state == ClusterState.UPDATE_FINISHING:
            self._finish_update()
        elif state == ClusterState.CANCEL_UPDATE:
            self._cancel_update()
        return self.result

    # --- Component passes ---

    def _fetch(self):
        """A component whose read fails sits out the rest of the pass."""
        for component in self.components:
            try:
                component.fetch()
            except OperatorError as e:
                logger.error(f"{component.name}: fetch failed: {e}")
                self.result.errors[component.name] = str(e)

    def _observe(self, component: ServerComponent) -> Optional[ComponentStatus]:
        if component.name in self.result.errors:
            return None
        try:
            status = component.status()
        except OperatorError as e:
            logger.error(f"{component.name}: status failed: {e}")
            self.result.errors[component.name] = str(e)
            return None
        self.result.statuses[component.name] = status
        return status

    def _sync(self, components: List[ServerComponent]):
        """Dry-run each component, then act on those that are not settled."""
        for component in components:
            status = self._observe(component)
            if status is None:
                continue
            if status.is_ready and not self._needs_periodic_sync(component):
                continue
            try:
                self.result.statuses[component.name] = component.sync()
            except OperatorError as e:
                logger.error(f"{component.name}: sync failed: {e}")
                self.result.errors[component.name] = str(e)

    def _needs_periodic_sync(self, component: ServerComponent) -> bool:
        return component.rack_setup is not None and self.cluster.spec.rack_awareness.enable

    def _all_ready(self, components: List[ServerComponent]) -> bool:
        return all(
            component.name in self.result.statuses and self.result.statuses[component.name].is_ready
            for component in components
        )

    def _transition(self, description: str):
        logger.info(f"Cluster {self.cluster.name}: {description}")
        self.result.transitions.append(description)

    # --- Cluster states ---

    def _initialize(self):
        if self.cluster.cluster_state == ClusterState.CREATED:
            self.cluster.set_cluster_state(ClusterState.INITIALIZING)
            self._transition("Created -> Initializing")
        self._sync(self.components)
        if self._all_ready(self.components):
            self.cluster.set_cluster_state(ClusterState.RUNNING)
            self._transition("Initializing -> Running")

    def _running(self):
        needing = []
        for component in self.components:
            status = self._observe(component)
            if status is not None and status.sync_status == SyncStatus.NEED_FULL_UPDATE:
                needing.append(component)

        if needing:
            names = ", ".join(c.name for c in needing)
            if self.cluster.spec.enable_full_update:
                self._set_full_update_blocked(False, "")
                self.cluster.set_cluster_state(ClusterState.UPDATING)
                self.cluster.set_update_state(UpdateState.POSSIBILITY_CHECK)
                self._transition(f"Running -> Updating (requested by {names})")
                return
            self._set_full_update_blocked(True, f"Full update is disabled; needed by {names}")
        else:
            self._set_full_update_blocked(False, "")

        self._sync([c for c in self.components if c not in needing])

    def _set_full_update_blocked(self, value: bool, message: str):
        current = self.cluster.conditions().get(consts.CONDITION_FULL_UPDATE_BLOCKED)
        if current is None and not value:
            return
        if current is not None and current.is_true == value and current.message == message:
            return
        self.cluster.set_status_condition(Condition.make(
            consts.CONDITION_FULL_UPDATE_BLOCKED, value, message=message))

    def _updating(self):
        state = self.cluster.update_state
        handler = {
            UpdateState.NONE: self._start_check,
            UpdateState.POSSIBILITY_CHECK: self._check_possibility,
            UpdateState.IMPOSSIBLE_TO_START: self._impossible_to_start,
            UpdateState.WAITING_FOR_SAFE_MODE_ENABLED: self._enable_safe_mode,
            UpdateState.WAITING_FOR_PODS_REMOVAL: self._wait_pods_removal,
            UpdateState.WAITING_FOR_PODS_CREATION: self._wait_pods_creation,
            UpdateState.WAITING_FOR_MASTER_EXIT_READ_ONLY: self._wait_master_exit_read_only,
            UpdateState.WAITING_FOR_SAFE_MODE_DISABLED: self._finish_update,
        }[state]
        handler()

    def _advance(self, state: UpdateState):
        previous = self.cluster.update_state
        self.cluster.set_update_state(state)
        self._transition(f"{previous.value} -> {state.value}")

    def _set_update_condition(self, type_: str, value: bool, message: str):
        self.cluster.set_update_status_condition(Condition.make(type_, value, message=message))

    def _start_check(self):
        self._advance(UpdateState.POSSIBILITY_CHECK)

    def _check_possibility(self):
        for component in self.components:
            self._observe(component)

        possible, reason = False, "No admin client configured"
        if self.admin is not None:
            try:
                possible = self.admin.exists(consts.SYS_PATH)
                reason = "" if possible else f"{consts.SYS_PATH} does not exist"
            except OperatorError as e:
                reason = str(e)

        if possible:
            self._advance(UpdateState.WAITING_FOR_SAFE_MODE_ENABLED)
            return
        logger.warning(f"Cluster {self.cluster.name}: full update impossible: {reason}")
        self._set_update_condition(consts.CONDITION_NO_POSSIBILITY, True, f"Update is impossible: {reason}")
        self._advance(UpdateState.IMPOSSIBLE_TO_START)

    def _impossible_to_start(self):
        if any(c.workload.need_update() for c in self.updatable):
            for component in self.components:
                self._observe(component)
            return
        self._cancel_update()

    def _cancel_update(self):
        self.cluster.clear_update_status()
        self.cluster.set_cluster_state(ClusterState.RUNNING)
        self._transition("Update canceled -> Running")

    def _require_admin(self) -> AdminClient:
        if self.admin is None:
            raise AdminClientError("Safe mode switch needs an admin client")
        return self.admin

    def _enable_safe_mode(self):
        self._require_admin().set(consts.SAFE_MODE_PATH, True)
        self._set_update_condition(consts.CONDITION_SAFE_MODE_ENABLED, True, "Safe mode enabled")
        self._advance(UpdateState.WAITING_FOR_PODS_REMOVAL)

    def _wait_pods_removal(self):
        self._sync(self.updatable)
        removed = all(
            self.cluster.is_update_status_condition_true(c.labeller.get_pods_removed_condition())
            for c in self.updatable
        )
        if removed:
            self._advance(UpdateState.WAITING_FOR_PODS_CREATION)

    def _wait_pods_creation(self):
        self._sync(self.components)
        if self._all_ready(self.updatable):
            self._advance(UpdateState.WAITING_FOR_MASTER_EXIT_READ_ONLY)

    def _wait_master_exit_read_only(self):
        participants = self.handshake_participants
        self._sync(participants)
        exited = all(
            self.cluster.is_update_status_condition_true(c.handshake_condition_types()[1])
            for c in participants
        )
        if exited:
            self._advance(UpdateState.WAITING_FOR_SAFE_MODE_DISABLED)

    def _finish_update(self):
        self._require_admin().set(consts.SAFE_MODE_PATH, False)
        self.cluster.clear_update_status()
        self.cluster.set_cluster_state(ClusterState.RUNNING)
        self._transition("Update finished -> Running")
