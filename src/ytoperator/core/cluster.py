#!/usr/bin/env python3
"""
YTOPERATOR CLUSTER PROXY
------------------------
Wraps the parent cluster resource: its declared spec, its coarse phase
(ClusterState / UpdateState), and the two persisted condition lists.

Every status write is a read-modify-write of the whole status: the latest
resource is fetched, the change is applied, and the full status goes back.
Each condition type has exactly one logical writer at a time, so the
last-writer-wins outcome of concurrent unrelated writes is acceptable.

Author: YTOperator Team
Date: 2026-10-17
"""

import copy
import logging
from typing import Any, Callable, Dict, Optional

from ytoperator.core import consts
from ytoperator.core.conditions import Condition, ConditionSet
from ytoperator.core.errors import PlatformError
from ytoperator.core.models import (
    ClusterSpec, ClusterState, UpdateState, is_ready_to_update_cluster_state,
)
from ytoperator.platform.client import PlatformClient

logger = logging.getLogger("ytoperator.cluster")


def _parse_state(enum_type, raw: Optional[str], default):
    if not raw:
        return default
    try:
        return enum_type(raw)
    except ValueError as e:
        raise PlatformError(f"Unknown persisted {enum_type.__name__} '{raw}'") from e


class YtsaurusCluster:
    """
    Per-pass handle on one cluster resource.

    `platform` may be None for offline use (rendering manifests); any
    status write then raises PlatformError.
    """

    def __init__(self, resource: Dict[str, Any], platform: Optional[PlatformClient] = None):
        self.resource = resource
        self.platform = platform
        self.spec = ClusterSpec.from_dict(resource.get("spec") or {})

    @property
    def name(self) -> str:
        return self.resource["metadata"]["name"]

    @property
    def namespace(self) -> str:
        meta = self.resource["metadata"]
        if meta.get("namespace"):
            return meta["namespace"]
        return self.platform.namespace if self.platform else "default"

    def fetch(self):
        """Re-reads the resource; called at the start of every pass."""
        fresh = self._read()
        self.resource = fresh
        self.spec = ClusterSpec.from_dict(fresh.get("spec") or {})

    def _read(self) -> Dict[str, Any]:
        if self.platform is None:
            raise PlatformError("No platform client attached")
        fresh = self.platform.fetch(consts.CLUSTER_KIND, self.name)
        if fresh is None:
            raise PlatformError(f"Cluster resource {self.name} is gone", status=404)
        return fresh

    # --- Phase accessors ---

    @property
    def status(self) -> Dict[str, Any]:
        return self.resource.get("status") or {}

    @property
    def cluster_state(self) -> ClusterState:
        raw = self.status.get("state")
        return _parse_state(ClusterState, raw, ClusterState.CREATED)

    @property
    def update_state(self) -> UpdateState:
        raw = (self.status.get("updateStatus") or {}).get("state")
        return _parse_state(UpdateState, raw, UpdateState.NONE)

    def is_ready_to_update(self) -> bool:
        return is_ready_to_update_cluster_state(self.cluster_state)

    def update_conditions(self) -> ConditionSet:
        return ConditionSet.from_list((self.status.get("updateStatus") or {}).get("conditions"))

    def conditions(self) -> ConditionSet:
        return ConditionSet.from_list(self.status.get("conditions"))

    def is_update_status_condition_true(self, type_: str) -> bool:
        return self.update_conditions().is_true(type_)

    def is_status_condition_true(self, type_: str) -> bool:
        return self.conditions().is_true(type_)

    # --- Status writes (read-modify-write) ---

    def _write_status(self, mutate: Callable[[Dict[str, Any]], None]):
        fresh = self._read()
        status = copy.deepcopy(fresh.get("status") or {})
        mutate(status)
        self.platform.update_status(consts.CLUSTER_KIND, self.name, status)
        self.resource = fresh
        self.resource["status"] = status

    def set_cluster_state(self, state: ClusterState):
        logger.info(f"Cluster {self.name}: state {self.cluster_state.value} -> {state.value}")

        def mutate(status):
            status["state"] = state.value
        self._write_status(mutate)

    def set_update_state(self, state: UpdateState):
        logger.info(f"Cluster {self.name}: update state {self.update_state.value} -> {state.value}")

        def mutate(status):
            status.setdefault("updateStatus", {})["state"] = state.value
        self._write_status(mutate)

    def set_update_status_condition(self, cond: Condition):
        def mutate(status):
            update_status = status.setdefault("updateStatus", {})
            conditions = ConditionSet.from_list(update_status.get("conditions"))
            conditions.upsert(cond)
            update_status["conditions"] = conditions.to_list()
        self._write_status(mutate)

    def set_status_condition(self, cond: Condition):
        def mutate(status):
            conditions = ConditionSet.from_list(status.get("conditions"))
            conditions.upsert(cond)
            status["conditions"] = conditions.to_list()
        self._write_status(mutate)

    def clear_update_status(self):
        """Ends an update cycle: drops update conditions and sub-phase."""
        def mutate(status):
            status["updateStatus"] = {"state": UpdateState.NONE.value, "conditions": []}
        self._write_status(mutate)
