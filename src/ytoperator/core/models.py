#!/usr/bin/env python3
"""
YTOPERATOR CORE MODELS
----------------------
Defines the fundamental data structures used across the operator: the
reason-coded component status, the persisted cluster phases, and the typed
view of the declared cluster spec.

Author: YTOperator Team
Date: 2026-10-17
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ytoperator.core import consts


class SyncStatus(str, enum.Enum):
    """
    Outcome of one component evaluation.

    The values are reason codes, not a ranking: a Blocked component is not
    "worse" than a Pending one, it is waiting on something else.
    """
    READY = "Ready"
    PENDING = "Pending"
    BLOCKED = "Blocked"
    UPDATING = "Updating"
    NEED_FULL_UPDATE = "NeedFullUpdate"


class ClusterState(str, enum.Enum):
    CREATED = "Created"
    INITIALIZING = "Initializing"
    RUNNING = "Running"
    UPDATING = "Updating"
    UPDATE_FINISHING = "UpdateFinishing"
    CANCEL_UPDATE = "CancelUpdate"


class UpdateState(str, enum.Enum):
    NONE = "None"
    POSSIBILITY_CHECK = "PossibilityCheck"
    IMPOSSIBLE_TO_START = "ImpossibleToStart"
    WAITING_FOR_SAFE_MODE_ENABLED = "WaitingForSafeModeEnabled"
    WAITING_FOR_PODS_REMOVAL = "WaitingForPodsRemoval"
    WAITING_FOR_PODS_CREATION = "WaitingForPodsCreation"
    WAITING_FOR_MASTER_EXIT_READ_ONLY = "WaitingForMasterExitReadOnly"
    WAITING_FOR_SAFE_MODE_DISABLED = "WaitingForSafeModeDisabled"


def is_ready_to_update_cluster_state(state: ClusterState) -> bool:
    """Starting a full update is only permitted from steady state."""
    return state == ClusterState.RUNNING


@dataclass(frozen=True)
class ComponentStatus:
    """
    Recomputed on every pass and never persisted.
    """
    sync_status: SyncStatus
    reason: str = ""            # What the component waits on (component name, "pods", ...)
    message: str = ""

    @classmethod
    def simple(cls, status: SyncStatus) -> "ComponentStatus":
        return cls(sync_status=status)

    @classmethod
    def waiting(cls, status: SyncStatus, reason: str) -> "ComponentStatus":
        return cls(sync_status=status, reason=reason, message=f"Wait for {reason}")

    @property
    def is_ready(self) -> bool:
        return self.sync_status == SyncStatus.READY


@dataclass
class InstanceSpec:
    """Placement and sizing shared by every role."""
    instance_count: int = 1
    image: Optional[str] = None
    host_addresses: List[str] = field(default_factory=list)
    host_address_label: Optional[str] = None
    affinity: Optional[Dict[str, Any]] = None
    node_selector: Dict[str, str] = field(default_factory=dict)
    tolerations: List[Dict[str, Any]] = field(default_factory=list)
    extra_pod_labels: Dict[str, str] = field(default_factory=dict)
    extra_pod_annotations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "InstanceSpec":
        data = data or {}
        return cls(**cls._fields_from(data))

    @staticmethod
    def _fields_from(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "instance_count": int(data.get("instanceCount", 1)),
            "image": data.get("image"),
            "host_addresses": list(data.get("hostAddresses") or []),
            "host_address_label": data.get("hostAddressLabel"),
            "affinity": data.get("affinity"),
            "node_selector": dict(data.get("nodeSelector") or {}),
            "tolerations": list(data.get("tolerations") or []),
            "extra_pod_labels": dict(data.get("extraPodLabels") or {}),
            "extra_pod_annotations": dict(data.get("extraPodAnnotations") or {}),
        }


@dataclass
class MastersSpec(InstanceSpec):
    cell_tag: int = 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MastersSpec":
        data = data or {}
        return cls(cell_tag=int(data.get("cellTag", 0)), **cls._fields_from(data))


@dataclass
class LocationSpec:
    location_type: str = "ChunkStore"
    path: str = "/yt/node-data/chunk-store"
    medium: str = consts.DEFAULT_MEDIUM


@dataclass
class NodesSpec(InstanceSpec):
    """Data nodes, exec nodes and HTTP proxies are grouped by name."""
    name: str = consts.DEFAULT_GROUP_NAME
    locations: List[LocationSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NodesSpec":
        data = data or {}
        locations = [
            LocationSpec(
                location_type=loc.get("locationType", "ChunkStore"),
                path=loc.get("path", "/yt/node-data/chunk-store"),
                medium=loc.get("medium", consts.DEFAULT_MEDIUM),
            )
            for loc in data.get("locations") or []
        ]
        return cls(
            name=data.get("name") or consts.DEFAULT_GROUP_NAME,
            locations=locations,
            **cls._fields_from(data),
        )


@dataclass
class RackAwarenessSpec:
    enable: bool = False
    rack_label: str = "topology.kubernetes.io/rack"
    dc_label: str = "topology.kubernetes.io/zone"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RackAwarenessSpec":
        data = data or {}
        defaults = cls()
        return cls(
            enable=bool(data.get("enable", False)),
            rack_label=data.get("rackLabel") or defaults.rack_label,
            dc_label=data.get("dcLabel") or defaults.dc_label,
        )


@dataclass
class ClusterSpec:
    """
    Typed view of the cluster resource `spec`.

    Rebuilt from the resource on every pass; nothing here is cached
    between passes.
    """
    core_image: str
    primary_masters: MastersSpec
    enable_full_update: bool = True
    secondary_masters: List[MastersSpec] = field(default_factory=list)
    master_caches: Optional[InstanceSpec] = None
    data_nodes: List[NodesSpec] = field(default_factory=list)
    exec_nodes: List[NodesSpec] = field(default_factory=list)
    http_proxies: List[NodesSpec] = field(default_factory=list)
    rack_awareness: RackAwarenessSpec = field(default_factory=RackAwarenessSpec)
    extra_pod_labels: Dict[str, str] = field(default_factory=dict)
    extra_pod_annotations: Dict[str, str] = field(default_factory=dict)
    use_ipv6: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClusterSpec":
        master_caches = data.get("masterCaches")
        return cls(
            core_image=data.get("coreImage", ""),
            primary_masters=MastersSpec.from_dict(data.get("primaryMasters")),
            enable_full_update=bool(data.get("enableFullUpdate", True)),
            secondary_masters=[MastersSpec.from_dict(s) for s in data.get("secondaryMasters") or []],
            master_caches=InstanceSpec.from_dict(master_caches) if master_caches is not None else None,
            data_nodes=[NodesSpec.from_dict(s) for s in data.get("dataNodes") or []],
            exec_nodes=[NodesSpec.from_dict(s) for s in data.get("execNodes") or []],
            http_proxies=[NodesSpec.from_dict(s) for s in data.get("httpProxies") or []],
            rack_awareness=RackAwarenessSpec.from_dict(data.get("rackAwareness")),
            extra_pod_labels=dict(data.get("extraPodLabels") or {}),
            extra_pod_annotations=dict(data.get("extraPodAnnotations") or {}),
            use_ipv6=bool(data.get("useIpv6", False)),
        )


@dataclass(frozen=True)
class TopologyFact:
    """One running instance as seen by the topology synchronizer."""
    host: Optional[str]     # Physical host the pod is bound to
    address: str            # host:port of the instance inside the cluster
    rack: str
    datacenter: Optional[str] = None
