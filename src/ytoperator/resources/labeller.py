#!/usr/bin/env python3
"""
YTOPERATOR LABELLER
-------------------
Names, labels and selectors for everything one component owns.

Author: YTOperator Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from ytoperator.core import consts


def join_maps(*maps: Dict[str, str]) -> Dict[str, str]:
    """Later maps win on key collisions."""
    result: Dict[str, str] = {}
    for mp in maps:
        result.update(mp or {})
    return result


@dataclass
class Labeller:
    cluster_name: str
    namespace: str
    component_label: str        # e.g. 'yt-data-node-ssd'
    component_name: str         # e.g. 'DataNodeSsd', used in condition types
    monitoring_port: int
    annotations: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)

    def get_main_config_map_name(self) -> str:
        return f"{self.component_label}-config"

    def get_monitoring_service_name(self) -> str:
        return f"{self.component_label}-monitoring"

    def get_init_job_name(self, name: str) -> str:
        return f"{self.component_label}-init-job-{name.lower()}"

    def get_yt_label_value(self, is_init_job: bool = False) -> str:
        result = f"{self.cluster_name}-{self.component_label}"
        if is_init_job:
            result = f"{result}-init-job"
        return result

    def get_selector_label_map(self) -> Dict[str, str]:
        return {consts.YT_COMPONENT_LABEL_NAME: self.get_yt_label_value()}

    def get_meta_label_map(self, is_init_job: bool = False) -> Dict[str, str]:
        labels = {
            "app.kubernetes.io/name": "Ytsaurus",
            "app.kubernetes.io/instance": self.cluster_name,
            "app.kubernetes.io/component": self.component_label,
            "app.kubernetes.io/managed-by": "ytoperator",
            consts.YT_COMPONENT_LABEL_NAME: self.get_yt_label_value(is_init_job),
        }
        labels.update(self.labels)
        return labels

    def get_monitoring_meta_label_map(self) -> Dict[str, str]:
        labels = self.get_meta_label_map()
        labels[consts.YT_METRICS_LABEL_NAME] = "true"
        return labels

    def get_object_meta(self, name: str, is_init_job: bool = False) -> Dict[str, Any]:
        meta: Dict[str, Any] = {
            "name": name,
            "namespace": self.namespace,
            "labels": self.get_meta_label_map(is_init_job),
        }
        if self.annotations:
            meta["annotations"] = dict(self.annotations)
        return meta

    def need_sync(self, other_meta: Dict[str, Any]) -> bool:
        """True if any managed label is missing or different on `other_meta`."""
        other_labels = (other_meta or {}).get("labels") or {}
        return any(other_labels.get(k) != v for k, v in self.get_meta_label_map().items())

    def get_pods_removing_started_condition(self) -> str:
        return f"{self.component_name}PodsRemovingStarted"

    def get_pods_removed_condition(self) -> str:
        return f"{self.component_name}PodsRemoved"
