#!/usr/bin/env python3
"""
YTOPERATOR WORKLOAD HANDLE
--------------------------
One managed server workload: a StatefulSet, the headless Service that
gives its pods stable network identity, the monitoring Service scraped for
metrics, an optional balancer Service in front of the pods, and the
ConfigMap holding the generated config artifact.

The handle is rebuilt every pass. fetch() captures the observed objects,
the build_* methods produce the desired ones (memoised for the pass), and
the predicates compare the two. Nothing is written except from sync() and
remove_pods().

Author: YTOperator Team
Date: 2026-10-17
"""

import copy
import hashlib
import logging
from typing import Any, Callable, Dict, List, Optional

from ytoperator.core import consts
from ytoperator.core.models import InstanceSpec
from ytoperator.platform.client import PlatformClient
from ytoperator.resources.labeller import Labeller, join_maps

logger = logging.getLogger("ytoperator.workload")

CONTAINER_NAME = "ytserver"
CONFIG_VOLUME_NAME = "config"

TemplateHook = Callable[[Dict[str, Any]], None]


def config_checksum(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _managed_template(stateful_set: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    The slice of a pod template the operator owns. Server-side defaults
    the platform adds elsewhere must not count as drift.
    """
    template = ((stateful_set or {}).get("spec") or {}).get("template") or {}
    pod_spec = template.get("spec") or {}
    annotations = (template.get("metadata") or {}).get("annotations") or {}
    containers = pod_spec.get("containers") or []
    return {
        "containers": [
            {"name": c.get("name"), "image": c.get("image"), "command": c.get("command") or []}
            for c in containers
        ],
        "affinity": pod_spec.get("affinity") or {},
        "nodeSelector": pod_spec.get("nodeSelector") or {},
        "tolerations": pod_spec.get("tolerations") or [],
        "configHash": annotations.get(consts.CONFIG_HASH_ANNOTATION),
    }


class WorkloadHandle:
    """
    Desired vs. observed state of one role's server workload.
    """

    def __init__(self, labeller: Labeller, platform: Optional[PlatformClient], spec: InstanceSpec,
                 image: str, binary_path: str, config_file_name: str,
                 stateful_set_name: str, service_name: str, rpc_port: int,
                 generate_config: Callable[[], bytes],
                 template_hook: Optional[TemplateHook] = None,
                 balancer_service_name: Optional[str] = None):
        self.labeller = labeller
        self.platform = platform
        self.spec = spec
        self.image = spec.image or image
        self.binary_path = binary_path
        self.config_file_name = config_file_name
        self.stateful_set_name = stateful_set_name
        self.service_name = service_name
        self.rpc_port = rpc_port
        self.generate_config = generate_config
        self.template_hook = template_hook
        self.balancer_service_name = balancer_service_name

        self.observed_stateful_set: Optional[Dict[str, Any]] = None
        self.observed_services: Dict[str, Optional[Dict[str, Any]]] = {}
        self.observed_config_map: Optional[Dict[str, Any]] = None

        self._config: Optional[bytes] = None
        self._stateful_set: Optional[Dict[str, Any]] = None

    @property
    def replicas(self) -> int:
        return self.spec.instance_count

    def fetch(self):
        self.observed_stateful_set = self.platform.fetch("StatefulSet", self.stateful_set_name)
        self.observed_services = {name: self.platform.fetch("Service", name) for name in self.service_names()}
        self.observed_config_map = self.platform.fetch("ConfigMap", self.labeller.get_main_config_map_name())

    # --- Desired objects ---

    def config(self) -> bytes:
        if self._config is None:
            self._config = self.generate_config()
        return self._config

    def build_config_map(self) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": self.labeller.get_object_meta(self.labeller.get_main_config_map_name()),
            "data": {self.config_file_name: self.config().decode("utf-8")},
        }

    def build_service(self) -> Dict[str, Any]:
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": self.labeller.get_object_meta(self.service_name),
            "spec": {
                "clusterIP": "None",
                "selector": self.labeller.get_selector_label_map(),
                "ports": [{"name": "rpc", "port": self.rpc_port, "targetPort": self.rpc_port}],
            },
        }

    def build_monitoring_service(self) -> Dict[str, Any]:
        meta = self.labeller.get_object_meta(self.labeller.get_monitoring_service_name())
        meta["labels"] = self.labeller.get_monitoring_meta_label_map()
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": meta,
            "spec": {
                "selector": self.labeller.get_selector_label_map(),
                "ports": [{
                    "name": consts.YT_MONITORING_PORT_NAME,
                    "port": consts.YT_MONITORING_PORT,
                    "targetPort": self.labeller.monitoring_port,
                }],
            },
        }

    def build_balancer_service(self) -> Optional[Dict[str, Any]]:
        """Cluster-IP service spreading HTTP traffic over the pods."""
        if self.balancer_service_name is None:
            return None
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": self.labeller.get_object_meta(self.balancer_service_name),
            "spec": {
                "selector": self.labeller.get_selector_label_map(),
                "ports": [{
                    "name": "http",
                    "port": consts.HTTP_PROXY_HTTP_PORT,
                    "targetPort": consts.HTTP_PROXY_HTTP_PORT,
                }],
            },
        }

    def build_services(self) -> List[Dict[str, Any]]:
        services = [self.build_service(), self.build_monitoring_service()]
        balancer = self.build_balancer_service()
        if balancer is not None:
            services.append(balancer)
        return services

    def service_names(self) -> List[str]:
        names = [self.service_name, self.labeller.get_monitoring_service_name()]
        if self.balancer_service_name is not None:
            names.append(self.balancer_service_name)
        return names

    def build_stateful_set(self) -> Dict[str, Any]:
        if self._stateful_set is not None:
            return self._stateful_set

        ports = [
            {"name": "rpc", "containerPort": self.rpc_port},
            {"name": "monitoring", "containerPort": self.labeller.monitoring_port},
        ]
        if self.balancer_service_name is not None:
            ports.append({"name": "http", "containerPort": consts.HTTP_PROXY_HTTP_PORT})

        pod_spec: Dict[str, Any] = {
            "containers": [{
                "name": CONTAINER_NAME,
                "image": self.image,
                "command": [self.binary_path, "--config", f"{consts.CONFIG_MOUNT_PATH}/{self.config_file_name}"],
                "ports": ports,
                "volumeMounts": [{"name": CONFIG_VOLUME_NAME, "mountPath": consts.CONFIG_MOUNT_PATH}],
            }],
            "volumes": [{
                "name": CONFIG_VOLUME_NAME,
                "configMap": {"name": self.labeller.get_main_config_map_name()},
            }],
        }
        if self.spec.affinity:
            pod_spec["affinity"] = copy.deepcopy(self.spec.affinity)
        if self.spec.node_selector:
            pod_spec["nodeSelector"] = dict(self.spec.node_selector)
        if self.spec.tolerations:
            pod_spec["tolerations"] = copy.deepcopy(self.spec.tolerations)

        annotations = join_maps(self.labeller.annotations, self.spec.extra_pod_annotations)
        annotations[consts.CONFIG_HASH_ANNOTATION] = config_checksum(self.config())

        self._stateful_set = {
            "apiVersion": "apps/v1",
            "kind": "StatefulSet",
            "metadata": self.labeller.get_object_meta(self.stateful_set_name),
            "spec": {
                "replicas": self.replicas,
                "serviceName": self.service_name,
                "podManagementPolicy": "Parallel",
                "selector": {"matchLabels": self.labeller.get_selector_label_map()},
                "template": {
                    "metadata": {
                        "labels": join_maps(self.labeller.get_meta_label_map(), self.spec.extra_pod_labels),
                        "annotations": annotations,
                    },
                    "spec": pod_spec,
                },
            },
        }
        if self.template_hook is not None:
            self.template_hook(self._stateful_set)
        return self._stateful_set

    # --- Predicates ---

    def _config_map_differs(self) -> bool:
        observed = (self.observed_config_map or {}).get("data") or {}
        return observed.get(self.config_file_name) != self.config().decode("utf-8")

    def _template_differs(self) -> bool:
        return _managed_template(self.observed_stateful_set) != _managed_template(self.build_stateful_set())

    def need_update(self) -> bool:
        """A disruptive change: the running pods' template must be replaced."""
        if self.observed_stateful_set is None:
            return False
        return self._template_differs()

    def need_sync(self) -> bool:
        sts = self.observed_stateful_set
        if sts is None or self.observed_config_map is None:
            return True
        if any(self.observed_services.get(name) is None for name in self.service_names()):
            return True
        if self._config_map_differs():
            return True
        if self.labeller.need_sync(sts.get("metadata") or {}):
            return True
        if (sts.get("spec") or {}).get("replicas") != self.replicas:
            return True
        return self._template_differs()

    def are_pods_ready(self) -> bool:
        sts = self.observed_stateful_set
        if sts is None:
            return False
        status = sts.get("status") or {}
        desired = self.replicas
        if desired <= 0:
            logger.info(f"{self.stateful_set_name}: no instances requested")
            return False
        ready = status.get("readyReplicas") or 0
        updated = status.get("updatedReplicas") or 0
        if ready != desired or updated != desired:
            logger.info(f"{self.stateful_set_name}: {ready}/{desired} pods ready, {updated} up to date")
            return False
        generation = (sts.get("metadata") or {}).get("generation") or 0
        return (status.get("observedGeneration") or 0) >= generation

    def are_pods_removed(self) -> bool:
        sts = self.observed_stateful_set
        if sts is None:
            return True
        status = sts.get("status") or {}
        return not (status.get("replicas") or 0) and not (status.get("readyReplicas") or 0)

    # --- Effects ---

    def sync(self):
        self.platform.apply(self.build_config_map())
        for service in self.build_services():
            self.platform.apply(service)
        self.platform.apply(self.build_stateful_set())

    def remove_pods(self):
        """Scales the workload to zero while keeping the desired template."""
        stateful_set = copy.deepcopy(self.build_stateful_set())
        stateful_set["spec"]["replicas"] = 0
        self.platform.apply(stateful_set)

    def desired_objects(self) -> List[Dict[str, Any]]:
        return [self.build_config_map(), *self.build_services(), self.build_stateful_set()]
