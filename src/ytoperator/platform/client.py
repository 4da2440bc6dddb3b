#!/usr/bin/env python3
"""
YTOPERATOR PLATFORM CLIENT
--------------------------
The orchestration-platform boundary. Components only ever see the abstract
PlatformClient: fetch / apply / list, plus delete and status writes for the
bootstrap job and the cluster resource.

Objects cross this boundary as plain dicts in Kubernetes wire shape
(camelCase keys), which keeps the comparison logic in the workload handle
independent of any client library's model classes.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes import dynamic
from kubernetes.client.rest import ApiException

from ytoperator.core import consts
from ytoperator.core.errors import PlatformError

logger = logging.getLogger("ytoperator.platform")

KIND_API_VERSIONS = {
    "StatefulSet": "apps/v1",
    "Deployment": "apps/v1",
    "Service": "v1",
    "ConfigMap": "v1",
    "Pod": "v1",
    "Job": "batch/v1",
    consts.CLUSTER_KIND: consts.CLUSTER_API_VERSION,
}


def format_selector(selector: Dict[str, str]) -> str:
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))


class PlatformClient(ABC):
    """
    Namespaced access to platform objects.

    Every call is bounded by `timeout` seconds. Reads that fail raise
    PlatformError; a missing object is not a failure and fetch() returns None.
    """

    def __init__(self, namespace: str, timeout: float = 10.0):
        self.namespace = namespace
        self.timeout = timeout

    @abstractmethod
    def fetch(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        """Returns the live object or None if it does not exist."""

    @abstractmethod
    def apply(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Create-or-patch towards the desired object."""

    @abstractmethod
    def list(self, kind: str, selector: Dict[str, str]) -> List[Dict[str, Any]]:
        """Objects of `kind` matching every label in `selector`."""

    @abstractmethod
    def delete(self, kind: str, name: str) -> bool:
        """Returns False if the object was already gone."""

    @abstractmethod
    def update_status(self, kind: str, name: str, status: Dict[str, Any]) -> Dict[str, Any]:
        """Replaces the status subresource of `name`."""


class KubernetesPlatformClient(PlatformClient):
    """
    PlatformClient backed by the official `kubernetes` package.

    Uses the dynamic client so any kind in KIND_API_VERSIONS is handled the
    same way, and server-side apply so writes are idempotent "ensure" calls.
    """

    def __init__(self, namespace: str, timeout: float = 10.0,
                 api_client: Optional[k8s_client.ApiClient] = None,
                 field_manager: str = "ytoperator"):
        super().__init__(namespace, timeout)
        self.api_client = api_client or self._load_api_client()
        self.dyn = dynamic.DynamicClient(self.api_client)
        self.field_manager = field_manager

    @staticmethod
    def _load_api_client() -> k8s_client.ApiClient:
        try:
            k8s_config.load_incluster_config()
        except k8s_config.ConfigException:
            try:
                k8s_config.load_kube_config()
            except (k8s_config.ConfigException, OSError) as e:
                raise PlatformError(f"No usable cluster credentials: {e}") from e
        return k8s_client.ApiClient()

    def _resource(self, kind: str):
        try:
            api_version = KIND_API_VERSIONS[kind]
        except KeyError:
            raise PlatformError(f"Unsupported kind '{kind}'")
        return self.dyn.resources.get(api_version=api_version, kind=kind)

    def fetch(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            obj = self.dyn.get(self._resource(kind), name=name, namespace=self.namespace,
                               _request_timeout=self.timeout)
        except ApiException as e:
            if e.status == 404:
                return None
            raise PlatformError(f"Fetch {kind}/{name} failed: {e.reason}", status=e.status) from e
        return obj.to_dict()

    def apply(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        kind = obj["kind"]
        name = obj["metadata"]["name"]
        logger.info(f"Applying {kind}/{name} in {self.namespace}")
        try:
            applied = self.dyn.server_side_apply(
                self._resource(kind),
                body=obj,
                name=name,
                namespace=self.namespace,
                field_manager=self.field_manager,
                force_conflicts=True,
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            raise PlatformError(f"Apply {kind}/{name} failed: {e.reason}", status=e.status) from e
        return applied.to_dict()

    def list(self, kind: str, selector: Dict[str, str]) -> List[Dict[str, Any]]:
        try:
            result = self.dyn.get(self._resource(kind), namespace=self.namespace,
                                  label_selector=format_selector(selector),
                                  _request_timeout=self.timeout)
        except ApiException as e:
            raise PlatformError(f"List {kind} failed: {e.reason}", status=e.status) from e
        return result.to_dict().get("items", [])

    def delete(self, kind: str, name: str) -> bool:
        logger.info(f"Deleting {kind}/{name} in {self.namespace}")
        try:
            self.dyn.delete(self._resource(kind), name=name, namespace=self.namespace,
                            body={"propagationPolicy": "Background"},
                            _request_timeout=self.timeout)
        except ApiException as e:
            if e.status == 404:
                return False
            raise PlatformError(f"Delete {kind}/{name} failed: {e.reason}", status=e.status) from e
        return True

    def update_status(self, kind: str, name: str, status: Dict[str, Any]) -> Dict[str, Any]:
        group, version = KIND_API_VERSIONS[kind].split("/")
        plural = self._resource(kind).name
        try:
            result = k8s_client.CustomObjectsApi(self.api_client).patch_namespaced_custom_object_status(
                group=group,
                version=version,
                namespace=self.namespace,
                plural=plural,
                name=name,
                body={"status": status},
                _request_timeout=self.timeout,
            )
        except ApiException as e:
            raise PlatformError(f"Status update {kind}/{name} failed: {e.reason}", status=e.status) from e
        return result
