#!/usr/bin/env python3
"""
YTOPERATOR TEST FIXTURES
------------------------
In-memory stand-ins for the orchestration platform and the cluster's
catalog. Both record every write so tests can assert dry-run purity and
idempotence by counting.

Author: YTOperator Team
Date: 2026-10-17
"""

import copy
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from ytoperator.config.generator import ConfigGenerator
from ytoperator.config.settings import OperatorSettings
from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.errors import AdminClientError, AlreadyExistsError, PlatformError
from ytoperator.platform.admin import AdminClient
from ytoperator.platform.client import PlatformClient

NAMESPACE = "yt"
CLUSTER_NAME = "test-cluster"


class FakePlatform(PlatformClient):
    def __init__(self, namespace: str = NAMESPACE):
        super().__init__(namespace)
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.writes: List[Tuple[str, str, str]] = []
        self.failing_fetch: Set[str] = set()

    # --- PlatformClient ---

    def fetch(self, kind, name):
        if kind in self.failing_fetch:
            raise PlatformError(f"Fetch {kind}/{name} timed out", status=504)
        obj = self.objects.get((kind, name))
        return copy.deepcopy(obj) if obj is not None else None

    def apply(self, obj):
        kind, name = obj["kind"], obj["metadata"]["name"]
        self.writes.append(("apply", kind, name))
        stored = copy.deepcopy(obj)
        existing = self.objects.get((kind, name))
        generation = 1
        if existing is not None:
            generation = existing["metadata"].get("generation", 1)
            if existing.get("spec") != stored.get("spec"):
                generation += 1
            if "status" in existing:
                stored["status"] = existing["status"]
        stored["metadata"]["generation"] = generation
        self.objects[(kind, name)] = stored
        return copy.deepcopy(stored)

    def list(self, kind, selector):
        result = []
        for (obj_kind, _), obj in sorted(self.objects.items()):
            if obj_kind != kind:
                continue
            labels = obj.get("metadata", {}).get("labels") or {}
            if all(labels.get(k) == v for k, v in selector.items()):
                result.append(copy.deepcopy(obj))
        return result

    def delete(self, kind, name):
        self.writes.append(("delete", kind, name))
        return self.objects.pop((kind, name), None) is not None

    def update_status(self, kind, name, status):
        self.writes.append(("status", kind, name))
        self.objects[(kind, name)]["status"] = copy.deepcopy(status)
        return copy.deepcopy(self.objects[(kind, name)])

    # --- Test helpers ---

    @property
    def write_count(self) -> int:
        return len(self.writes)

    def get(self, kind: str, name: str) -> Optional[Dict[str, Any]]:
        return self.objects.get((kind, name))

    def names(self, kind: str) -> List[str]:
        return sorted(name for obj_kind, name in self.objects if obj_kind == kind)

    def mark_stateful_set_ready(self, name: str):
        sts = self.objects[("StatefulSet", name)]
        replicas = sts["spec"]["replicas"]
        sts["status"] = {
            "replicas": replicas,
            "readyReplicas": replicas,
            "updatedReplicas": replicas,
            "observedGeneration": sts["metadata"]["generation"],
        }

    def mark_job_succeeded(self, name: str):
        self.objects[("Job", name)]["status"] = {"succeeded": 1}

    def settle(self):
        """Everything the platform was asked to run is now up and done."""
        for kind, name in list(self.objects):
            if kind == "StatefulSet":
                self.mark_stateful_set_ready(name)
            elif kind == "Job":
                self.mark_job_succeeded(name)

    def add_pod(self, name: str, labels: Dict[str, str], node: Optional[str], hostname: str,
                phase: str = "Running"):
        self.objects[("Pod", name)] = {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {"name": name, "namespace": self.namespace, "labels": dict(labels)},
            "spec": {"nodeName": node, "hostname": hostname},
            "status": {"phase": phase},
        }

    def put_cluster(self, resource: Dict[str, Any]):
        self.objects[(consts.CLUSTER_KIND, resource["metadata"]["name"])] = copy.deepcopy(resource)

    def cluster_status(self, name: str = CLUSTER_NAME) -> Dict[str, Any]:
        return self.objects[(consts.CLUSTER_KIND, name)].get("status") or {}


class FakeAdminClient(AdminClient):
    """
    Catalog as a flat path -> value map. Objects created through create()
    live under their kind's root (//sys/racks, //sys/data_centers, ...).
    """

    ROOTS = {"rack": consts.RACKS_PATH, "data_center": consts.DATA_CENTERS_PATH}

    def __init__(self, root_exists: bool = True):
        self.values: Dict[str, Any] = {}
        self.objects: Set[str] = {consts.SYS_PATH} if root_exists else set()
        self.writes: List[Tuple[str, str, Any]] = []
        self.failing_paths: Set[str] = set()
        self.raced: Set[str] = set()    # exists() says no, create() says already exists

    def exists(self, path):
        if path in self.raced:
            return False
        return path in self.objects

    def get(self, path):
        return self.values.get(path)

    def create(self, kind, attributes):
        path = f"{self.ROOTS[kind]}/{attributes['name']}"
        if path in self.failing_paths:
            raise AdminClientError(f"create {path} failed", code=1)
        if path in self.objects:
            raise AlreadyExistsError(f"{path} already exists")
        self.writes.append(("create", kind, attributes["name"]))
        self.objects.add(path)
        return f"id-{attributes['name']}"

    def set(self, path, value):
        if path in self.failing_paths:
            raise AdminClientError(f"set {path} failed", code=1)
        self.writes.append(("set", path, value))
        self.values[path] = value


def make_spec(**overrides) -> Dict[str, Any]:
    spec = {
        "coreImage": "ytsaurus/ytsaurus:23.2",
        "primaryMasters": {"instanceCount": 1, "cellTag": 1},
        "dataNodes": [{
            "instanceCount": 3,
            "locations": [{"locationType": "ChunkStore", "path": "/yt/chunk-store"}],
        }],
        "httpProxies": [{"instanceCount": 1}],
    }
    spec.update(overrides)
    return spec


def make_resource(spec: Optional[Dict[str, Any]] = None, status: Optional[Dict[str, Any]] = None,
                  name: str = CLUSTER_NAME) -> Dict[str, Any]:
    resource = {
        "apiVersion": consts.CLUSTER_API_VERSION,
        "kind": consts.CLUSTER_KIND,
        "metadata": {"name": name, "namespace": NAMESPACE},
        "spec": spec if spec is not None else make_spec(),
    }
    if status is not None:
        resource["status"] = status
    return resource


def updating_status(update_state: str, conditions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "state": "Updating",
        "updateStatus": {"state": update_state, "conditions": conditions or []},
    }


def load_cluster(platform: FakePlatform, name: str = CLUSTER_NAME) -> YtsaurusCluster:
    cluster = YtsaurusCluster({"metadata": {"name": name, "namespace": platform.namespace}}, platform)
    cluster.fetch()
    return cluster


def generator_for(cluster: YtsaurusCluster) -> ConfigGenerator:
    return ConfigGenerator(cluster.name, cluster.namespace, cluster.spec)


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def admin() -> FakeAdminClient:
    return FakeAdminClient()


@pytest.fixture
def settings() -> OperatorSettings:
    return OperatorSettings(namespace=NAMESPACE)
