#!/usr/bin/env python3
"""
YTOPERATOR RESOURCE SUITE
-------------------------
Workload predicates, bootstrap job lifecycle, host pinning and labels.

Author: YTOperator Team
Date: 2026-10-17
"""

import copy

import pytest

from conftest import load_cluster, make_resource
from ytoperator.core.errors import ConfigGenerationError
from ytoperator.core.models import InstanceSpec, SyncStatus
from ytoperator.resources.bootstrap import InitJob, RestartPhase
from ytoperator.resources.labeller import Labeller, join_maps
from ytoperator.resources.placement import add_host_affinity
from ytoperator.resources.workload import WorkloadHandle


def labeller():
    return Labeller(cluster_name="test-cluster", namespace="yt", component_label="yt-data-node",
                    component_name="DataNode", monitoring_port=10012)


def workload(platform, count=2, image="core:1", config=b"{}"):
    return WorkloadHandle(labeller(), platform, InstanceSpec(instance_count=count),
                          image=image, binary_path="/usr/bin/ytserver-node",
                          config_file_name="node.yson", stateful_set_name="dnd",
                          service_name="data-nodes", rpc_port=9012,
                          generate_config=lambda: config)


# --- Workload ---

def test_missing_workload_needs_sync_but_not_update(platform):
    handle = workload(platform)
    handle.fetch()

    assert handle.need_sync()
    assert not handle.need_update()
    assert not handle.are_pods_ready()
    assert handle.are_pods_removed()


def test_synced_workload_is_converged(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()
    platform.settle()

    fresh = workload(platform)
    fresh.fetch()
    assert not fresh.need_sync()
    assert not fresh.need_update()
    assert fresh.are_pods_ready()


def test_image_change_is_disruptive(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()

    changed = workload(platform, image="core:2")
    changed.fetch()
    assert changed.need_update()
    assert changed.need_sync()


def test_config_change_is_disruptive_through_the_hash(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()

    changed = workload(platform, config=b'{"x": 1}')
    changed.fetch()
    assert changed.need_update()


def test_scale_change_is_not_disruptive(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()

    scaled = workload(platform, count=3)
    scaled.fetch()
    assert scaled.need_sync()
    assert not scaled.need_update()


def test_platform_defaults_do_not_count_as_drift(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()
    pod_spec = platform.get("StatefulSet", "dnd")["spec"]["template"]["spec"]
    pod_spec["dnsPolicy"] = "ClusterFirst"
    pod_spec["containers"][0]["terminationMessagePath"] = "/dev/termination-log"

    fresh = workload(platform)
    fresh.fetch()
    assert not fresh.need_sync()


def test_pods_not_ready_until_generation_observed(platform):
    handle = workload(platform)
    handle.fetch()
    handle.sync()
    platform.settle()
    platform.get("StatefulSet", "dnd")["metadata"]["generation"] = 5

    fresh = workload(platform)
    fresh.fetch()
    assert not fresh.are_pods_ready()


def test_zero_instances_never_count_as_ready(platform):
    handle = workload(platform, count=0)
    handle.fetch()
    handle.sync()
    platform.settle()

    fresh = workload(platform, count=0)
    fresh.fetch()
    assert not fresh.need_sync()
    assert not fresh.are_pods_ready()


def test_monitoring_service_targets_role_port(platform):
    handle = workload(platform)

    names = [s["metadata"]["name"] for s in handle.build_services()]
    monitoring = handle.build_monitoring_service()

    assert names == ["data-nodes", "yt-data-node-monitoring"]
    assert monitoring["spec"]["ports"] == [{"name": "metrics", "port": 10000, "targetPort": 10012}]
    assert monitoring["metadata"]["labels"]["yt_metrics"] == "true"
    assert "clusterIP" not in monitoring["spec"]


def test_remove_pods_keeps_template(platform):
    handle = workload(platform)
    handle.fetch()
    handle.remove_pods()

    sts = platform.get("StatefulSet", "dnd")
    assert sts["spec"]["replicas"] == 0
    assert sts["spec"]["template"] == handle.build_stateful_set()["spec"]["template"]
    assert handle.build_stateful_set()["spec"]["replicas"] == 2


# --- Bootstrap job ---

def init_job(platform):
    platform.put_cluster(make_resource())
    cluster = load_cluster(platform)
    job = InitJob(labeller(), cluster, "core:1", "default", lambda: b"{}")
    job.fetch()
    return job


def test_init_job_flow(platform):
    job = init_job(platform)
    job.set_init_script("echo hi")

    assert job.evaluate(dry=True).sync_status == SyncStatus.PENDING
    assert platform.write_count == 0

    assert job.evaluate(dry=False).sync_status == SyncStatus.PENDING
    assert platform.names("Job") == ["yt-data-node-init-job-default"]
    assert platform.get("ConfigMap", "yt-data-node-init-job-default-config")["data"]["init-cluster.sh"] == "echo hi"

    job.fetch()
    assert job.evaluate(dry=False).sync_status == SyncStatus.BLOCKED

    platform.settle()
    job.fetch()
    assert job.evaluate(dry=True).sync_status == SyncStatus.PENDING
    assert job.evaluate(dry=False).is_ready
    assert job.is_completed()
    assert job.evaluate(dry=False).is_ready


def test_init_job_without_script_refuses_to_build(platform):
    job = init_job(platform)

    with pytest.raises(ConfigGenerationError):
        job.build_config_map()


def test_restart_is_two_phase(platform):
    job = init_job(platform)
    job.set_init_script("echo hi")
    job.evaluate(dry=False)
    platform.settle()
    job.fetch()
    job.evaluate(dry=False)
    assert job.restart_phase() == RestartPhase.NOT_PREPARED

    job.prepare_restart(dry=True)
    assert platform.names("Job") == ["yt-data-node-init-job-default"]

    job.prepare_restart(dry=False)
    job.prepare_restart(dry=False)
    job.fetch()
    assert platform.names("Job") == []
    assert not job.is_completed()
    assert job.restart_phase() == RestartPhase.PREPARED

    job.commit_restart(dry=False)
    job.fetch()
    assert platform.names("Job") == ["yt-data-node-init-job-default"]
    assert not job.is_restart_prepared()
    assert job.restart_phase() == RestartPhase.COMMITTED


# --- Placement ---

def test_host_affinity_appends_to_existing_terms():
    existing = {"matchExpressions": [{"key": "zone", "operator": "In", "values": ["a"]}]}
    sts = {"spec": {"template": {"spec": {
        "affinity": {
            "nodeAffinity": {"requiredDuringSchedulingIgnoredDuringExecution": {"nodeSelectorTerms": [existing]}},
            "podAntiAffinity": {"x": 1},
        },
        "tolerations": [{"key": "dedicated"}],
    }}}}

    add_host_affinity(sts, "kubernetes.io/hostname", ["h1", "h2"])
    once = copy.deepcopy(sts)
    add_host_affinity(sts, "kubernetes.io/hostname", ["h1", "h2"])

    pod_spec = sts["spec"]["template"]["spec"]
    terms = pod_spec["affinity"]["nodeAffinity"]["requiredDuringSchedulingIgnoredDuringExecution"]["nodeSelectorTerms"]
    assert terms[0] == existing
    assert terms[1]["matchExpressions"][0]["values"] == ["h1", "h2"]
    assert pod_spec["affinity"]["podAntiAffinity"] == {"x": 1}
    assert pod_spec["tolerations"] == [{"key": "dedicated"}]
    assert sts == once


def test_host_affinity_without_hosts_is_noop():
    sts = {"spec": {}}
    assert add_host_affinity(sts, "kubernetes.io/hostname", []) == {"spec": {}}


# --- Labels ---

def test_labeller_names_and_selectors():
    lab = labeller()

    assert lab.get_main_config_map_name() == "yt-data-node-config"
    assert lab.get_init_job_name("Default") == "yt-data-node-init-job-default"
    assert lab.get_selector_label_map() == {"ytsaurus.tech/component": "test-cluster-yt-data-node"}
    assert lab.get_meta_label_map(is_init_job=True)["ytsaurus.tech/component"] == \
        "test-cluster-yt-data-node-init-job"
    assert lab.get_pods_removed_condition() == "DataNodePodsRemoved"


def test_labeller_detects_label_drift():
    lab = labeller()
    meta = lab.get_object_meta("dnd")

    assert not lab.need_sync(meta)
    meta["labels"]["app.kubernetes.io/component"] = "something-else"
    assert lab.need_sync(meta)
    assert lab.need_sync({})


def test_join_maps_later_wins():
    assert join_maps({"a": "1", "b": "1"}, None, {"b": "2"}) == {"a": "1", "b": "2"}
