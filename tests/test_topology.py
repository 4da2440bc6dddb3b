#!/usr/bin/env python3
"""
YTOPERATOR TOPOLOGY SUITE
-------------------------
Rack / datacenter mirroring into the catalog: convergence, idempotence,
per-item failure isolation and creation races.

Author: YTOperator Team
Date: 2026-10-17
"""

from conftest import generator_for, load_cluster, make_resource, make_spec
from ytoperator.components.nodes import DataNode
from ytoperator.core.models import TopologyFact
from ytoperator.platform.admin import HttpAdminClient
from ytoperator.topology.racks import RackSetup

RACK_LABEL = "topology.kubernetes.io/rack"
DC_LABEL = "topology.kubernetes.io/zone"
SELECTOR = {"ytsaurus.tech/component": "test-cluster-yt-data-node"}


def address(pod):
    return f"{pod}.data-nodes.yt.svc.cluster.local:9012"


def rack_setup(platform, enable=True):
    spec = make_spec(rackAwareness={"enable": enable})
    platform.put_cluster(make_resource(spec))
    cluster = load_cluster(platform)
    node = DataNode(cluster, generator_for(cluster), cluster.spec.data_nodes[0])
    return node.rack_setup


def add_pods(platform):
    platform.add_pod("dnd-0", {**SELECTOR, RACK_LABEL: "r1", DC_LABEL: "dc1"}, "h1", "dnd-0")
    platform.add_pod("dnd-1", {**SELECTOR, RACK_LABEL: "r1", DC_LABEL: "dc1"}, "h2", "dnd-1")
    platform.add_pod("dnd-2", {**SELECTOR, RACK_LABEL: "r2", DC_LABEL: "dc2"}, "h3", "dnd-2")


def test_converges_to_observed_placement(platform, admin):
    add_pods(platform)

    failures = rack_setup(platform).set_racks(admin)

    assert failures == []
    assert {"//sys/racks/r1", "//sys/racks/r2", "//sys/data_centers/dc1", "//sys/data_centers/dc2"} <= admin.objects
    assert admin.values["//sys/hosts/h1/@rack"] == "r1"
    assert admin.values["//sys/hosts/h2/@rack"] == "r1"
    assert admin.values["//sys/hosts/h3/@rack"] == "r2"
    assert admin.values[f"//sys/cluster_nodes/{address('dnd-0')}/@rack"] == "r1"
    assert admin.values[f"//sys/cluster_nodes/{address('dnd-2')}/@rack"] == "r2"
    assert admin.values["//sys/racks/r1/@data_center"] == "dc1"
    assert admin.values["//sys/racks/r2/@data_center"] == "dc2"
    assert admin.values["//sys/hosts/h1/@data_center"] == "dc1"
    assert admin.values["//sys/hosts/h3/@data_center"] == "dc2"
    assert admin.values[f"//sys/cluster_nodes/{address('dnd-1')}/@data_center"] == "dc1"


def test_second_run_writes_nothing(platform, admin):
    add_pods(platform)
    setup = rack_setup(platform)
    setup.set_racks(admin)

    before = len(admin.writes)
    assert setup.set_racks(admin) == []
    assert len(admin.writes) == before


def test_failure_of_one_item_does_not_stop_the_rest(platform, admin):
    add_pods(platform)
    admin.failing_paths.add("//sys/hosts/h2/@rack")

    failures = rack_setup(platform).set_racks(admin)

    assert [(f.operation, f.subject) for f in failures] == [("set-host-rack", "h2")]
    assert "//sys/hosts/h2/@rack" not in admin.values
    assert admin.values["//sys/hosts/h1/@rack"] == "r1"
    assert admin.values["//sys/hosts/h3/@rack"] == "r2"
    assert {"//sys/racks/r2", "//sys/data_centers/dc2"} <= admin.objects
    assert admin.values["//sys/hosts/h2/@data_center"] == "dc1"


def test_failed_rack_creation_skips_its_members(platform, admin):
    add_pods(platform)
    admin.failing_paths.add("//sys/racks/r1")

    failures = rack_setup(platform).set_racks(admin)

    assert ("ensure-rack", "r1") in [(f.operation, f.subject) for f in failures]
    assert "//sys/hosts/h1/@rack" not in admin.values
    assert admin.values["//sys/hosts/h3/@rack"] == "r2"


def test_concurrent_creation_counts_as_success(platform, admin):
    add_pods(platform)
    admin.objects.add("//sys/racks/r1")
    admin.raced.add("//sys/racks/r1")

    assert rack_setup(platform).set_racks(admin) == []
    assert admin.values["//sys/hosts/h1/@rack"] == "r1"


def test_disabled_rack_awareness_is_a_noop(platform, admin):
    add_pods(platform)

    assert rack_setup(platform, enable=False).set_racks(admin) == []
    assert admin.writes == []


def test_only_running_labelled_pods_are_considered(platform):
    platform.add_pod("dnd-0", {**SELECTOR, RACK_LABEL: "r1"}, "h1", "dnd-0")
    platform.add_pod("dnd-1", {**SELECTOR, RACK_LABEL: "r1"}, "h2", "dnd-1", phase="Pending")
    platform.add_pod("dnd-2", dict(SELECTOR), "h3", "dnd-2")
    platform.add_pod("other-0", {RACK_LABEL: "r9"}, "h9", "other-0")

    facts = rack_setup(platform).collect_facts()

    assert facts == [TopologyFact(host="h1", address=address("dnd-0"), rack="r1", datacenter=None)]


def test_group_skips_unscheduled_hosts():
    facts = [
        TopologyFact(host=None, address="a:1", rack="r1"),
        TopologyFact(host="h1", address="b:1", rack="r1", datacenter="dc1"),
    ]

    rack_hosts, rack_addresses, dc_racks = RackSetup.group(facts)

    assert rack_hosts == {"r1": {"h1"}}
    assert rack_addresses == {"r1": {"a:1", "b:1"}}
    assert dc_racks == {"dc1": {"r1"}}


class GatewayPageSession:
    """Answers every catalog call with a 200 HTML page."""

    def __init__(self):
        self.headers = {}
        self.calls = 0

    def request(self, method, url, headers=None, data=None, timeout=None):
        self.calls += 1
        return GatewayPage()


class GatewayPage:
    status_code = 200
    content = b"<html><body>Bad gateway</body></html>"

    def json(self):
        raise ValueError("Expecting value")


def test_malformed_catalog_replies_are_recorded_per_item(platform):
    add_pods(platform)
    session = GatewayPageSession()
    admin = HttpAdminClient("proxy.example:80", session=session)

    failures = rack_setup(platform).set_racks(admin)

    assert [(f.operation, f.subject) for f in failures] == [
        ("ensure-rack", "r1"), ("ensure-rack", "r2"), ("ensure-dc", "dc1"), ("ensure-dc", "dc2")]
    assert all("malformed response" in f.error for f in failures)
    assert session.calls == 4
