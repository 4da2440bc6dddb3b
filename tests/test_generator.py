#!/usr/bin/env python3
"""Config generation: naming, addresses, artifacts and their failures."""

import json

import pytest

from ytoperator.config.generator import ConfigGenerator, format_with_default, generate_cell_id
from ytoperator.core.errors import ConfigGenerationError
from ytoperator.core.models import ClusterSpec, NodesSpec

from conftest import make_spec


def generator(**overrides):
    return ConfigGenerator("test-cluster", "yt", ClusterSpec.from_dict(make_spec(**overrides)))


def test_names():
    cfgen = generator()

    assert format_with_default("dnd", "default") == "dnd"
    assert format_with_default("dnd", "ssd") == "dnd-ssd"
    assert cfgen.get_secondary_master_stateful_set_name(2) == "sms-2"
    assert cfgen.get_pod_names("ms", 2) == ["ms-0", "ms-1"]
    assert cfgen.get_pod_address("dnd-0", "data-nodes", 9012) == "dnd-0.data-nodes.yt.svc.cluster.local:9012"


def test_master_addresses_follow_pinned_hosts():
    assert generator().get_master_addresses() == ["ms-0.masters.yt.svc.cluster.local:9010"]

    pinned = generator(primaryMasters={"instanceCount": 2, "cellTag": 1, "hostAddresses": ["a", "b"]})
    assert pinned.get_master_addresses() == ["a:9010", "b:9010"]


def test_cluster_connection_lists_every_cell():
    cfgen = generator(secondaryMasters=[{"instanceCount": 1, "cellTag": 2}], masterCaches={"instanceCount": 1})

    connection = json.loads(cfgen.get_cluster_connection())

    assert connection["primary_master"]["cell_id"] == generate_cell_id(1)
    assert connection["secondary_masters"][0]["addresses"] == ["sms-2-0.secondary-masters-2.yt.svc.cluster.local:9010"]
    assert connection["master_cache"]["addresses"] == ["msc-0.master-caches.yt.svc.cluster.local:9010"]


def test_artifacts_are_deterministic():
    assert generator().get_master_config(generator().spec.primary_masters) == \
        generator().get_master_config(generator().spec.primary_masters)
    assert generator().generate("client") == generator().get_native_client_config()


def test_data_node_needs_chunk_store():
    cfgen = generator()

    with pytest.raises(ConfigGenerationError):
        cfgen.get_data_node_config(NodesSpec(name="empty"))

    config = json.loads(cfgen.get_data_node_config(cfgen.spec.data_nodes[0]))
    assert config["data_node"]["store_locations"] == [{"path": "/yt/chunk-store", "medium_name": "default"}]


def test_invalid_master_cells_and_roles():
    with pytest.raises(ConfigGenerationError, match="out of range"):
        generator(primaryMasters={"instanceCount": 1, "cellTag": 0xF000}).get_cluster_connection()
    with pytest.raises(ConfigGenerationError, match="at least one"):
        generator(primaryMasters={"instanceCount": 0, "cellTag": 1}).get_native_client_config()
    with pytest.raises(ConfigGenerationError, match="not declared"):
        generator().get_master_cache_config()
    with pytest.raises(ConfigGenerationError, match="Unknown role"):
        generator().generate("scheduler")


def test_ipv6_switches_resolver():
    config = json.loads(generator(useIpv6=True).get_native_client_config())
    assert config["address_resolver"]["enable_ipv6"] is True
    assert config["address_resolver"]["enable_ipv4"] is False
