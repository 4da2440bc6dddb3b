#!/usr/bin/env python3
"""
YTOPERATOR RENDER AND CLI SUITE
-------------------------------
Offline rendering of a manifest and the command-line front end wired to
the in-memory platform.

Author: YTOperator Team
Date: 2026-10-17
"""

import pytest
from ruamel.yaml import YAML

from conftest import FakePlatform, make_resource, make_spec
from ytoperator.cli.main import YtOperatorCLI
from ytoperator.core import consts
from ytoperator.core.errors import SpecValidationError
from ytoperator.render.exporter import ManifestExporter
from ytoperator.render.manifests import load_cluster_manifest, render_manifest, render_objects


def write_manifest(tmp_path, resource, name="cluster.yaml"):
    path = tmp_path / name
    with path.open("w", encoding="utf-8") as fh:
        YAML(typ="safe").dump(resource, fh)
    return str(path)


def test_render_emits_every_component_object(settings):
    text = render_manifest(make_resource(), settings)
    docs = ManifestExporter().load(text)

    kinds = [(d["kind"], d["metadata"]["name"]) for d in docs]
    assert ("StatefulSet", "ms") in kinds
    assert ("Job", "yt-master-init-job-default") in kinds
    assert ("StatefulSet", "dnd") in kinds
    assert ("Service", "http-proxies") in kinds
    assert ("Service", "http-proxies-lb") in kinds
    assert ("Service", "yt-data-node-monitoring") in kinds
    assert len(docs) == 15
    assert text.startswith("# Rendered by ytoperator for cluster test-cluster")
    assert text.index("apiVersion") < text.index("kind") < text.index("metadata")


def test_render_pins_hosts_when_declared(settings):
    spec = make_spec(primaryMasters={"instanceCount": 1, "cellTag": 1, "hostAddresses": ["host-a"]})

    objects = render_objects(make_resource(spec), settings)

    sts = next(o for o in objects if o["kind"] == "StatefulSet" and o["metadata"]["name"] == "ms")
    affinity = sts["spec"]["template"]["spec"]["affinity"]
    values = affinity["nodeAffinity"]["requiredDuringSchedulingIgnoredDuringExecution"]["nodeSelectorTerms"][0]
    assert values["matchExpressions"][0]["values"] == ["host-a"]


def test_render_is_deterministic(settings):
    assert render_manifest(make_resource(), settings) == render_manifest(make_resource(), settings)


def test_manifest_loading_rejects_bad_input(tmp_path):
    broken = tmp_path / "broken.yaml"
    broken.write_text("spec: [unclosed", encoding="utf-8")
    with pytest.raises(SpecValidationError):
        load_cluster_manifest(str(broken))

    two = tmp_path / "two.yaml"
    two.write_text("a: 1\n---\nb: 2\n", encoding="utf-8")
    with pytest.raises(SpecValidationError, match="exactly one"):
        load_cluster_manifest(str(two))

    typo = write_manifest(tmp_path, make_resource(make_spec(coreImages="x")), "typo.yaml")
    assert load_cluster_manifest(typo)["kind"] == consts.CLUSTER_KIND
    with pytest.raises(SpecValidationError, match="Possible typo"):
        load_cluster_manifest(typo, strict=True)


def test_cli_render_prints_plain_yaml(tmp_path, capsys):
    path = write_manifest(tmp_path, make_resource())

    code = YtOperatorCLI(platform_factory=lambda s: FakePlatform()).run(["render", path, "--plain"])

    assert code == 0
    docs = ManifestExporter().load(capsys.readouterr().out)
    assert docs[0]["metadata"]["namespace"] == "yt"


def test_cli_status_reports_without_writing(tmp_path):
    platform = FakePlatform()
    platform.put_cluster(make_resource())
    path = write_manifest(tmp_path, make_resource())

    code = YtOperatorCLI(platform_factory=lambda s: platform).run(["status", path])

    assert code == 0
    assert platform.write_count == 0


def test_cli_reconcile_once_creates_the_resource(tmp_path):
    platform = FakePlatform()
    path = write_manifest(tmp_path, make_resource())

    code = YtOperatorCLI(platform_factory=lambda s: platform).run(["reconcile", path, "--once", "--create"])

    assert code == 0
    assert platform.get(consts.CLUSTER_KIND, "test-cluster") is not None
    assert platform.cluster_status()["state"] == "Initializing"
    assert "ms" in platform.names("StatefulSet")


def test_cli_reconcile_of_missing_resource_fails(tmp_path):
    path = write_manifest(tmp_path, make_resource())

    code = YtOperatorCLI(platform_factory=lambda s: FakePlatform()).run(["reconcile", path, "--once"])

    assert code == 1


def test_cli_invalid_manifest_exit_code(tmp_path):
    resource = make_resource()
    resource["kind"] = "Deployment"
    path = write_manifest(tmp_path, resource)

    assert YtOperatorCLI(platform_factory=lambda s: FakePlatform()).run(["status", path]) == 1


def test_cli_without_arguments_prints_help(capsys):
    assert YtOperatorCLI().run([]) == 0
    assert "usage" in capsys.readouterr().out
