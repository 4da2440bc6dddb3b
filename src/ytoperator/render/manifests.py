#!/usr/bin/env python3
"""
YTOPERATOR MANIFEST LOADING AND RENDERING
-----------------------------------------
Offline side of the operator: read a cluster manifest from disk, gate it
through the validator, and render every object the components would
apply without touching a live cluster.

Author: YTOperator Team
Date: 2026-10-17
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ruamel.yaml import YAMLError

from ytoperator.config.generator import ConfigGenerator
from ytoperator.config.settings import OperatorSettings
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.errors import SpecValidationError
from ytoperator.orchestrator.reconciler import build_components
from ytoperator.render.exporter import ManifestExporter
from ytoperator.validator.validator import ClusterSpecValidator

logger = logging.getLogger("ytoperator.render")


def load_cluster_manifest(path: str, strict: bool = False,
                          validator: Optional[ClusterSpecValidator] = None) -> Dict[str, Any]:
    """Returns the single cluster resource in `path`, validated."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
        docs = ManifestExporter().load(text)
    except (OSError, YAMLError) as e:
        raise SpecValidationError(f"Unable to read {path}: {e}")

    if len(docs) != 1:
        raise SpecValidationError(f"{path} must hold exactly one cluster resource, found {len(docs)}")

    valid, message = (validator or ClusterSpecValidator()).validate(docs[0], strict=strict)
    if not valid:
        raise SpecValidationError(f"{path}: {message}")
    logger.debug(f"{path}: {message}")
    return docs[0]


def render_objects(resource: Dict[str, Any], settings: OperatorSettings) -> List[Dict[str, Any]]:
    resource = copy.deepcopy(resource)
    resource["metadata"].setdefault("namespace", settings.namespace)
    cluster = YtsaurusCluster(resource)
    cfgen = ConfigGenerator(cluster.name, cluster.namespace, cluster.spec, settings.cluster_domain)

    objects: List[Dict[str, Any]] = []
    for component in build_components(cluster, cfgen, settings):
        objects += component.desired_objects()
    return objects


def render_manifest(resource: Dict[str, Any], settings: OperatorSettings) -> str:
    header = f"Rendered by ytoperator for cluster {resource['metadata']['name']}"
    return ManifestExporter().export(render_objects(resource, settings), header=header)
