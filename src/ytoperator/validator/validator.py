#!/usr/bin/env python3
"""
YTOPERATOR VALIDATOR - The Gate
-------------------------------
Checks a cluster resource manifest before any component is built from it.
A structural check walks the manifest against a small schema of the
fields the operator understands; semantic checks then catch specs that
would only fail later, in the middle of a pass.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
from typing import Any, Dict, List, Tuple

from ytoperator.config.generator import MAX_CELL_TAG
from ytoperator.core import consts

logger = logging.getLogger("ytoperator.validator")

_INSTANCE_FIELDS: Dict[str, Any] = {
    "instanceCount": {"type": "integer"},
    "image": {"type": "string"},
    "hostAddresses": {"type": "array"},
    "hostAddressLabel": {"type": "string"},
    "affinity": {"type": "object", "open": True},
    "nodeSelector": {"type": "object", "open": True},
    "tolerations": {"type": "array"},
    "extraPodLabels": {"type": "object", "open": True},
    "extraPodAnnotations": {"type": "object", "open": True},
}

_MASTERS = {"type": "object", "fields": dict(_INSTANCE_FIELDS, cellTag={"type": "integer"})}

_LOCATION = {
    "type": "object",
    "required": ["locationType", "path"],
    "fields": {
        "locationType": {"type": "string"},
        "path": {"type": "string"},
        "medium": {"type": "string"},
    },
}

_GROUP = {
    "type": "object",
    "fields": dict(_INSTANCE_FIELDS, name={"type": "string"},
                   locations={"type": "array", "items": _LOCATION}),
}

CLUSTER_SCHEMA: Dict[str, Any] = {
    "required": ["coreImage", "primaryMasters"],
    "fields": {
        "coreImage": {"type": "string"},
        "enableFullUpdate": {"type": "boolean"},
        "useIpv6": {"type": "boolean"},
        "primaryMasters": _MASTERS,
        "secondaryMasters": {"type": "array", "items": _MASTERS},
        "masterCaches": {"type": "object", "fields": dict(_INSTANCE_FIELDS)},
        "dataNodes": {"type": "array", "items": _GROUP},
        "execNodes": {"type": "array", "items": _GROUP},
        "httpProxies": {"type": "array", "items": _GROUP},
        "rackAwareness": {
            "type": "object",
            "fields": {
                "enable": {"type": "boolean"},
                "rackLabel": {"type": "string"},
                "dcLabel": {"type": "string"},
            },
        },
        "extraPodLabels": {"type": "object", "open": True},
        "extraPodAnnotations": {"type": "object", "open": True},
    },
}

_SCALARS = {
    "string": str,
    "integer": int,
    "boolean": bool,
}


class ClusterSpecValidator:
    """
    Returns (ok, message) pairs in the same shape everywhere, so callers
    can print the message whether or not the manifest passed.
    """

    def __init__(self, schema: Dict[str, Any] = None):
        self.schema = schema or CLUSTER_SCHEMA
        self.required_fields = ["apiVersion", "kind", "metadata", "spec"]

    def validate(self, doc: Any, strict: bool = False) -> Tuple[bool, str]:
        if not isinstance(doc, dict):
            return False, "Manifest is not a mapping."

        for name in self.required_fields:
            if name not in doc:
                return False, f"Missing required top-level field '{name}'."

        if doc.get("kind") != consts.CLUSTER_KIND:
            return False, f"Kind '{doc.get('kind')}' is not {consts.CLUSTER_KIND}."
        if not (doc.get("metadata") or {}).get("name"):
            return False, "metadata.name is required."

        spec = doc.get("spec")
        if not isinstance(spec, dict):
            return False, "'spec' must be a map/object."

        valid, err = self._deep_validate(spec, self.schema, path="spec.", strict=strict)
        if not valid:
            return False, err

        problems = self.semantic_problems(spec)
        if problems:
            return False, problems[0]
        return True, "Cluster spec passes validation."

    def _deep_validate(self, doc: Dict[str, Any], schema: Dict[str, Any], path: str = "",
                       strict: bool = False) -> Tuple[bool, str]:
        for req in schema.get("required", []):
            if req not in doc:
                return False, f"Field '{path + req}' is required but missing."

        schema_fields = schema.get("fields", {})
        for key, value in doc.items():
            field_info = schema_fields.get(key)
            if not field_info:
                if strict:
                    return False, f"Unknown field '{path + key}'. Possible typo?"
                continue

            expected_type = field_info.get("type")
            if expected_type == "object":
                if not isinstance(value, dict):
                    return False, f"'{path + key}' must be a map/object."
                if field_info.get("open"):
                    continue
                valid, err = self._deep_validate(value, field_info, path=f"{path}{key}.", strict=strict)
                if not valid:
                    return False, err

            elif expected_type == "array":
                if not isinstance(value, list):
                    return False, f"'{path + key}' must be a list/sequence."
                item_schema = field_info.get("items")
                if not item_schema:
                    continue
                for idx, item in enumerate(value):
                    if not isinstance(item, dict):
                        return False, f"'{path}{key}[{idx}]' must be a map/object."
                    valid, err = self._deep_validate(item, item_schema, path=f"{path}{key}[{idx}].",
                                                     strict=strict)
                    if not valid:
                        return False, err

            elif expected_type in _SCALARS:
                python_type = _SCALARS[expected_type]
                # bool is an int subclass; keep them apart
                if isinstance(value, bool) and python_type is not bool:
                    return False, f"'{path + key}' must be of type {expected_type}."
                if not isinstance(value, python_type):
                    return False, f"'{path + key}' must be of type {expected_type}."

        return True, ""

    def semantic_problems(self, spec: Dict[str, Any]) -> List[str]:
        problems = []

        masters = [("spec.primaryMasters", spec.get("primaryMasters") or {})]
        masters += [(f"spec.secondaryMasters[{i}]", s) for i, s in enumerate(spec.get("secondaryMasters") or [])]
        seen_tags = set()
        for path, master in masters:
            if master.get("instanceCount", 1) < 1:
                problems.append(f"{path}.instanceCount must be at least 1.")
            tag = master.get("cellTag", 0)
            if not 0 <= tag < MAX_CELL_TAG:
                problems.append(f"{path}.cellTag {tag} is out of range.")
            if tag in seen_tags:
                problems.append(f"{path}.cellTag {tag} is used by another master cell.")
            seen_tags.add(tag)
            hosts = master.get("hostAddresses") or []
            if hosts and len(hosts) != master.get("instanceCount", 1):
                logger.warning(f"{path}: {len(hosts)} host addresses for "
                               f"{master.get('instanceCount', 1)} instances")

        for section in ("dataNodes", "execNodes", "httpProxies"):
            names = [g.get("name") or consts.DEFAULT_GROUP_NAME for g in spec.get(section) or []]
            duplicates = sorted({n for n in names if names.count(n) > 1})
            for name in duplicates:
                problems.append(f"spec.{section}: group name '{name}' is used more than once.")

        for idx, group in enumerate(spec.get("dataNodes") or []):
            if not any(loc.get("locationType") == "ChunkStore" for loc in group.get("locations") or []):
                problems.append(f"spec.dataNodes[{idx}] needs at least one ChunkStore location.")

        return problems
