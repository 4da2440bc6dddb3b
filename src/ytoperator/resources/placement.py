#!/usr/bin/env python3
"""
YTOPERATOR PLACEMENT PINNING
----------------------------
Pins quorum members to a fixed list of physical hosts by merging a
required node-affinity term into an instance-set template.

Existing affinity, tolerations and selectors on the template are kept:
the term is appended, never substituted.

Author: YTOperator Team
Date: 2026-10-17
"""

from typing import Any, Dict, List


def add_host_affinity(stateful_set: Dict[str, Any], label: str, hosts: List[str]) -> Dict[str, Any]:
    """
    Adds `label In hosts` as a required scheduling term. No-op without hosts.
    """
    if not hosts:
        return stateful_set

    pod_spec = stateful_set.setdefault("spec", {}).setdefault("template", {}).setdefault("spec", {})
    affinity = pod_spec.get("affinity") or {}
    node_affinity = affinity.get("nodeAffinity") or {}
    selector = node_affinity.get("requiredDuringSchedulingIgnoredDuringExecution") or {}
    terms = list(selector.get("nodeSelectorTerms") or [])

    term = {
        "matchExpressions": [
            {"key": label, "operator": "In", "values": list(hosts)},
        ],
    }
    if term not in terms:
        terms.append(term)

    selector["nodeSelectorTerms"] = terms
    node_affinity["requiredDuringSchedulingIgnoredDuringExecution"] = selector
    affinity["nodeAffinity"] = node_affinity
    pod_spec["affinity"] = affinity
    return stateful_set
