#!/usr/bin/env python3
"""
YTOPERATOR EXPORTER - Manifest Rendering
----------------------------------------
Turns the desired objects of every component into one multi-document
YAML stream, with Kubernetes' conventional top-level key order.

Author: YTOperator Team
Date: 2026-10-17
"""

import io
from typing import Any, Dict, List

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap


class ManifestExporter:
    def __init__(self):
        self.yaml = YAML(typ='rt')
        # Standard K8s: 2 spaces, sequences indented 4 (offset 2)
        self.yaml.indent(mapping=2, sequence=4, offset=2)
        self.yaml.width = 4096
        self.preferred_order = ["apiVersion", "kind", "metadata", "spec", "data", "status"]

    def _get_sorted_map(self, data: Any) -> Any:
        """
        Rebuilds mappings as CommentedMaps, preferred keys first; other
        keys keep their relative position. List order is never touched.
        """
        if isinstance(data, list):
            return [self._get_sorted_map(item) for item in data]
        if not isinstance(data, dict):
            return data

        keys = list(data.keys())

        def sort_logic(key):
            if key in self.preferred_order:
                return self.preferred_order.index(key)
            return len(self.preferred_order) + keys.index(key)

        sorted_map = CommentedMap()
        for key in sorted(keys, key=sort_logic):
            sorted_map[key] = self._get_sorted_map(data[key])
        return sorted_map

    def export(self, objects: List[Dict[str, Any]], header: str = "") -> str:
        stream = io.StringIO()
        first = True
        for obj in objects:
            if not obj:
                continue
            doc = self._get_sorted_map(obj)
            if first and header:
                doc.yaml_set_start_comment(header)
            if not first:
                stream.write("---\n")
            self.yaml.dump(doc, stream)
            first = False
        return stream.getvalue()

    def load(self, text: str) -> List[Dict[str, Any]]:
        """Reads a manifest stream back into plain documents."""
        return [doc for doc in YAML(typ="safe").load_all(text) if doc]
