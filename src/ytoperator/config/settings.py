#!/usr/bin/env python3
"""
YTOPERATOR SETTINGS
-------------------
Operator-wide knobs. Read from an optional YAML file, then overridden by
YTOP_* environment variables.

Author: YTOperator Team
Date: 2026-10-17
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from ruamel.yaml import YAML, YAMLError

from ytoperator.core import consts
from ytoperator.core.errors import SettingsError

logger = logging.getLogger("ytoperator.settings")

ENV_PREFIX = "YTOP_"


@dataclass
class OperatorSettings:
    namespace: str = "default"
    cluster_domain: str = "cluster.local"
    default_host_address_label: str = consts.DEFAULT_HOST_ADDRESS_LABEL
    request_timeout: float = 10.0          # Seconds, per platform/admin call
    reconcile_interval: float = 30.0       # Seconds between passes
    admin_proxy_url: Optional[str] = None  # Derived from the first HTTP proxy if unset
    admin_token: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def load(cls, path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> "OperatorSettings":
        values: Dict[str, Any] = {}
        if path:
            values.update(cls._read_file(Path(path)))
        values.update(cls._read_env(os.environ if environ is None else environ))

        known = {f.name: f for f in fields(cls)}
        unknown = set(values) - set(known)
        for key in sorted(unknown):
            logger.warning(f"Ignoring unknown setting '{key}'")

        settings = cls()
        for key, value in values.items():
            if key not in known:
                continue
            setattr(settings, key, cls._coerce(key, value))
        return settings

    @staticmethod
    def _read_file(path: Path) -> Dict[str, Any]:
        try:
            data = YAML(typ="safe").load(path.read_text(encoding="utf-8"))
        except (OSError, YAMLError) as e:
            logger.error(f"Unable to load settings from {path}")
            raise SettingsError(f"Failed to load settings: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file {path} must contain a mapping")
        return {str(k).replace("-", "_"): v for k, v in data.items()}

    @staticmethod
    def _read_env(environ: Dict[str, str]) -> Dict[str, Any]:
        return {
            key[len(ENV_PREFIX):].lower(): value
            for key, value in environ.items()
            if key.startswith(ENV_PREFIX)
        }

    @staticmethod
    def _coerce(key: str, value: Any) -> Any:
        if key in ("request_timeout", "reconcile_interval"):
            return float(value)
        return None if value is None else str(value)
