#!/usr/bin/env python3
"""
YTOPERATOR BOOTSTRAP JOB
------------------------
A one-shot initialization task (a platform Job plus a ConfigMap carrying
its script and client config) owned by a component.

Progress lives in conditions on the cluster resource, never in memory:
  <Component>InitJob<Name>Completed        cluster condition
  <Component>InitJob<Name>RestartPrepared  update-cycle condition

Disruptive re-runs use a two-phase protocol. prepare_restart() clears the
previous run and records the prepared condition; it is synchronous and may
be repeated freely. commit_restart() launches the fresh run and disarms the
prepared condition for the next cycle.

Author: YTOperator Team
Date: 2026-10-17
"""

import enum
import logging
from typing import Any, Callable, Dict, Optional

from ytoperator.core import consts
from ytoperator.core.cluster import YtsaurusCluster
from ytoperator.core.conditions import Condition
from ytoperator.core.errors import ConfigGenerationError
from ytoperator.core.models import ComponentStatus, SyncStatus
from ytoperator.resources.labeller import Labeller

logger = logging.getLogger("ytoperator.bootstrap")

SCRIPT_FILE_NAME = "init-cluster.sh"
BACKOFF_LIMIT = 15


def native_driver_prologue() -> str:
    return "\n".join([
        "set -e",
        "set -x",
        f"export YT_DRIVER_CONFIG_PATH={consts.CONFIG_MOUNT_PATH}/{consts.CLIENT_CONFIG_FILE_NAME}",
        "export YT_DRIVER_CONFIG_FORMAT=json",
    ])


class RestartPhase(enum.Enum):
    NOT_PREPARED = "NotPrepared"
    PREPARED = "Prepared"
    COMMITTED = "Committed"


class InitJob:
    def __init__(self, labeller: Labeller, cluster: YtsaurusCluster, image: str, name: str,
                 generate_client_config: Callable[[], bytes]):
        self.labeller = labeller
        self.cluster = cluster
        self.image = image
        self.name = name
        self.generate_client_config = generate_client_config

        self.job_name = labeller.get_init_job_name(name)
        self.config_map_name = f"{self.job_name}-config"
        prefix = f"{labeller.component_name}InitJob{name.title().replace('-', '')}"
        self.completed_condition = f"{prefix}Completed"
        self.restart_prepared_condition = f"{prefix}RestartPrepared"

        self.script: Optional[str] = None
        self.observed_job: Optional[Dict[str, Any]] = None

    @property
    def platform(self):
        return self.cluster.platform

    def fetch(self):
        self.observed_job = self.platform.fetch("Job", self.job_name)

    def set_init_script(self, script: str):
        self.script = script

    # --- Desired objects ---

    def build_config_map(self) -> Dict[str, Any]:
        if self.script is None:
            raise ConfigGenerationError(f"{self.job_name}: init script was never set")
        return {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": self.labeller.get_object_meta(self.config_map_name, is_init_job=True),
            "data": {
                SCRIPT_FILE_NAME: self.script,
                consts.CLIENT_CONFIG_FILE_NAME: self.generate_client_config().decode("utf-8"),
            },
        }

    def build_job(self) -> Dict[str, Any]:
        return {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": self.labeller.get_object_meta(self.job_name, is_init_job=True),
            "spec": {
                "backoffLimit": BACKOFF_LIMIT,
                "template": {
                    "metadata": {"labels": self.labeller.get_meta_label_map(is_init_job=True)},
                    "spec": {
                        "restartPolicy": "OnFailure",
                        "containers": [{
                            "name": "ytsaurus-init",
                            "image": self.image,
                            "command": ["bash", f"{consts.CONFIG_MOUNT_PATH}/{SCRIPT_FILE_NAME}"],
                            "volumeMounts": [{"name": "config", "mountPath": consts.CONFIG_MOUNT_PATH}],
                        }],
                        "volumes": [{
                            "name": "config",
                            "configMap": {"name": self.config_map_name, "defaultMode": 0o755},
                        }],
                    },
                },
            },
        }

    # --- State ---

    def is_completed(self) -> bool:
        return self.cluster.is_status_condition_true(self.completed_condition)

    def is_restart_prepared(self) -> bool:
        return self.cluster.is_update_status_condition_true(self.restart_prepared_condition)

    def restart_phase(self) -> RestartPhase:
        if self.is_restart_prepared():
            return RestartPhase.PREPARED
        if self.observed_job is not None and not self.is_completed():
            return RestartPhase.COMMITTED
        return RestartPhase.NOT_PREPARED

    def _job_succeeded(self) -> bool:
        status = (self.observed_job or {}).get("status") or {}
        return (status.get("succeeded") or 0) >= 1

    def _launch(self):
        logger.info(f"Launching {self.job_name}")
        self.platform.apply(self.build_config_map())
        self.platform.apply(self.build_job())

    # --- Evaluation ---

    def evaluate(self, dry: bool) -> ComponentStatus:
        if self.is_completed():
            return ComponentStatus.simple(SyncStatus.READY)

        if self.observed_job is None:
            if not dry:
                self._launch()
            return ComponentStatus.waiting(SyncStatus.PENDING, f"{self.job_name} creation")

        if self._job_succeeded():
            if dry:
                return ComponentStatus.waiting(SyncStatus.PENDING, f"{self.job_name} completion")
            self.cluster.set_status_condition(Condition.make(
                self.completed_condition, True,
                reason="InitJobCompleted",
                message=f"Init job {self.job_name} successfully completed",
            ))
            return ComponentStatus.simple(SyncStatus.READY)

        failed = ((self.observed_job.get("status") or {}).get("failed") or 0)
        if failed:
            logger.warning(f"{self.job_name}: {failed} failed attempt(s)")
        return ComponentStatus.waiting(SyncStatus.BLOCKED, f"{self.job_name} completion")

    def prepare_restart(self, dry: bool):
        """Phase 1: forget the previous run. Safe to repeat."""
        if dry:
            return
        self.platform.delete("ConfigMap", self.config_map_name)
        self.platform.delete("Job", self.job_name)
        self.cluster.set_status_condition(Condition.make(
            self.completed_condition, False,
            reason="InitJobNeedRestart",
            message=f"Init job {self.job_name} must run again",
        ))
        self.cluster.set_update_status_condition(Condition.make(
            self.restart_prepared_condition, True,
            reason="RestartPrepared",
            message=f"Previous run of {self.job_name} removed",
        ))

    def commit_restart(self, dry: bool):
        """Phase 2: start the fresh run. Only valid after prepare_restart()."""
        if dry:
            return
        self._launch()
        self.cluster.set_update_status_condition(Condition.make(
            self.restart_prepared_condition, False,
            reason="RestartCommitted",
            message=f"Fresh run of {self.job_name} launched",
        ))
