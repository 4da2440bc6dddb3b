#!/usr/bin/env python3
"""
YTOPERATOR ERRORS
-----------------
Exception taxonomy used across the operator.

Transient platform/admin failures propagate and abort the current
component's pass. Creation races surface as AlreadyExistsError so callers
can treat them as success. Config generation failures are invariant
violations: no valid status can be produced for that pass.

Author: YTOperator Team
Date: 2026-10-17
"""

from typing import Optional


class OperatorError(Exception):
    """Base class for every error raised by ytoperator."""


class PlatformError(OperatorError):
    """A read or write against the orchestration platform failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class AdminClientError(OperatorError):
    """A call against the cluster's administrative API failed."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class AlreadyExistsError(AdminClientError):
    """The catalog object being created is already there."""

    CODE = 501

    def __init__(self, message: str):
        super().__init__(message, code=self.CODE)


class ConfigGenerationError(OperatorError):
    """A config artifact could not be produced from the declared spec."""


class SpecValidationError(OperatorError):
    """The cluster manifest is structurally unusable."""


class SettingsError(OperatorError):
    """The operator settings file could not be read."""
