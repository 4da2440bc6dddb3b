#!/usr/bin/env python3
"""
YTOPERATOR ADMIN CLIENT
-----------------------
The cluster's own administrative API (its metadata catalog). Used by the
topology synchronizer and by the update orchestrator for safe mode.

Author: YTOperator Team
Date: 2026-10-17
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional

import requests

from ytoperator.core.errors import AdminClientError, AlreadyExistsError

logger = logging.getLogger("ytoperator.admin")

RESOLVE_ERROR_CODE = 500


class AdminClient(ABC):
    """
    Minimal catalog surface: exists / get / create / set.

    create() must raise AlreadyExistsError when the object is already there
    so that callers can treat creation races as success.
    """

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def get(self, path: str) -> Optional[Any]:
        """Value at `path`, or None if the path does not resolve."""

    @abstractmethod
    def create(self, kind: str, attributes: Dict[str, Any]) -> str: ...

    @abstractmethod
    def set(self, path: str, value: Any) -> None: ...


def _error_codes(error: Dict[str, Any]) -> Iterable[int]:
    yield error.get("code", 0)
    for inner in error.get("inner_errors", []) or []:
        yield from _error_codes(inner)


class HttpAdminClient(AdminClient):
    """
    AdminClient speaking the HTTP proxy API (`/api/v4/<command>`).

    Command parameters travel in the X-YT-Parameters header; structured
    errors come back as JSON bodies with nested inner_errors.
    """

    def __init__(self, proxy_url: str, token: Optional[str] = None, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        if not proxy_url.startswith(("http://", "https://")):
            proxy_url = f"http://{proxy_url}"
        self.base_url = proxy_url.rstrip("/") + "/api/v4"
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"OAuth {token}"

    def _call(self, method: str, command: str, params: Dict[str, Any],
              body: Optional[Any] = None) -> Any:
        headers = {
            "X-YT-Parameters": json.dumps(params),
            "X-YT-Output-Format": "json",
        }
        data = None
        if body is not None:
            headers["X-YT-Input-Format"] = "json"
            data = json.dumps(body)

        try:
            response = self.session.request(method, f"{self.base_url}/{command}",
                                            headers=headers, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise AdminClientError(f"{command} failed: {e}") from e

        if response.status_code >= 400:
            self._raise_for_error(command, response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise AdminClientError(f"{command}: malformed response") from e

    def _raise_for_error(self, command: str, response: requests.Response):
        try:
            error = response.json()
        except ValueError:
            raise AdminClientError(f"{command} failed with HTTP {response.status_code}")

        codes = set(_error_codes(error))
        message = error.get("message", f"HTTP {response.status_code}")
        if AlreadyExistsError.CODE in codes:
            raise AlreadyExistsError(f"{command}: {message}")
        raise AdminClientError(f"{command}: {message}", code=error.get("code"))

    def exists(self, path: str) -> bool:
        result = self._call("GET", "exists", {"path": path})
        return bool(result.get("value") if isinstance(result, dict) else result)

    def get(self, path: str) -> Optional[Any]:
        try:
            result = self._call("GET", "get", {"path": path})
        except AdminClientError as e:
            if e.code == RESOLVE_ERROR_CODE:
                return None
            raise
        return result.get("value") if isinstance(result, dict) else result

    def create(self, kind: str, attributes: Dict[str, Any]) -> str:
        logger.debug(f"Creating {kind} with {attributes}")
        result = self._call("POST", "create", {"type": kind, "attributes": attributes})
        return result.get("object_id", "") if isinstance(result, dict) else str(result or "")

    def set(self, path: str, value: Any) -> None:
        logger.debug(f"Setting {path} = {value!r}")
        self._call("PUT", "set", {"path": path}, body=value)
