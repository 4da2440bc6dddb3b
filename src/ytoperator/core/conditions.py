#!/usr/bin/env python3
"""
YTOPERATOR CONDITIONS
---------------------
Ordered, type-keyed view over a Kubernetes-style conditions list.

Conditions are the only state that survives between reconcile passes, so
this structure is loaded from the resource, mutated with upserts, and
written back whole. Condition types it does not know about are carried
through untouched.

Author: YTOperator Team
Date: 2026-10-17
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

STATUS_TRUE = "True"
STATUS_FALSE = "False"


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class Condition:
    type: str
    status: str = STATUS_FALSE
    reason: str = ""
    message: str = ""
    last_transition_time: str = field(default_factory=_now)

    @property
    def is_true(self) -> bool:
        return self.status == STATUS_TRUE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        return cls(
            type=data["type"],
            status=data.get("status", STATUS_FALSE),
            reason=data.get("reason", ""),
            message=data.get("message", ""),
            last_transition_time=data.get("lastTransitionTime") or _now(),
        )

    @classmethod
    def make(cls, type_: str, value: bool, reason: str = "", message: str = "") -> "Condition":
        return cls(
            type=type_,
            status=STATUS_TRUE if value else STATUS_FALSE,
            reason=reason or type_,
            message=message,
        )


class ConditionSet:
    """
    Upsert-by-type map that preserves insertion order.

    Mirrors apimachinery's SetStatusCondition: the transition time only
    moves when the status actually flips.
    """

    def __init__(self, conditions: Optional[List[Condition]] = None):
        self._items: Dict[str, Condition] = {}
        for cond in conditions or []:
            self._items[cond.type] = cond

    @classmethod
    def from_list(cls, raw: Optional[List[Dict[str, Any]]]) -> "ConditionSet":
        return cls([Condition.from_dict(item) for item in raw or [] if "type" in item])

    def to_list(self) -> List[Dict[str, Any]]:
        return [cond.to_dict() for cond in self._items.values()]

    def get(self, type_: str) -> Optional[Condition]:
        return self._items.get(type_)

    def is_true(self, type_: str) -> bool:
        cond = self._items.get(type_)
        return cond is not None and cond.is_true

    def upsert(self, cond: Condition) -> bool:
        """Returns True if anything observable changed."""
        existing = self._items.get(cond.type)
        if existing is None:
            self._items[cond.type] = cond
            return True

        changed = False
        if existing.status != cond.status:
            existing.status = cond.status
            existing.last_transition_time = cond.last_transition_time
            changed = True
        if existing.reason != cond.reason or existing.message != cond.message:
            existing.reason = cond.reason
            existing.message = cond.message
            changed = True
        return changed

    def remove(self, type_: str) -> bool:
        return self._items.pop(type_, None) is not None

    def __contains__(self, type_: str) -> bool:
        return type_ in self._items

    def __iter__(self) -> Iterator[Condition]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)
