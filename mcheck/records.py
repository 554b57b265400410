"""Document shapes written by the workload."""
from __future__ import annotations

import hashlib
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

NAME_PREFIX = "Robot-"
INSERT_FILLER_TOKEN = "simagix."
UPDATE_FILLER_TOKEN = "MongoDB."

MAX_TASKED = 20
BATTERY_PER_TASK = 5
MAINTENANCE_BATTERY_THRESHOLD = 25


def robot_name(key: int) -> str:
    return f"{NAME_PREFIX}{key}"


def filler(token: str, size: int) -> str:
    """Repeat ``token`` until the result is at least ``size`` bytes long."""

    if size <= 0:
        return ""
    return token * math.ceil(size / len(token.encode("utf-8")))


def placeholder_sku() -> str:
    # Digest of empty input: the same value for every brand in a run.
    return hashlib.sha1().hexdigest().upper()


@dataclass(frozen=True)
class Statistics:
    tasked: int
    battery: int
    under_maintenance: bool

    @classmethod
    def draw(cls, rng: random.Random) -> "Statistics":
        tasked = rng.randrange(MAX_TASKED)
        battery = 100 - tasked * BATTERY_PER_TASK
        return cls(
            tasked=tasked,
            battery=battery,
            under_maintenance=battery > MAINTENANCE_BATTERY_THRESHOLD,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "tasked": self.tasked,
            "battery": self.battery,
            "underMaintenance": self.under_maintenance,
        }


@dataclass(frozen=True)
class Robot:
    name: str
    nickname: str
    description: str
    stats: Statistics
    updated_at: datetime

    @classmethod
    def build(
        cls,
        key: int,
        description: str,
        rng: random.Random,
        *,
        now: Optional[datetime] = None,
    ) -> "Robot":
        name = robot_name(key)
        return cls(
            name=name,
            nickname=name,
            description=description,
            stats=Statistics.draw(rng),
            updated_at=now or datetime.now(timezone.utc),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nickname": self.nickname,
            "description": self.description,
            "stats": self.stats.to_document(),
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True)
class Brand:
    name: str
    sku: str

    def to_document(self) -> Dict[str, Any]:
        return {"name": self.name, "sku": self.sku}
