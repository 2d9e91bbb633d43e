from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    status: str
    score: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    leaderboard: List["LeaderboardEntry"]
    powerups: List["ActivePowerUp"]
    controlled_id: Optional[int]
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class LeaderboardEntry:
    rank: int
    agent_id: int
    name: str
    radius: float
    is_controlled: bool


@dataclass(slots=True)
class ActivePowerUp:
    agent_id: int
    kind: str
    remaining_seconds: float


@dataclass(slots=True)
class SnapshotMetadata:
    half_width: float
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
