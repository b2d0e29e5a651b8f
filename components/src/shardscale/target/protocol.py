# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Data structures exchanged between the coordinator, its components and callers."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from shardscale.target.defaults import (
    LAST_EVENT_META_KEY,
    LAST_EVENT_UNKNOWN,
    CoordinatorDefaults,
)


class ShardRef(BaseModel):
    """Identity of one scale group: (resource group, scale set name)"""

    model_config = ConfigDict(frozen=True)

    resource_group: str
    name: str

    @property
    def key(self) -> str:
        return f"{self.resource_group}/{self.name}"


class ShardCapacity(BaseModel):
    shard: ShardRef
    capacity: int = Field(ge=0)


class FleetSnapshot(BaseModel):
    """Current capacity of every shard, in input order"""

    shards: List[ShardCapacity]

    @property
    def total(self) -> int:
        return sum(s.capacity for s in self.shards)


class ScaleDirection(str, Enum):
    """Direction of a scaling plan"""

    GROW = "out"
    SHRINK = "in"
    NONE = "none"


class ScalingPlan(BaseModel):
    direction: ScaleDirection
    magnitude: int = Field(ge=0)
    per_shard_delta: List[int]


class InstanceInfo(BaseModel):
    """One provider instance as returned by a shard listing"""

    instance_id: str
    power_state: Optional[str] = None
    provisioning_state: Optional[str] = None
    last_event_time: Optional[datetime] = None


class StatusCode(BaseModel):
    code: str
    time: Optional[datetime] = None


class InstanceView(BaseModel):
    """
    Health of one shard as reported by the fleet API.

    vm_statuses is the VM-level status summary, statuses the separately
    reported instance-view status collection.
    """

    vm_statuses: List[StatusCode] = Field(default_factory=list)
    statuses: List[StatusCode] = Field(default_factory=list)


class ShardStatus(BaseModel):
    capacity: int = Field(ge=0)
    ready: bool
    # epoch nanoseconds, None when no event time is known
    last_event: Optional[int] = None


class FleetStatus(BaseModel):
    ready: bool
    count: int
    last_event: int = LAST_EVENT_UNKNOWN
    meta: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def build(cls, ready: bool, count: int, last_event: int) -> "FleetStatus":
        return cls(
            ready=ready,
            count=count,
            last_event=last_event,
            meta={LAST_EVENT_META_KEY: str(last_event)},
        )


class ScalingAction(BaseModel):
    """Scaling request handed to the target by an external strategy"""

    count: int
    reason: str = ""
    direction: Optional[str] = None
    error: bool = False
    meta: Dict[str, str] = Field(default_factory=dict)


class ScaleInPhase(str, Enum):
    COLLECTING_IDS = "collecting_ids"
    PRE_DRAIN = "pre_drain"
    DELETING = "deleting"
    POST_DRAIN = "post_drain"
    DONE = "done"
    FAILED = "failed"


class ScaleInResult(BaseModel):
    """Summary of one scale-in run, including partial failures"""

    phase: ScaleInPhase = ScaleInPhase.COLLECTING_IDS
    requested: int = 0
    candidate_ids: List[str] = Field(default_factory=list)
    cleared_ids: List[str] = Field(default_factory=list)
    instance_ids: Dict[str, List[str]] = Field(default_factory=dict)
    deleted_shards: List[str] = Field(default_factory=list)
    failed_shards: List[str] = Field(default_factory=list)
    post_drain_error: Optional[str] = None


class ShardResult(BaseModel):
    """Outcome of one shard executor task"""

    shard: str
    success: bool
    skipped: bool = False
    error: Optional[str] = None


class PluginInfo(BaseModel):
    name: str
    plugin_type: str


class CoordinatorConfig(BaseModel):
    """Runtime knobs shared by all coordinator components."""

    model_config = ConfigDict(frozen=True)

    # Deadline for every single fleet API / scheduler hook call, in seconds
    request_timeout: float = Field(default=CoordinatorDefaults.request_timeout, gt=0)
    dry_run_count: int = CoordinatorDefaults.dry_run_count
