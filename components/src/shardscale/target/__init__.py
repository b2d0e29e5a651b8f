# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
shardscale target - scale a fleet of scale-group shards as one pool.

Architecture:
- An external strategy decides the desired total instance count
- The coordinator splits it over the shards and resizes them concurrently
- Scale in is coordinated with the workload scheduler so instances are
  drained before they are deleted
- Status merges the health of every shard into one answer
"""

__all__ = [
    "FleetAPI",
    "SchedulerHooks",
    "ShardScaleCoordinator",
    "ShardedTargetPlugin",
    "ShardRef",
    "ScalingAction",
    "FleetStatus",
    "VirtualFleet",
    "VirtualScheduler",
]

from shardscale.target.coordinator import ShardScaleCoordinator
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.protocol import FleetStatus, ScalingAction, ShardRef
from shardscale.target.scheduler_hooks import SchedulerHooks
from shardscale.target.target_plugin import ShardedTargetPlugin
from shardscale.target.virtual_fleet import VirtualFleet, VirtualScheduler
