# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Shard capacity reader: live capacity and drain candidates of each shard."""

import asyncio
import logging
from typing import List, Sequence

from shardscale.target.defaults import POWER_STATE_RUNNING
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.protocol import (
    FleetSnapshot,
    InstanceInfo,
    ShardCapacity,
    ShardRef,
)
from shardscale.target.utils.exceptions import QueryError, is_deadline_exceeded
from shardscale.target.utils.remote_id import format_remote_id

logger = logging.getLogger(__name__)


async def read_capacity(fleet_api: FleetAPI, shard: ShardRef, timeout: float) -> int:
    try:
        capacity = await asyncio.wait_for(
            fleet_api.get_capacity(shard.resource_group, shard.name), timeout=timeout
        )
    except Exception as e:
        if is_deadline_exceeded(e):
            raise QueryError(
                f"capacity query timed out after {timeout}s",
                shard=shard.key,
                phase="query",
            ) from e
        raise QueryError(
            f"failed to get capacity: {e}", shard=shard.key, phase="query"
        ) from e

    if capacity is None or capacity < 0:
        raise QueryError(
            f"invalid capacity {capacity!r}", shard=shard.key, phase="query"
        )
    return int(capacity)


async def read_snapshot(
    fleet_api: FleetAPI, shards: Sequence[ShardRef], timeout: float
) -> FleetSnapshot:
    """Query every shard's capacity concurrently, preserving input order."""
    results = await asyncio.gather(
        *(read_capacity(fleet_api, shard, timeout) for shard in shards),
        return_exceptions=True,
    )

    capacities = []
    for shard, result in zip(shards, results):
        if isinstance(result, BaseException):
            logger.error(f"Capacity query failed for {shard.key}: {result}")
            raise result
        capacities.append(ShardCapacity(shard=shard, capacity=result))

    snapshot = FleetSnapshot(shards=capacities)
    logger.debug(
        f"Fleet snapshot: total={snapshot.total}, "
        f"{[(c.shard.name, c.capacity) for c in capacities]}"
    )
    return snapshot


def is_running(instance: InstanceInfo) -> bool:
    """Only instances whose power state is exactly running can be drained."""
    return instance.power_state == POWER_STATE_RUNNING


async def collect_remote_ids(
    fleet_api: FleetAPI, shards: Sequence[ShardRef], timeout: float
) -> List[str]:
    """List running instances of every shard, in shard order, as remote ids."""
    remote_ids: List[str] = []
    for shard in shards:
        logger.debug(f"Collecting instance IDs of {shard.key}")
        try:
            instances = await asyncio.wait_for(
                fleet_api.list_instances(shard.resource_group, shard.name),
                timeout=timeout,
            )
        except Exception as e:
            if is_deadline_exceeded(e):
                raise QueryError(
                    f"instance listing timed out after {timeout}s",
                    shard=shard.key,
                    phase="collecting_ids",
                ) from e
            raise QueryError(
                f"failed to list instances: {e}",
                shard=shard.key,
                phase="collecting_ids",
            ) from e

        running = [i for i in instances if is_running(i)]
        logger.debug(
            f"{shard.key}: {len(running)}/{len(instances)} instances running"
        )
        remote_ids.extend(format_remote_id(shard.name, i.instance_id) for i in running)
    return remote_ids
