# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

from shardscale.target.capacity import read_capacity
from shardscale.target.defaults import (
    LAST_EVENT_UNKNOWN,
    PROVISIONING_STATE_SUCCEEDED,
)
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.protocol import (
    FleetStatus,
    InstanceView,
    ShardRef,
    ShardStatus,
)
from shardscale.target.utils.exceptions import QueryError, is_deadline_exceeded

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_nanos(ts: datetime) -> int:
    # naive timestamps from the provider are UTC
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + (
        delta.microseconds * 1_000
    )


def shard_status_from_view(capacity: int, view: InstanceView) -> ShardStatus:
    """Reduce one shard's instance view to a ShardStatus.

    The shard is not ready if either the VM-level summary or the instance-view
    statuses report anything but a succeeded provisioning state. The last event
    is the latest status time; statuses of activities still running often have
    none.
    """
    ready = True
    for status in view.vm_statuses:
        if status.code != PROVISIONING_STATE_SUCCEEDED:
            ready = False

    last_event: Optional[int] = None
    for status in view.statuses:
        if status.code != PROVISIONING_STATE_SUCCEEDED:
            ready = False
        if status.time is not None:
            current = to_epoch_nanos(status.time)
            if last_event is None or current > last_event:
                last_event = current

    return ShardStatus(capacity=capacity, ready=ready, last_event=last_event)


def aggregate(statuses: Sequence[ShardStatus]) -> FleetStatus:
    """Merge per-shard statuses: ready is an AND, count a SUM, last event a MAX."""
    ready = True
    total = 0
    latest = LAST_EVENT_UNKNOWN
    for status in statuses:
        total += status.capacity
        if ready and not status.ready:
            ready = False
        if status.last_event is not None and status.last_event > latest:
            latest = status.last_event
    return FleetStatus.build(ready=ready, count=total, last_event=latest)


async def read_shard_status(
    fleet_api: FleetAPI, shard: ShardRef, timeout: float
) -> ShardStatus:
    capacity = await read_capacity(fleet_api, shard, timeout)
    try:
        view = await asyncio.wait_for(
            fleet_api.get_instance_view(shard.resource_group, shard.name),
            timeout=timeout,
        )
    except Exception as e:
        if is_deadline_exceeded(e):
            raise QueryError(
                f"instance view query timed out after {timeout}s",
                shard=shard.key,
                phase="status",
            ) from e
        raise QueryError(
            f"failed to get instance view: {e}", shard=shard.key, phase="status"
        ) from e

    status = shard_status_from_view(capacity, view)
    logger.debug(
        f"{shard.key}: capacity={status.capacity}, ready={status.ready}, "
        f"last_event={status.last_event}"
    )
    return status


async def read_fleet_status(
    fleet_api: FleetAPI, shards: Sequence[ShardRef], timeout: float
) -> FleetStatus:
    results = await asyncio.gather(
        *(read_shard_status(fleet_api, shard, timeout) for shard in shards),
        return_exceptions=True,
    )
    statuses = []
    for shard, result in zip(shards, results):
        if isinstance(result, BaseException):
            logger.error(f"Status query failed for {shard.key}: {result}")
            raise result
        statuses.append(result)
    return aggregate(statuses)
