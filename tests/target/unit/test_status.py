# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for shard status reduction and fleet status aggregation."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from shardscale.target.defaults import LAST_EVENT_UNKNOWN
from shardscale.target.protocol import (
    InstanceView,
    ShardRef,
    ShardStatus,
    StatusCode,
)
from shardscale.target.status import (
    aggregate,
    read_fleet_status,
    shard_status_from_view,
    to_epoch_nanos,
)
from shardscale.target.utils.exceptions import QueryError

pytestmark = [
    pytest.mark.pre_merge,
    pytest.mark.unit,
    pytest.mark.target,
]

SUCCEEDED = "ProvisioningState/succeeded"
UPDATING = "ProvisioningState/updating"


class TestAggregate:
    def test_example(self):
        result = aggregate(
            [
                ShardStatus(capacity=2, ready=True, last_event=100),
                ShardStatus(capacity=3, ready=False, last_event=200),
            ]
        )
        assert result.ready is False
        assert result.count == 5
        assert result.last_event == 200
        assert result.meta == {"last_event": "200"}

    def test_all_ready(self):
        result = aggregate(
            [
                ShardStatus(capacity=1, ready=True, last_event=300),
                ShardStatus(capacity=4, ready=True, last_event=50),
            ]
        )
        assert result.ready is True
        assert result.count == 5
        assert result.last_event == 300

    def test_is_idempotent_and_order_independent(self):
        statuses = [
            ShardStatus(capacity=2, ready=True, last_event=7),
            ShardStatus(capacity=0, ready=True, last_event=None),
            ShardStatus(capacity=5, ready=False, last_event=3),
        ]
        first = aggregate(statuses)
        assert aggregate(statuses) == first
        assert aggregate(list(reversed(statuses))) == first

    def test_unknown_event_times_use_sentinel(self):
        result = aggregate(
            [
                ShardStatus(capacity=1, ready=True, last_event=None),
                ShardStatus(capacity=1, ready=True, last_event=None),
            ]
        )
        assert result.last_event == LAST_EVENT_UNKNOWN == -(2**63)
        assert result.meta["last_event"] == str(-(2**63))

    def test_empty(self):
        result = aggregate([])
        assert result.ready is True
        assert result.count == 0
        assert result.last_event == LAST_EVENT_UNKNOWN


class TestShardStatusFromView:
    def test_all_succeeded(self):
        t1 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        t2 = t1 + timedelta(minutes=5)
        view = InstanceView(
            vm_statuses=[StatusCode(code=SUCCEEDED)],
            statuses=[
                StatusCode(code=SUCCEEDED, time=t2),
                StatusCode(code=SUCCEEDED, time=t1),
            ],
        )
        status = shard_status_from_view(3, view)
        assert status.ready is True
        assert status.capacity == 3
        assert status.last_event == to_epoch_nanos(t2)

    def test_vm_status_not_succeeded(self):
        view = InstanceView(
            vm_statuses=[StatusCode(code=UPDATING)],
            statuses=[StatusCode(code=SUCCEEDED)],
        )
        assert shard_status_from_view(1, view).ready is False

    def test_instance_view_status_not_succeeded(self):
        view = InstanceView(
            vm_statuses=[StatusCode(code=SUCCEEDED)],
            statuses=[StatusCode(code=SUCCEEDED), StatusCode(code=UPDATING)],
        )
        assert shard_status_from_view(1, view).ready is False

    def test_no_event_times(self):
        view = InstanceView(
            vm_statuses=[StatusCode(code=SUCCEEDED)],
            statuses=[StatusCode(code=SUCCEEDED)],
        )
        assert shard_status_from_view(2, view).last_event is None


def test_to_epoch_nanos():
    assert to_epoch_nanos(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0
    ts = datetime(1970, 1, 1, 0, 0, 1, 500, tzinfo=timezone.utc)
    assert to_epoch_nanos(ts) == 1_000_500_000
    # naive timestamps are read as UTC
    assert to_epoch_nanos(datetime(1970, 1, 2)) == 86_400 * 1_000_000_000


@pytest.mark.asyncio
async def test_read_fleet_status_queries_every_shard():
    shards = [
        ShardRef(resource_group="rg", name="a"),
        ShardRef(resource_group="rg", name="b"),
    ]
    capacities = {"a": 2, "b": 3}
    events = {
        "a": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "b": datetime(2024, 1, 2, tzinfo=timezone.utc),
    }

    async def get_capacity(resource_group, name):
        return capacities[name]

    async def get_instance_view(resource_group, name):
        return InstanceView(
            vm_statuses=[StatusCode(code=SUCCEEDED)],
            statuses=[StatusCode(code=SUCCEEDED, time=events[name])],
        )

    api = MagicMock()
    api.get_capacity = AsyncMock(side_effect=get_capacity)
    api.get_instance_view = AsyncMock(side_effect=get_instance_view)

    result = await read_fleet_status(api, shards, timeout=5)

    assert result.ready is True
    assert result.count == 5
    assert result.last_event == to_epoch_nanos(events["b"])


@pytest.mark.asyncio
async def test_read_fleet_status_fails_on_shard_error():
    api = MagicMock()
    api.get_capacity = AsyncMock(return_value=1)
    api.get_instance_view = AsyncMock(side_effect=RuntimeError("throttled"))

    with pytest.raises(QueryError, match="throttled") as exc_info:
        await read_fleet_status(
            api, [ShardRef(resource_group="rg", name="a")], timeout=5
        )
    assert exc_info.value.shard == "rg/a"
    assert exc_info.value.phase == "status"
