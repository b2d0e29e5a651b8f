# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for ShardScaleCoordinator against the in-memory virtual fleet."""

from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

from shardscale.target.coordinator import ShardScaleCoordinator
from shardscale.target.defaults import LAST_EVENT_UNKNOWN
from shardscale.target.metrics import TargetPrometheusMetrics
from shardscale.target.protocol import CoordinatorConfig, ScaleDirection, ShardRef
from shardscale.target.utils.exceptions import (
    ConfigError,
    ExecutionError,
    QueryError,
)
from shardscale.target.virtual_fleet import VirtualFleet, VirtualScheduler

pytestmark = [
    pytest.mark.pre_merge,
    pytest.mark.unit,
    pytest.mark.target,
]

MUTATING = ("resize", "delete_instances")


def _fleet(capacities):
    fleet = VirtualFleet()
    shards = []
    for name, capacity in capacities.items():
        fleet.add_shard("rg", name, capacity)
        shards.append(ShardRef(resource_group="rg", name=name))
    return fleet, shards


def _mutations(fleet):
    return [c for c in fleet.calls if c[0] in MUTATING]


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def config():
    return CoordinatorConfig(request_timeout=5)


@pytest.mark.asyncio
async def test_dry_run_makes_no_calls(scheduler, config):
    fleet, shards = _fleet({"web": 2, "api": 2})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    assert await coordinator.scale(-1, shards) is None
    assert fleet.calls == []
    assert scheduler.pre_calls == []


@pytest.mark.asyncio
async def test_no_change_only_reads(scheduler, config):
    fleet, shards = _fleet({"web": 2, "api": 2})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    scaling_plan = await coordinator.scale(4, shards)

    assert scaling_plan.direction == ScaleDirection.NONE
    assert _mutations(fleet) == []
    assert [c[0] for c in fleet.calls] == ["get_capacity", "get_capacity"]
    assert scheduler.pre_calls == []


@pytest.mark.asyncio
async def test_grow_resizes_each_shard(scheduler, config):
    fleet, shards = _fleet({"web": 3, "api": 2, "db": 2})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    scaling_plan = await coordinator.scale(10, shards)

    assert scaling_plan.direction == ScaleDirection.GROW
    assert scaling_plan.per_shard_delta == [4, 3, 3]
    assert sorted(_mutations(fleet)) == sorted(
        [
            ("resize", "rg", "web", 4),
            ("resize", "rg", "api", 3),
            ("resize", "rg", "db", 3),
        ]
    )
    assert sum(s.capacity for s in fleet.shards.values()) == 10


@pytest.mark.asyncio
async def test_grow_passes_target_split_not_difference(scheduler, config):
    # current 3, target 8: each shard gets half of 8, not half of the 5 missing
    fleet, shards = _fleet({"web": 2, "api": 1})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    scaling_plan = await coordinator.scale(8, shards)

    assert scaling_plan.magnitude == 8
    assert sorted(_mutations(fleet)) == [
        ("resize", "rg", "api", 4),
        ("resize", "rg", "web", 4),
    ]


@pytest.mark.asyncio
async def test_shrink_drains_then_deletes(scheduler, config):
    fleet, shards = _fleet({"web": 4, "api": 3, "db": 3})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    scaling_plan = await coordinator.scale(7, shards)

    assert scaling_plan.direction == ScaleDirection.SHRINK
    assert scaling_plan.magnitude == 3
    candidates, num = scheduler.pre_calls[0]
    assert num == 3
    assert candidates[:4] == ["web_0", "web_1", "web_2", "web_3"]
    assert _mutations(fleet) == [("delete_instances", "rg", "web", ["0", "1", "2"])]
    assert scheduler.post_calls == [["web_0", "web_1", "web_2"]]
    assert sum(s.capacity for s in fleet.shards.values()) == 7


@pytest.mark.asyncio
async def test_shrink_never_resizes(config):
    fleet, shards = _fleet({"web": 2, "api": 2})
    scheduler = VirtualScheduler()
    scheduler.pre_scale_in = AsyncMock(return_value=["api_1"])
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    await coordinator.scale(3, shards)

    assert _mutations(fleet) == [("delete_instances", "rg", "api", ["1"])]


@pytest.mark.asyncio
async def test_grow_partial_failure_reports_shard(scheduler, config):
    fleet, shards = _fleet({"web": 1, "api": 1})
    original_resize = fleet.resize

    async def resize(resource_group, name, capacity):
        if name == "api":
            raise RuntimeError("quota exceeded")
        await original_resize(resource_group, name, capacity)

    fleet.resize = resize
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    with pytest.raises(ExecutionError) as exc_info:
        await coordinator.scale(6, shards)

    assert exc_info.value.failed_shards == ["rg/api"]
    assert exc_info.value.succeeded == ["rg/web"]
    assert fleet.shards[("rg", "web")].capacity == 3


@pytest.mark.asyncio
async def test_capacity_query_failure_aborts(scheduler, config):
    fleet, _ = _fleet({"web": 1})
    shards = [
        ShardRef(resource_group="rg", name="web"),
        ShardRef(resource_group="rg", name="missing"),
    ]
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    with pytest.raises(QueryError) as exc_info:
        await coordinator.scale(5, shards)

    assert exc_info.value.shard == "rg/missing"
    assert _mutations(fleet) == []


@pytest.mark.asyncio
async def test_empty_shard_list_rejected(scheduler, config):
    coordinator = ShardScaleCoordinator(VirtualFleet(), scheduler, config=config)
    with pytest.raises(ConfigError):
        await coordinator.scale(3, [])
    with pytest.raises(ConfigError):
        await coordinator.status([])


@pytest.mark.asyncio
async def test_negative_target_rejected(scheduler, config):
    fleet, shards = _fleet({"web": 1})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)
    with pytest.raises(ConfigError):
        await coordinator.scale(-5, shards)
    assert fleet.calls == []


@pytest.mark.asyncio
async def test_status_aggregates_shards(scheduler, config):
    fleet, shards = _fleet({"web": 2, "api": 3})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    status = await coordinator.status(shards)

    assert status.ready is True
    assert status.count == 5
    # no shard has been touched yet, so no event time is known
    assert status.last_event == LAST_EVENT_UNKNOWN


@pytest.mark.asyncio
async def test_status_reports_last_event_after_scale(scheduler, config):
    fleet, shards = _fleet({"web": 1, "api": 1})
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    await coordinator.scale(4, shards)
    status = await coordinator.status(shards)

    assert status.count == 4
    assert status.last_event > 0
    assert status.meta["last_event"] == str(status.last_event)


@pytest.mark.asyncio
async def test_status_pool_not_ready_short_circuits(config):
    fleet, shards = _fleet({"web": 2})
    coordinator = ShardScaleCoordinator(
        fleet, VirtualScheduler(pool_ready=False), config=config
    )

    status = await coordinator.status(shards)

    assert status.ready is False
    assert status.count == 0
    assert status.last_event == LAST_EVENT_UNKNOWN
    assert fleet.calls == []


@pytest.mark.asyncio
async def test_status_pool_check_failure(config):
    fleet, shards = _fleet({"web": 2})
    scheduler = VirtualScheduler()
    scheduler.is_pool_ready = AsyncMock(side_effect=RuntimeError("unreachable"))
    coordinator = ShardScaleCoordinator(fleet, scheduler, config=config)

    with pytest.raises(QueryError, match="unreachable"):
        await coordinator.status(shards)


@pytest.mark.asyncio
async def test_metrics_track_target_and_status(scheduler, config):
    registry = CollectorRegistry()
    metrics = TargetPrometheusMetrics(registry=registry)
    fleet, shards = _fleet({"web": 1, "api": 1})
    coordinator = ShardScaleCoordinator(
        fleet, scheduler, config=config, metrics=metrics
    )

    await coordinator.scale(6, shards)
    await coordinator.status(shards)

    assert registry.get_sample_value("shardscale_fleet_target") == 6.0
    assert registry.get_sample_value("shardscale_fleet_capacity") == 6.0
    assert registry.get_sample_value("shardscale_fleet_ready") == 1.0
    assert (
        registry.get_sample_value(
            "shardscale_shard_operations_total",
            {"phase": "scale_out", "outcome": "success"},
        )
        == 2.0
    )
