# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Multi-shard scaling coordinator."""

import asyncio
import logging
from typing import List, Optional, Sequence

from shardscale.target.capacity import read_snapshot
from shardscale.target.defaults import LAST_EVENT_UNKNOWN
from shardscale.target.executor import ShardExecutor
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.metrics import TargetPrometheusMetrics
from shardscale.target.protocol import (
    CoordinatorConfig,
    FleetStatus,
    ScaleDirection,
    ScaleInResult,
    ScalingPlan,
    ShardRef,
    ShardResult,
)
from shardscale.target.scale_in import ScaleInCorrelator
from shardscale.target.scheduler_hooks import SchedulerHooks
from shardscale.target.status import read_fleet_status
from shardscale.target.utils.delta_planner import plan
from shardscale.target.utils.exceptions import ConfigError, QueryError

logger = logging.getLogger(__name__)


class ShardScaleCoordinator:
    """
    Turns one aggregate instance count into per-shard resizes and deletions.

    Nothing is cached between calls: each scale or status call queries the
    live capacity of every shard it is given. The fleet API and scheduler
    hooks are shared by all concurrent shard tasks and never mutated here.
    """

    def __init__(
        self,
        fleet_api: FleetAPI,
        hooks: SchedulerHooks,
        config: Optional[CoordinatorConfig] = None,
        metrics: Optional[TargetPrometheusMetrics] = None,
    ):
        self.fleet_api = fleet_api
        self.hooks = hooks
        self.config = config or CoordinatorConfig()
        self.metrics = metrics
        self.executor = ShardExecutor(
            fleet_api, self.config.request_timeout, metrics=metrics
        )
        self.scale_in = ScaleInCorrelator(
            fleet_api,
            hooks,
            self.executor,
            self.config.request_timeout,
            metrics=metrics,
        )

    async def scale(
        self, target_total: int, shards: Sequence[ShardRef]
    ) -> Optional[ScalingPlan]:
        """Move the fleet to target_total instances.

        Returns the executed plan, or None for a dry run.
        """
        if target_total == self.config.dry_run_count:
            logger.debug("Dry run requested, skipping scale")
            return None

        shards = _validate_shards(shards)
        if target_total < 0:
            raise ConfigError(f"target count must be >= 0, got {target_total}")

        if self.metrics is not None:
            self.metrics.fleet_target.set(target_total)

        snapshot = await read_snapshot(
            self.fleet_api, shards, self.config.request_timeout
        )
        scaling_plan = plan(snapshot, target_total)

        if scaling_plan.direction == ScaleDirection.GROW:
            await self._scale_out(shards, scaling_plan)
        elif scaling_plan.direction == ScaleDirection.SHRINK:
            await self._scale_in(shards, scaling_plan)
        else:
            logger.info(
                f"Scaling not required, current_count={snapshot.total}, "
                f"strategy_count={target_total}"
            )
        return scaling_plan

    async def _scale_out(
        self, shards: List[ShardRef], scaling_plan: ScalingPlan
    ) -> List[ShardResult]:
        logger.info(
            f"Scaling out {len(shards)} shards to {scaling_plan.magnitude} "
            f"instances, per shard {scaling_plan.per_shard_delta}"
        )
        results = await self.executor.grow(shards, scaling_plan.per_shard_delta)
        logger.info("Successfully performed and verified scaling out")
        return results

    async def _scale_in(
        self, shards: List[ShardRef], scaling_plan: ScalingPlan
    ) -> ScaleInResult:
        logger.info(
            f"Scaling in {scaling_plan.magnitude} instances across {len(shards)} shards"
        )
        result = await self.scale_in.run(shards, scaling_plan.magnitude)
        logger.info("Successfully deleted scale set instances")
        return result

    async def status(self, shards: Sequence[ShardRef]) -> FleetStatus:
        shards = _validate_shards(shards)

        try:
            pool_ready = await asyncio.wait_for(
                self.hooks.is_pool_ready(), timeout=self.config.request_timeout
            )
        except Exception as e:
            raise QueryError(
                f"failed to run scheduler node readiness check: {e}", phase="status"
            ) from e
        if not pool_ready:
            logger.info("Scheduler node pool is not ready")
            return FleetStatus.build(
                ready=False, count=0, last_event=LAST_EVENT_UNKNOWN
            )

        fleet_status = await read_fleet_status(
            self.fleet_api, shards, self.config.request_timeout
        )
        if self.metrics is not None:
            self.metrics.fleet_capacity.set(fleet_status.count)
            self.metrics.fleet_ready.set(1 if fleet_status.ready else 0)
        return fleet_status


def _validate_shards(shards: Sequence[ShardRef]) -> List[ShardRef]:
    shards = list(shards)
    if not shards:
        raise ConfigError("shard list cannot be empty")
    return shards
