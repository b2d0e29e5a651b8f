# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Applies per-shard deltas against the fleet API.

Every shard runs as its own task and every task is joined before the
operation reports back. A failing shard never stops its siblings: failures
are collected and raised together as one ExecutionError at the end.
"""

import asyncio
import logging
from typing import (
    Awaitable,
    Callable,
    Collection,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
)

from shardscale.target.fleet_api import FleetAPI
from shardscale.target.metrics import TargetPrometheusMetrics
from shardscale.target.protocol import ShardRef, ShardResult
from shardscale.target.utils.exceptions import (
    ExecutionError,
    InvalidInputError,
    is_deadline_exceeded,
)

logger = logging.getLogger(__name__)


class ShardExecutor:
    def __init__(
        self,
        fleet_api: FleetAPI,
        request_timeout: float,
        metrics: Optional[TargetPrometheusMetrics] = None,
    ):
        self.fleet_api = fleet_api
        self.request_timeout = request_timeout
        self.metrics = metrics

    async def grow_shard(self, shard: ShardRef, new_capacity: int) -> bool:
        """Resize shard to new_capacity. Returns False when nothing had to be done."""
        if new_capacity <= 0:
            logger.debug(
                f"No new instance needed for {shard.key} (desired_count={new_capacity})"
            )
            return False

        logger.info(f"Resizing scale set {shard.key} to desired_count={new_capacity}")
        await asyncio.wait_for(
            self.fleet_api.resize(shard.resource_group, shard.name, new_capacity),
            timeout=self.request_timeout,
        )
        return True

    async def shrink_shard(
        self, shard: ShardRef, instance_ids: Collection[str]
    ) -> bool:
        """Delete exactly instance_ids from shard. Returns False for an empty set."""
        if not instance_ids:
            logger.debug(f"No instance deletion needed for {shard.key}")
            return False

        logger.info(f"Deleting instances {sorted(instance_ids)} from {shard.key}")
        await asyncio.wait_for(
            self.fleet_api.delete_instances(
                shard.resource_group, shard.name, list(instance_ids)
            ),
            timeout=self.request_timeout,
        )
        return True

    async def grow(
        self, shards: Sequence[ShardRef], deltas: Sequence[int]
    ) -> List[ShardResult]:
        if len(shards) != len(deltas):
            raise InvalidInputError(
                f"{len(deltas)} deltas for {len(shards)} shards", phase="scale_out"
            )
        return await self._run_all(
            "scale_out",
            shards,
            [
                (lambda shard=shard, count=count: self.grow_shard(shard, count))
                for shard, count in zip(shards, deltas)
            ],
        )

    async def shrink(
        self, shards: Sequence[ShardRef], instance_ids: Mapping[str, Collection[str]]
    ) -> List[ShardResult]:
        """instance_ids is keyed by shard name, as produced by the correlator."""
        return await self._run_all(
            "scale_in",
            shards,
            [
                (
                    lambda shard=shard: self.shrink_shard(
                        shard, instance_ids.get(shard.name, [])
                    )
                )
                for shard in shards
            ],
        )

    async def _run_all(
        self,
        phase: str,
        shards: Sequence[ShardRef],
        calls: Sequence[Callable[[], Awaitable[bool]]],
    ) -> List[ShardResult]:
        tasks = [asyncio.create_task(call()) for call in calls]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        results: List[ShardResult] = []
        failures: Dict[str, BaseException] = {}
        succeeded: List[str] = []
        for shard, outcome in zip(shards, outcomes):
            if isinstance(outcome, BaseException):
                if is_deadline_exceeded(outcome):
                    outcome = TimeoutError(
                        f"no completion within {self.request_timeout}s"
                    )
                logger.error(f"{phase} failed for {shard.key}: {outcome!r}")
                failures[shard.key] = outcome
                results.append(
                    ShardResult(shard=shard.key, success=False, error=str(outcome))
                )
            else:
                if outcome:
                    succeeded.append(shard.key)
                results.append(
                    ShardResult(shard=shard.key, success=True, skipped=not outcome)
                )
            if self.metrics is not None and not results[-1].skipped:
                self.metrics.record_shard_operation(phase, results[-1].success)

        if failures:
            raise ExecutionError(phase, failures, succeeded)
        return results
