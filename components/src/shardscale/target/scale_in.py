# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Scale-in with scheduler-coordinated draining.

Phases run strictly in order:
1. collect the running instances of every shard as remote ids
2. ask the scheduler to drain up to N of them (pre scale-in hook)
3. map the cleared remote ids back to per-shard instance ids
4. delete the instances, one task per shard
5. let the scheduler release its bookkeeping (post scale-in hook)

Errors before step 4 abort the run without touching the fleet. Errors in
steps 4 and 5 are collected; the run still goes through step 5 and the
summary distinguishes the shards that did delete from those that failed.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from shardscale.target.capacity import collect_remote_ids
from shardscale.target.executor import ShardExecutor
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.metrics import TargetPrometheusMetrics
from shardscale.target.protocol import ScaleInPhase, ScaleInResult, ShardRef
from shardscale.target.scheduler_hooks import SchedulerHooks
from shardscale.target.utils.exceptions import (
    DrainError,
    ExecutionError,
    MalformedIDError,
    ShardScaleError,
    is_deadline_exceeded,
)
from shardscale.target.utils.remote_id import correlate_remote_ids

logger = logging.getLogger(__name__)


class ScaleInCorrelator:
    def __init__(
        self,
        fleet_api: FleetAPI,
        hooks: SchedulerHooks,
        executor: ShardExecutor,
        request_timeout: float,
        metrics: Optional[TargetPrometheusMetrics] = None,
    ):
        self.fleet_api = fleet_api
        self.hooks = hooks
        self.executor = executor
        self.request_timeout = request_timeout
        self.metrics = metrics

    async def run(self, shards: Sequence[ShardRef], num: int) -> ScaleInResult:
        """Remove num instances from the fleet. Returns the run summary.

        Raises:
            QueryError: a shard listing failed, nothing was drained
            DrainError: the pre hook failed (nothing deleted) or the post hook
                failed after deletion
            MalformedIDError: the pre hook returned an id that maps to no shard or
                was never offered as a candidate
            ExecutionError: at least one shard delete failed
        """
        result = ScaleInResult(requested=num)
        try:
            await self._collect(shards, result)
            await self._pre_drain(result)
            self._correlate(shards, result)
        except ShardScaleError as e:
            logger.error(f"Scale in aborted during {result.phase.value}: {e}")
            result.phase = ScaleInPhase.FAILED
            e.result = result
            raise

        delete_error = await self._delete(shards, result)
        post_drain_error = await self._post_drain(result)

        if delete_error is not None:
            result.phase = ScaleInPhase.FAILED
            delete_error.result = result
            raise delete_error

        result.phase = ScaleInPhase.DONE
        if post_drain_error is not None:
            post_drain_error.result = result
            raise post_drain_error

        logger.info(
            f"Scale in finished: removed {len(result.cleared_ids)}/{num} "
            f"requested instances from {result.deleted_shards}"
        )
        return result

    async def _collect(self, shards: Sequence[ShardRef], result: ScaleInResult):
        result.phase = ScaleInPhase.COLLECTING_IDS
        result.candidate_ids = await collect_remote_ids(
            self.fleet_api, shards, self.request_timeout
        )

    async def _pre_drain(self, result: ScaleInResult):
        result.phase = ScaleInPhase.PRE_DRAIN
        logger.debug(f"Running pre scale in tasks, IDs={result.candidate_ids}")
        try:
            cleared = await asyncio.wait_for(
                self.hooks.pre_scale_in(list(result.candidate_ids), result.requested),
                timeout=self.request_timeout,
            )
        except Exception as e:
            if is_deadline_exceeded(e):
                raise DrainError(
                    f"pre scale in tasks timed out after {self.request_timeout}s",
                    phase=ScaleInPhase.PRE_DRAIN.value,
                ) from e
            raise DrainError(
                f"failed to perform pre scale in tasks: {e}",
                phase=ScaleInPhase.PRE_DRAIN.value,
            ) from e

        result.cleared_ids = list(cleared or [])
        if self.metrics is not None:
            self.metrics.scale_in_cleared.inc(len(result.cleared_ids))
        if len(result.cleared_ids) < result.requested:
            logger.warning(
                f"Scheduler cleared {len(result.cleared_ids)} of "
                f"{result.requested} requested instances"
            )

    def _correlate(self, shards: Sequence[ShardRef], result: ScaleInResult):
        # only running instances were offered, anything else must not be deleted
        offered = {remote_id.casefold() for remote_id in result.candidate_ids}
        for remote_id in result.cleared_ids:
            if remote_id.casefold() not in offered:
                raise MalformedIDError(remote_id, "not among the drain candidates")

        result.instance_ids = correlate_remote_ids(
            result.cleared_ids, [shard.name for shard in shards]
        )

    async def _delete(
        self, shards: Sequence[ShardRef], result: ScaleInResult
    ) -> Optional[ExecutionError]:
        result.phase = ScaleInPhase.DELETING
        try:
            outcomes = await self.executor.shrink(shards, result.instance_ids)
        except ExecutionError as e:
            result.deleted_shards = list(e.succeeded)
            result.failed_shards = e.failed_shards
            return e

        result.deleted_shards = [o.shard for o in outcomes if not o.skipped]
        return None

    async def _post_drain(self, result: ScaleInResult) -> Optional[DrainError]:
        result.phase = ScaleInPhase.POST_DRAIN
        logger.debug(f"Running post scale in tasks, IDs={result.cleared_ids}")
        try:
            await asyncio.wait_for(
                self.hooks.post_scale_in(list(result.cleared_ids)),
                timeout=self.request_timeout,
            )
        except Exception as e:
            cause = e
            if is_deadline_exceeded(e):
                cause = TimeoutError(f"no completion within {self.request_timeout}s")
            logger.error(f"Failed to perform post scale in tasks: {cause}")
            result.post_drain_error = str(cause)
            error = DrainError(
                f"failed to perform post scale in tasks: {cause}",
                phase=ScaleInPhase.POST_DRAIN.value,
            )
            error.__cause__ = cause
            return error
        return None


def summarize(result: ScaleInResult) -> List[str]:
    """Human readable lines describing a scale in run, for logs and CLI output."""
    lines = [
        f"phase: {result.phase.value}",
        f"requested: {result.requested}",
        f"cleared: {len(result.cleared_ids)}",
    ]
    for shard_name, ids in result.instance_ids.items():
        lines.append(f"  {shard_name}: {', '.join(ids)}")
    if result.failed_shards:
        lines.append(f"failed shards: {', '.join(result.failed_shards)}")
    if result.post_drain_error:
        lines.append(f"post drain error: {result.post_drain_error}")
    return lines
