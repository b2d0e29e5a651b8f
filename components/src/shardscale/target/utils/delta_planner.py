# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import List, Tuple

from shardscale.target.protocol import FleetSnapshot, ScaleDirection, ScalingPlan
from shardscale.target.utils.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def calculate_scale_direction(
    current_total: int, target_total: int
) -> Tuple[int, ScaleDirection]:
    """Return (magnitude, direction) for moving the fleet to target_total.

    Shrinking yields the number of instances to remove. Growing yields the
    target itself: the resize call takes the desired capacity, not a delta.
    """
    if target_total < current_total:
        return current_total - target_total, ScaleDirection.SHRINK
    if target_total > current_total:
        return target_total, ScaleDirection.GROW
    return 0, ScaleDirection.NONE


def split_evenly(magnitude: int, shard_count: int) -> List[int]:
    """Split magnitude over shard_count shards, earliest shards take the remainder."""
    if shard_count <= 0:
        raise InvalidInputError(
            f"cannot split {magnitude} over {shard_count} shards", phase="plan"
        )
    if magnitude < 0:
        raise InvalidInputError(f"magnitude must be >= 0, got {magnitude}", phase="plan")

    base, remainder = divmod(magnitude, shard_count)
    return [base + 1 if idx < remainder else base for idx in range(shard_count)]


def plan(snapshot: FleetSnapshot, target_total: int) -> ScalingPlan:
    shard_count = len(snapshot.shards)
    if shard_count == 0:
        raise InvalidInputError("fleet snapshot has no shards", phase="plan")

    magnitude, direction = calculate_scale_direction(snapshot.total, target_total)
    if direction == ScaleDirection.NONE:
        deltas = [0] * shard_count
    else:
        deltas = split_evenly(magnitude, shard_count)

    logger.debug(
        f"Scale plan: current={snapshot.total}, target={target_total}, "
        f"direction={direction.value}, magnitude={magnitude}, deltas={deltas}"
    )
    return ScalingPlan(direction=direction, magnitude=magnitude, per_shard_delta=deltas)
