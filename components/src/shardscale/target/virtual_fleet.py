# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
In-memory fleet and scheduler for running the coordinator without a cloud.

The virtual fleet keeps an instance table per shard and applies resizes and
deletions to it directly; the virtual scheduler clears the first N drain
candidates it is offered. Both record the calls they receive.
"""

import logging
from datetime import datetime, timezone
from typing import Collection, Dict, List, Sequence, Tuple

from shardscale.target.defaults import (
    POWER_STATE_RUNNING,
    PROVISIONING_STATE_SUCCEEDED,
)
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.protocol import InstanceInfo, InstanceView, StatusCode
from shardscale.target.scheduler_hooks import SchedulerHooks

logger = logging.getLogger(__name__)


class VirtualShard:
    def __init__(self, capacity: int = 0):
        self.instances: Dict[str, InstanceInfo] = {}
        self._next_id = 0
        self.last_event = None
        self._grow_to(capacity)

    @property
    def capacity(self) -> int:
        return len(self.instances)

    def _grow_to(self, capacity: int):
        while len(self.instances) < capacity:
            instance_id = str(self._next_id)
            self._next_id += 1
            self.instances[instance_id] = InstanceInfo(
                instance_id=instance_id,
                power_state=POWER_STATE_RUNNING,
                provisioning_state=PROVISIONING_STATE_SUCCEEDED,
            )

    def resize(self, capacity: int):
        self._grow_to(capacity)
        # shrinking through resize drops the newest instances first
        for instance_id in sorted(self.instances, key=int, reverse=True):
            if len(self.instances) <= capacity:
                break
            del self.instances[instance_id]
        self.last_event = datetime.now(timezone.utc)

    def delete(self, instance_ids: Collection[str]):
        unknown = [i for i in instance_ids if i not in self.instances]
        if unknown:
            raise ValueError(f"unknown instance ids {unknown}")
        for instance_id in instance_ids:
            del self.instances[instance_id]
        self.last_event = datetime.now(timezone.utc)


class VirtualFleet(FleetAPI):
    def __init__(self):
        self.shards: Dict[Tuple[str, str], VirtualShard] = {}
        self.calls: List[Tuple] = []

    def add_shard(
        self, resource_group: str, shard_name: str, capacity: int = 0
    ) -> VirtualShard:
        shard = VirtualShard(capacity)
        self.shards[(resource_group, shard_name)] = shard
        return shard

    def _shard(self, resource_group: str, shard_name: str) -> VirtualShard:
        try:
            return self.shards[(resource_group, shard_name)]
        except KeyError:
            raise LookupError(
                f"scale set {shard_name} not found in resource group {resource_group}"
            ) from None

    async def get_capacity(self, resource_group: str, shard_name: str) -> int:
        self.calls.append(("get_capacity", resource_group, shard_name))
        return self._shard(resource_group, shard_name).capacity

    async def list_instances(
        self, resource_group: str, shard_name: str
    ) -> List[InstanceInfo]:
        self.calls.append(("list_instances", resource_group, shard_name))
        return list(self._shard(resource_group, shard_name).instances.values())

    async def get_instance_view(
        self, resource_group: str, shard_name: str
    ) -> InstanceView:
        self.calls.append(("get_instance_view", resource_group, shard_name))
        shard = self._shard(resource_group, shard_name)
        statuses = [
            StatusCode(code=i.provisioning_state or "", time=i.last_event_time)
            for i in shard.instances.values()
        ]
        statuses.append(
            StatusCode(code=PROVISIONING_STATE_SUCCEEDED, time=shard.last_event)
        )
        return InstanceView(
            vm_statuses=[StatusCode(code=PROVISIONING_STATE_SUCCEEDED)],
            statuses=statuses,
        )

    async def resize(
        self, resource_group: str, shard_name: str, new_capacity: int
    ) -> None:
        self.calls.append(("resize", resource_group, shard_name, new_capacity))
        self._shard(resource_group, shard_name).resize(new_capacity)
        logger.debug(f"virtual: {resource_group}/{shard_name} resized to {new_capacity}")

    async def delete_instances(
        self, resource_group: str, shard_name: str, instance_ids: Collection[str]
    ) -> None:
        ids = list(instance_ids)
        self.calls.append(("delete_instances", resource_group, shard_name, ids))
        self._shard(resource_group, shard_name).delete(ids)
        logger.debug(f"virtual: deleted {ids} from {resource_group}/{shard_name}")


class VirtualScheduler(SchedulerHooks):
    def __init__(self, pool_ready: bool = True):
        self.pool_ready = pool_ready
        self.pre_calls: List[Tuple[List[str], int]] = []
        self.post_calls: List[List[str]] = []

    async def pre_scale_in(self, remote_ids: Sequence[str], num: int) -> List[str]:
        self.pre_calls.append((list(remote_ids), num))
        return list(remote_ids)[:num]

    async def post_scale_in(self, cleared_ids: Sequence[str]) -> None:
        self.post_calls.append(list(cleared_ids))

    async def is_pool_ready(self) -> bool:
        return self.pool_ready
