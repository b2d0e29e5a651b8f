# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from abc import ABC, abstractmethod
from typing import Collection, List

from shardscale.target.protocol import InstanceInfo, InstanceView


class FleetAPI(ABC):
    """
    Contract of the external fleet-management API.

    Implementations own authentication and hold long-lived client handles.
    They are shared read-only between concurrent shard tasks, so every method
    must be safe to call concurrently. resize and delete_instances only return
    once the provider reports the long-running operation as finished.
    """

    @abstractmethod
    async def get_capacity(self, resource_group: str, shard_name: str) -> int:
        """Current configured instance count of the shard"""
        raise NotImplementedError

    @abstractmethod
    async def list_instances(
        self, resource_group: str, shard_name: str
    ) -> List[InstanceInfo]:
        raise NotImplementedError

    @abstractmethod
    async def get_instance_view(
        self, resource_group: str, shard_name: str
    ) -> InstanceView:
        raise NotImplementedError

    @abstractmethod
    async def resize(
        self, resource_group: str, shard_name: str, new_capacity: int
    ) -> None:
        """Set the shard capacity to new_capacity (absolute, not a delta)"""
        raise NotImplementedError

    @abstractmethod
    async def delete_instances(
        self, resource_group: str, shard_name: str, instance_ids: Collection[str]
    ) -> None:
        raise NotImplementedError
