# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Contract of the workload scheduler that drains nodes before termination."""

from abc import ABC, abstractmethod
from typing import List, Mapping, Optional, Sequence

from shardscale.target.defaults import NODE_NAME_ATTRIBUTE


class SchedulerHooks(ABC):
    @abstractmethod
    async def pre_scale_in(self, remote_ids: Sequence[str], num: int) -> List[str]:
        """
        Pick and drain up to num nodes among remote_ids.

        Returns the remote ids cleared for termination. The list may be shorter
        than num when scheduling constraints block some drains.
        """
        raise NotImplementedError

    @abstractmethod
    async def post_scale_in(self, cleared_ids: Sequence[str]) -> None:
        """Release scheduler bookkeeping for nodes that were scaled in"""
        raise NotImplementedError

    @abstractmethod
    async def is_pool_ready(self) -> bool:
        """Whether the scheduler considers the node pool stable"""
        raise NotImplementedError


def node_remote_id(
    attributes: Mapping[str, str], meta: Optional[Mapping[str, str]] = None
) -> str:
    """Resolve the provider instance name of a scheduler node.

    The attribute set by the provider fingerprint wins; the node meta is a
    fallback for clients that cannot fingerprint.
    """
    if NODE_NAME_ATTRIBUTE in attributes:
        return attributes[NODE_NAME_ATTRIBUTE]

    # Fallback to meta tag.
    if meta and NODE_NAME_ATTRIBUTE in meta:
        return meta[NODE_NAME_ATTRIBUTE]

    raise KeyError(f"attribute {NODE_NAME_ATTRIBUTE!r} not found")
