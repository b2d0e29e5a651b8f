# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Custom exceptions for the shardscale target.

Every error carries the phase it was raised in and, when it can be pinned to
one, the shard key (``resource_group/name``) so callers can attribute failures.
"""

import asyncio
from typing import Any, Dict, List, Optional

__all__ = [
    "ShardScaleError",
    "ConfigError",
    "InvalidInputError",
    "QueryError",
    "DrainError",
    "MalformedIDError",
    "ExecutionError",
    "is_deadline_exceeded",
]


class ShardScaleError(Exception):
    """Base class for all shardscale errors."""

    def __init__(
        self, message: str, shard: Optional[str] = None, phase: Optional[str] = None
    ):
        self.message = message
        self.shard = shard
        self.phase = phase
        # Summary of the operation up to the failure, when one is available
        self.result: Optional[Any] = None
        super().__init__(self._render())

    def _render(self) -> str:
        prefix = []
        if self.phase:
            prefix.append(f"phase={self.phase}")
        if self.shard:
            prefix.append(f"shard={self.shard}")
        if prefix:
            return f"[{' '.join(prefix)}] {self.message}"
        return self.message


class ConfigError(ShardScaleError):
    """Missing or malformed required parameter."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message, phase="config")


class InvalidInputError(ShardScaleError):
    """Argument outside the domain of a planning function."""


class QueryError(ShardScaleError):
    """Capacity or instance listing failed for a shard."""


class DrainError(ShardScaleError):
    """The scheduler pre/post drain hook failed."""


class MalformedIDError(ShardScaleError):
    """The drain hook returned an identifier that cannot be mapped to a shard."""

    def __init__(self, remote_id: str, reason: str):
        self.remote_id = remote_id
        super().__init__(
            f"cannot map remote id {remote_id!r} to a shard instance: {reason}",
            phase="correlate",
        )


class ExecutionError(ShardScaleError):
    """
    Raised when one or more shard executors failed.

    Sibling shards always run to completion before this is raised, so
    ``succeeded`` lists the shards whose resize/delete did go through.
    """

    def __init__(
        self,
        phase: str,
        failures: Dict[str, BaseException],
        succeeded: Optional[List[str]] = None,
    ):
        self.failures = dict(failures)
        self.succeeded = list(succeeded or [])
        details = "; ".join(f"{key}: {err}" for key, err in self.failures.items())
        message = (
            f"{len(self.failures)} shard(s) failed, "
            f"{len(self.succeeded)} succeeded: {details}"
        )
        super().__init__(message, phase=phase)

    @property
    def failed_shards(self) -> List[str]:
        return list(self.failures)

    @property
    def is_partial(self) -> bool:
        """True when at least one shard went through despite the failures."""
        return bool(self.succeeded)


def is_deadline_exceeded(error: BaseException) -> bool:
    """True for the bare timeout raised when asyncio.wait_for runs out.

    A timeout raised by the provider itself carries its own message and is
    reported as an ordinary failure.
    """
    return isinstance(error, asyncio.TimeoutError) and not error.args
