# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Remote instance identifiers: ``<shard-name>_<instance-id>``.

Shard names may themselves contain the separator while instance ids never do,
so parsing always splits on the last occurrence.
"""

from typing import Dict, Iterable, List, Sequence, Tuple

from shardscale.target.defaults import REMOTE_ID_SEPARATOR
from shardscale.target.utils.exceptions import MalformedIDError


def format_remote_id(shard_name: str, instance_id: str) -> str:
    return f"{shard_name}{REMOTE_ID_SEPARATOR}{instance_id}"


def parse_remote_id(remote_id: str) -> Tuple[str, str]:
    idx = remote_id.rfind(REMOTE_ID_SEPARATOR)
    if idx == -1:
        raise MalformedIDError(remote_id, f"no {REMOTE_ID_SEPARATOR!r} separator")
    shard_name, instance_id = remote_id[:idx], remote_id[idx + 1 :]
    if not shard_name or not instance_id:
        raise MalformedIDError(remote_id, "empty shard name or instance id")
    return shard_name, instance_id


def correlate_remote_ids(
    remote_ids: Iterable[str], shard_names: Sequence[str]
) -> Dict[str, List[str]]:
    """Group cleared remote ids by shard name.

    The shard prefix must match exactly one of shard_names, ignoring case.
    Any id that cannot be attributed aborts the whole correlation. An instance
    named more than once is kept once, at its first position.
    """
    by_folded: Dict[str, List[str]] = {}
    for name in shard_names:
        by_folded.setdefault(name.casefold(), []).append(name)

    instance_ids: Dict[str, List[str]] = {}
    for remote_id in remote_ids:
        prefix, instance_id = parse_remote_id(remote_id)
        matches = by_folded.get(prefix.casefold(), [])
        if not matches:
            raise MalformedIDError(remote_id, f"unknown shard {prefix!r}")
        if len(matches) > 1:
            raise MalformedIDError(
                remote_id, f"shard {prefix!r} is ambiguous between {matches}"
            )
        ids = instance_ids.setdefault(matches[0], [])
        # case variants of one id fold onto the same instance
        if instance_id not in ids:
            ids.append(instance_id)
    return instance_ids
