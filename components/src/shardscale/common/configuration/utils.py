# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Helpers for CLI flags whose defaults come from environment variables."""

import os
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")

_TRUE_VALUES = ("true", "1", "yes", "on")


def env_or_default(
    env_var: str, default: T, value_type: Optional[Callable[[str], Any]] = None
) -> T:
    """
    Read env_var, converted to the type of default (or value_type), else default.

    Args:
        env_var: Environment variable name (e.g., "SHARDSCALE_LOG")
        default: Returned when the variable is unset
        value_type: Explicit converter, needed when default is None

    Returns:
        The converted environment value or default
    """
    raw = os.environ.get(env_var)
    if raw is None:
        return default

    target = value_type if value_type is not None else type(default)
    if default is None and value_type is None:
        return raw  # type: ignore[return-value]
    if target is bool:
        return raw.strip().lower() in _TRUE_VALUES  # type: ignore[return-value]
    if target is list:
        return [x.strip() for x in raw.split(",") if x.strip()]  # type: ignore
    return target(raw)  # type: ignore[return-value]


def add_argument(
    parser,
    *,
    flag_name: str,
    env_var: str,
    default: Any,
    help: str,
    arg_type: Optional[Callable[[str], Any]] = str,
    **kwargs: Any,
) -> None:
    """
    Add a --flag whose default is read from env_var first.

    The help text is suffixed with the env var name and the effective default.
    """
    dest = kwargs.pop("dest", None) or flag_name.lstrip("-").replace("-", "_")
    env_type = arg_type if isinstance(arg_type, type) else None
    effective_default = env_or_default(env_var, default, value_type=env_type)

    opts = {
        "dest": dest,
        "default": effective_default,
        "help": f"{help}\nenv var: {env_var} | default: {default}",
    }
    if arg_type is not None:
        opts["type"] = arg_type
    opts.update(kwargs)
    parser.add_argument(flag_name, **opts)
