# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Argument parsing for the shardscale target CLI."""

import argparse

from shardscale.common.configuration.utils import add_argument
from shardscale.target.defaults import CoordinatorDefaults


def create_target_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the shardscale target CLI.

    Returns:
        argparse.ArgumentParser: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="shardscale - scale a list of scale sets as one pool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grow two virtual scale sets to 6 instances in total
  python -m shardscale.target scale --count 6 \\
    --resource-group-list rg-a,rg-b --vm-scale-set-list web,web_gpu

  # Status of the same pool
  python -m shardscale.target status \\
    --resource-group-list rg-a,rg-b --vm-scale-set-list web,web_gpu
        """,
    )

    parser.add_argument(
        "command",
        choices=["scale", "status"],
        help="scale: move the pool to --count instances, status: report pool health",
    )
    add_argument(
        parser,
        flag_name="--resource-group-list",
        env_var="SHARDSCALE_RESOURCE_GROUP_LIST",
        default=None,
        help="Comma separated resource groups, one per scale set",
    )
    add_argument(
        parser,
        flag_name="--vm-scale-set-list",
        env_var="SHARDSCALE_VMSS_LIST",
        default=None,
        help="Comma separated scale set names",
    )
    add_argument(
        parser,
        flag_name="--count",
        env_var="SHARDSCALE_COUNT",
        default=CoordinatorDefaults.dry_run_count,
        arg_type=int,
        help="Desired total instance count (-1 for a dry run)",
    )
    add_argument(
        parser,
        flag_name="--initial-capacity",
        env_var="SHARDSCALE_INITIAL_CAPACITY",
        default=CoordinatorDefaults.initial_capacity,
        arg_type=int,
        help="Instances each virtual scale set starts with",
    )
    add_argument(
        parser,
        flag_name="--request-timeout",
        env_var="SHARDSCALE_REQUEST_TIMEOUT",
        default=CoordinatorDefaults.request_timeout,
        arg_type=float,
        help="Deadline in seconds for each fleet API and scheduler call",
    )
    add_argument(
        parser,
        flag_name="--log-level",
        env_var="SHARDSCALE_LOG",
        default="info",
        choices=["trace", "debug", "info", "warn", "error", "critical"],
        help="Log level",
    )

    return parser


def validate_target_args(args: argparse.Namespace):
    if not args.vm_scale_set_list:
        raise ValueError("--vm-scale-set-list required")
    if not args.resource_group_list:
        raise ValueError("--resource-group-list required")
    if args.initial_capacity < 0:
        raise ValueError("--initial-capacity must be >= 0")
    if args.request_timeout <= 0:
        raise ValueError("--request-timeout must be > 0")
