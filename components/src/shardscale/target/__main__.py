# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
shardscale target CLI

Runs the coordinator against an in-memory virtual fleet, which is handy to
see how a count is split over scale sets and how scale in is correlated.

Usage:
    python -m shardscale.target scale --count 6 \\
        --resource-group-list rg-a,rg-b --vm-scale-set-list web,web_gpu
"""

import asyncio
import logging
import sys

from shardscale.runtime.logging import configure_shardscale_logging
from shardscale.target.argparse_config import (
    create_target_parser,
    validate_target_args,
)
from shardscale.target.defaults import (
    CONFIG_KEY_RESOURCE_GROUP_LIST,
    CONFIG_KEY_VMSS_LIST,
)
from shardscale.target.protocol import ScaleInResult, ScalingAction
from shardscale.target.scale_in import summarize
from shardscale.target.target_plugin import (
    CONFIG_KEY_REQUEST_TIMEOUT,
    ShardedTargetPlugin,
    parse_shard_list,
)
from shardscale.target.utils.exceptions import ShardScaleError
from shardscale.target.virtual_fleet import VirtualFleet, VirtualScheduler

logger = logging.getLogger(__name__)


async def main(args) -> int:
    config = {
        CONFIG_KEY_RESOURCE_GROUP_LIST: args.resource_group_list,
        CONFIG_KEY_VMSS_LIST: args.vm_scale_set_list,
        CONFIG_KEY_REQUEST_TIMEOUT: str(args.request_timeout),
    }

    fleet = VirtualFleet()
    for shard in parse_shard_list(config):
        fleet.add_shard(shard.resource_group, shard.name, args.initial_capacity)
    scheduler = VirtualScheduler()

    plugin = ShardedTargetPlugin(lambda _: fleet, lambda _: scheduler)
    plugin.set_config(config)
    logger.info(f"Plugin: {plugin.plugin_info().name}")

    try:
        if args.command == "scale":
            scaling_plan = await plugin.scale(ScalingAction(count=args.count), config)
            if scaling_plan is None:
                logger.info("Dry run, nothing to do")
            else:
                logger.info(
                    f"Plan: direction={scaling_plan.direction.value}, "
                    f"magnitude={scaling_plan.magnitude}, "
                    f"per_shard={scaling_plan.per_shard_delta}"
                )
        status = await plugin.status(config)
    except ShardScaleError as e:
        logger.error(f"{args.command} failed: {e}")
        if isinstance(e.result, ScaleInResult):
            for line in summarize(e.result):
                logger.error(line)
        return 1

    print(status.model_dump_json(indent=2))
    return 0


def cli():
    parser = create_target_parser()
    args = parser.parse_args()
    configure_shardscale_logging(args.log_level)
    try:
        validate_target_args(args)
    except ValueError as e:
        parser.error(str(e))
    sys.exit(asyncio.run(main(args)))


if __name__ == "__main__":
    cli()
