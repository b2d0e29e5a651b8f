# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Target plugin surface: drives the coordinator from string config maps."""

import logging
import os
from typing import Callable, Dict, List, Mapping, Optional

from shardscale.target.coordinator import ShardScaleCoordinator
from shardscale.target.defaults import (
    CONFIG_KEY_RESOURCE_GROUP,
    CONFIG_KEY_RESOURCE_GROUP_LIST,
    CONFIG_KEY_VMSS_LIST,
    CREDENTIAL_ENV_FALLBACKS,
    PLUGIN_NAME,
    PLUGIN_TYPE,
)
from shardscale.target.fleet_api import FleetAPI
from shardscale.target.metrics import TargetPrometheusMetrics
from shardscale.target.protocol import (
    CoordinatorConfig,
    FleetStatus,
    PluginInfo,
    ScalingAction,
    ScalingPlan,
    ShardRef,
)
from shardscale.target.scheduler_hooks import SchedulerHooks
from shardscale.target.utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_KEY_REQUEST_TIMEOUT = "request_timeout"

FleetAPIFactory = Callable[[Mapping[str, str]], FleetAPI]
SchedulerHooksFactory = Callable[[Mapping[str, str]], SchedulerHooks]


def args_or_env(config: Mapping[str, str], key: str, env: str) -> str:
    """Config value for key, else the environment variable env, else ''."""
    if key in config:
        return config[key]
    return os.environ.get(env, "")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",")]


def parse_shard_list(config: Mapping[str, str]) -> List[ShardRef]:
    """Build the ordered shard list from the parallel scale set / resource group lists."""
    if CONFIG_KEY_VMSS_LIST not in config:
        raise ConfigError(
            f"required config param {CONFIG_KEY_VMSS_LIST} not found",
            key=CONFIG_KEY_VMSS_LIST,
        )
    names = _split_list(config[CONFIG_KEY_VMSS_LIST])
    if not all(names):
        raise ConfigError(
            f"config param {CONFIG_KEY_VMSS_LIST} contains an empty scale set name",
            key=CONFIG_KEY_VMSS_LIST,
        )

    if CONFIG_KEY_RESOURCE_GROUP_LIST in config:
        groups = _split_list(config[CONFIG_KEY_RESOURCE_GROUP_LIST])
    elif config.get(CONFIG_KEY_RESOURCE_GROUP):
        # a single resource group applies to every scale set
        groups = [config[CONFIG_KEY_RESOURCE_GROUP].strip()] * len(names)
    else:
        raise ConfigError(
            f"required config param {CONFIG_KEY_RESOURCE_GROUP_LIST} not found",
            key=CONFIG_KEY_RESOURCE_GROUP_LIST,
        )

    if not all(groups):
        raise ConfigError(
            f"config param {CONFIG_KEY_RESOURCE_GROUP_LIST} contains an empty resource group",
            key=CONFIG_KEY_RESOURCE_GROUP_LIST,
        )
    if len(groups) != len(names):
        raise ConfigError(
            f"{CONFIG_KEY_RESOURCE_GROUP_LIST} has {len(groups)} entries but "
            f"{CONFIG_KEY_VMSS_LIST} has {len(names)}",
            key=CONFIG_KEY_RESOURCE_GROUP_LIST,
        )

    return [ShardRef(resource_group=g, name=n) for g, n in zip(groups, names)]


def resolve_credentials(config: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: args_or_env(config, key, env)
        for key, env in CREDENTIAL_ENV_FALLBACKS.items()
    }


class ShardedTargetPlugin:
    """
    Target plugin scaling a list of scale sets as one pool.

    The fleet API and scheduler hooks are built by the injected factories
    when set_config is called; the resolved credentials are merged into the
    config handed to the fleet API factory.
    """

    def __init__(
        self,
        fleet_api_factory: FleetAPIFactory,
        hooks_factory: SchedulerHooksFactory,
        metrics: Optional[TargetPrometheusMetrics] = None,
    ):
        self.fleet_api_factory = fleet_api_factory
        self.hooks_factory = hooks_factory
        self.metrics = metrics
        self.coordinator: Optional[ShardScaleCoordinator] = None

    def set_config(self, config: Mapping[str, str]):
        coordinator_config = CoordinatorConfig()
        if CONFIG_KEY_REQUEST_TIMEOUT in config:
            try:
                coordinator_config = CoordinatorConfig(
                    request_timeout=float(config[CONFIG_KEY_REQUEST_TIMEOUT])
                )
            except ValueError as e:
                raise ConfigError(
                    f"config param {CONFIG_KEY_REQUEST_TIMEOUT} is not a positive number",
                    key=CONFIG_KEY_REQUEST_TIMEOUT,
                ) from e

        fleet_config = {**config, **resolve_credentials(config)}
        try:
            fleet_api = self.fleet_api_factory(fleet_config)
            hooks = self.hooks_factory(config)
        except Exception as e:
            raise ConfigError(f"cannot set config, {e}") from e

        self.coordinator = ShardScaleCoordinator(
            fleet_api, hooks, config=coordinator_config, metrics=self.metrics
        )
        logger.debug("config is set")

    def plugin_info(self) -> PluginInfo:
        return PluginInfo(name=PLUGIN_NAME, plugin_type=PLUGIN_TYPE)

    def _require_coordinator(self) -> ShardScaleCoordinator:
        if self.coordinator is None:
            raise ConfigError("plugin not configured, call set_config() first")
        return self.coordinator

    async def scale(
        self, action: ScalingAction, config: Mapping[str, str]
    ) -> Optional[ScalingPlan]:
        coordinator = self._require_coordinator()
        if action.count == coordinator.config.dry_run_count:
            return None

        shards = parse_shard_list(config)
        logger.debug(
            f"scale triggered, count={action.count}, reason={action.reason!r}, "
            f"shards={[s.key for s in shards]}"
        )
        return await coordinator.scale(action.count, shards)

    async def status(self, config: Mapping[str, str]) -> FleetStatus:
        coordinator = self._require_coordinator()
        return await coordinator.status(parse_shard_list(config))
