# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge


class TargetPrometheusMetrics:
    """Container for all shardscale target Prometheus metrics."""

    def __init__(
        self, prefix: str = "shardscale", registry: Optional[CollectorRegistry] = None
    ):
        registry = registry if registry is not None else REGISTRY

        # Fleet state
        self.fleet_capacity = Gauge(
            f"{prefix}_fleet_capacity",
            "Total instance count across all shards",
            registry=registry,
        )
        self.fleet_target = Gauge(
            f"{prefix}_fleet_target",
            "Last requested total instance count",
            registry=registry,
        )
        self.fleet_ready = Gauge(
            f"{prefix}_fleet_ready",
            "1 if every shard reported ready on the last status check",
            registry=registry,
        )

        # Per-shard operations
        self.shard_operations = Counter(
            f"{prefix}_shard_operations",
            "Shard executor operations by phase and outcome",
            ["phase", "outcome"],
            registry=registry,
        )
        self.scale_in_cleared = Counter(
            f"{prefix}_scale_in_cleared_instances",
            "Instances cleared by the scheduler for termination",
            registry=registry,
        )

    def record_shard_operation(self, phase: str, success: bool):
        self.shard_operations.labels(
            phase=phase, outcome="success" if success else "failure"
        ).inc()
