# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import os

PLUGIN_NAME = "azure-vmss-list"
PLUGIN_TYPE = "target"

# Plugin config keys
CONFIG_KEY_RESOURCE_GROUP_LIST = "resource_group_list"
CONFIG_KEY_VMSS_LIST = "vm_scale_set_list"
CONFIG_KEY_RESOURCE_GROUP = "resource_group"

CONFIG_KEY_TENANT_ID = "tenant_id"
CONFIG_KEY_CLIENT_ID = "client_id"
CONFIG_KEY_SUBSCRIPTION_ID = "subscription_id"
CONFIG_KEY_SECRET_KEY = "secret_access_key"

# config key -> environment variable used when the key is absent
CREDENTIAL_ENV_FALLBACKS = {
    CONFIG_KEY_TENANT_ID: "ARM_TENANT_ID",
    CONFIG_KEY_CLIENT_ID: "ARM_CLIENT_ID",
    CONFIG_KEY_SUBSCRIPTION_ID: "ARM_SUBSCRIPTION_ID",
    CONFIG_KEY_SECRET_KEY: "ARM_CLIENT_SECRET",
}

# Strategy count meaning "dry run, do nothing"
DRY_RUN_COUNT = -1

# Status meta key carrying the most recent event (epoch ns, decimal string)
LAST_EVENT_META_KEY = "last_event"
# Reported when no shard exposes an event time
LAST_EVENT_UNKNOWN = -(2**63)

REMOTE_ID_SEPARATOR = "_"

POWER_STATE_RUNNING = "PowerState/running"
PROVISIONING_STATE_SUCCEEDED = "ProvisioningState/succeeded"

# Scheduler node attribute holding the provider instance name
NODE_NAME_ATTRIBUTE = "unique.platform.azure.name"


class CoordinatorDefaults:
    request_timeout = float(os.environ.get("SHARDSCALE_REQUEST_TIMEOUT", 600))
    dry_run_count = DRY_RUN_COUNT
    initial_capacity = 2
