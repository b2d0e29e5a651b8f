# SPDX-FileCopyrightText: Copyright (c) 2025-2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
import os
import sys
from datetime import datetime, timezone

LOG_ENV_VAR = "SHARDSCALE_LOG"


class CompactColorFormatter(logging.Formatter):
    """Single-line colored output: timestamp, level, module.function, message."""

    _COLORS = {
        "DEBUG": "\033[2m",  # dim
        "INFO": "\033[32m",  # green
        "WARNING": "\033[33m",  # yellow
        "ERROR": "\033[31m",  # red
        "CRITICAL": "\033[31m",
    }
    _DIM = "\033[2m"
    _RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def _paint(self, color: str, text: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{self._RESET}"

    def format(self, record):
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%S.%fZ"
        )
        if record.funcName and record.funcName != "<module>":
            target = f"{record.module}.{record.funcName}"
        else:
            target = record.module
        level = self._paint(
            self._COLORS.get(record.levelname, ""), f"{record.levelname:>5}"
        )
        line = (
            f"{self._paint(self._DIM, ts)} {level} "
            f"{self._paint(self._DIM, target + ':')} {record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def log_level_mapping(level: str) -> int:
    """
    Map the SHARDSCALE_LOG value to a logging level.

    Unknown or empty values fall back to INFO; "trace" is treated as INFO.
    """
    level = level.strip().lower()
    if level == "debug":
        return logging.DEBUG
    elif level == "info":
        return logging.INFO
    elif level == "warn" or level == "warning":
        return logging.WARNING
    elif level == "error":
        return logging.ERROR
    elif level == "critical":
        return logging.CRITICAL
    else:
        return logging.INFO


def configure_shardscale_logging(level: str | None = None):
    """
    A single place to configure logging for shardscale.

    Replaces any handler on the root logger with one stderr handler. The level
    comes from the level argument, else SHARDSCALE_LOG, else info.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(CompactColorFormatter(use_color=sys.stderr.isatty()))
    root_logger.addHandler(handler)
    root_logger.setLevel(
        log_level_mapping(level or os.environ.get(LOG_ENV_VAR, "info"))
    )

    # third party loggers that are too chatty at debug
    for logger_name in ["asyncio"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
