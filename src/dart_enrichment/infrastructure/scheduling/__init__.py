# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""Cron parsing and the registry sync scheduler."""
