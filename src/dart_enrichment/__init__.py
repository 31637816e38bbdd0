# Copyright (c) Stacklion.
# SPDX-License-Identifier: MIT
"""DART registry sync and partner-company enrichment service."""

__version__ = "0.1.0"
