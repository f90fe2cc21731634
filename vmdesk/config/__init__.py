# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/config/__init__.py
from .config_loader import Config, DriverConfig

__all__ = ["Config", "DriverConfig"]
