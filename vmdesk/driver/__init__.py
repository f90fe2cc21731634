# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/driver/__init__.py
from .reconcile import reconcile
from .state import DriverState

__all__ = ["DriverState", "reconcile"]
