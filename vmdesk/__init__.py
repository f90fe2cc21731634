# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/__init__.py
"""
vmdesk - VMware desktop driver shim

Lists, describes and manipulates VMs run by VMware Player, Workstation
and Fusion through their ``vmrun`` control tool.

Usage as a library:

    from vmdesk import DriverState, Flavor

    with DriverState("/usr/bin/vmrun", Flavor.WORKSTATION) as driver:
        driver.detect_version()
        driver.reload()
        for obj in driver.domains.objects():
            print(obj.name, obj.definition.id, obj.private.vmx_path)
"""

__version__ = "0.1.0"

from .driver import DriverState, reconcile
from .vmware import Flavor, VersionTriple, VmxTranslator, extract_pid, parse_version_str, vmx_path_for

__all__ = [
    "__version__",
    "DriverState",
    "reconcile",
    "Flavor",
    "VersionTriple",
    "VmxTranslator",
    "extract_pid",
    "parse_version_str",
    "vmx_path_for",
]
