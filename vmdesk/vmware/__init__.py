# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/__init__.py
"""VMware desktop product helpers: version banners, vmx files, vmware.log."""

from .flavor import Flavor
from .pid import extract_pid, try_extract_pid
from .version import VersionTriple, parse_version_str
from .vmx import ConfigTranslator, VmxTranslator
from .vmx_path import vmx_path_for

__all__ = [
    "Flavor",
    "extract_pid",
    "try_extract_pid",
    "VersionTriple",
    "parse_version_str",
    "ConfigTranslator",
    "VmxTranslator",
    "vmx_path_for",
]
