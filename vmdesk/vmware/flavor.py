# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/flavor.py
from __future__ import annotations

from enum import Enum
from typing import Union

from ..core.exceptions import UnsupportedFlavor


class Flavor(str, Enum):
    """VMware desktop product variant. The value is vmrun's ``-T`` host type."""

    PLAYER = "player"
    WORKSTATION = "ws"
    FUSION = "fusion"

    @classmethod
    def from_string(cls, value: Union[str, "Flavor"]) -> "Flavor":
        if isinstance(value, cls):
            return value
        s = str(value or "").strip().lower()
        for member in cls:
            if s in (member.value, member.name.lower()):
                return member
        raise UnsupportedFlavor(msg=f"Invalid driver type: {value!r}")

    @property
    def companion_binary(self) -> str:
        """Executable next to vmrun that prints the product version banner."""
        return _COMPANION[self]

    @property
    def version_marker(self) -> str:
        return _MARKER[self]


_COMPANION = {
    Flavor.PLAYER: "vmplayer",
    Flavor.WORKSTATION: "vmware",
    Flavor.FUSION: "vmware-vmx",
}

_MARKER = {
    Flavor.PLAYER: "VMware Player ",
    Flavor.WORKSTATION: "VMware Workstation ",
    Flavor.FUSION: "\nVMware Fusion Information:\nVMware Fusion ",
}
