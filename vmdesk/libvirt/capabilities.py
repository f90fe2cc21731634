# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/libvirt/capabilities.py
"""
Host capabilities as seen by the VMware driver.

i686 guests are always supported. x86_64 guests need an x86_64 host, or
a 32-bit host kernel on a CPU that has long mode and hardware
virtualization (vmx or svm).
"""
from __future__ import annotations

import logging
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional

logger = logging.getLogger(__name__)

_CPUINFO = Path("/proc/cpuinfo")

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "i686",
    "i486": "i686",
    "i586": "i686",
    "x86": "i686",
}


def normalize_arch(machine: str) -> str:
    m = (machine or "").strip().lower()
    return _ARCH_ALIASES.get(m, m)


def read_cpu_flags(cpuinfo: Path = _CPUINFO) -> FrozenSet[str]:
    """Return the first 'flags' line of /proc/cpuinfo as a set (empty when unavailable)."""
    try:
        with open(cpuinfo, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                key, sep, value = line.partition(":")
                if sep and key.strip() == "flags":
                    return frozenset(value.split())
    except OSError as e:
        logger.debug("Cannot read %s: %s", cpuinfo, e)
    return frozenset()


@dataclass(frozen=True)
class GuestCaps:
    os_type: str
    arch: str
    domain_type: str = "vmware"


@dataclass
class Capabilities:
    host_arch: str
    cpu_flags: FrozenSet[str] = frozenset()
    guests: List[GuestCaps] = field(default_factory=list)

    @classmethod
    def probe(cls, machine: Optional[str] = None, cpu_flags: Optional[FrozenSet[str]] = None) -> "Capabilities":
        host_arch = normalize_arch(machine if machine is not None else platform.machine())
        flags = cpu_flags if cpu_flags is not None else read_cpu_flags()

        caps = cls(host_arch=host_arch, cpu_flags=flags)
        caps.guests.append(GuestCaps("hvm", "i686"))

        if host_arch == "x86_64" or ("lm" in flags and ("vmx" in flags or "svm" in flags)):
            caps.guests.append(GuestCaps("hvm", "x86_64"))

        logger.debug("Capabilities: host=%s guests=%s", host_arch, [g.arch for g in caps.guests])
        return caps

    def supports(self, arch: str, os_type: str = "hvm") -> bool:
        return any(g.arch == arch and g.os_type == os_type for g in self.guests)

    def to_xml(self) -> str:
        lines = [
            "<capabilities>",
            "  <host>",
            "    <cpu>",
            f"      <arch>{self.host_arch}</arch>",
            "    </cpu>",
            "  </host>",
        ]
        for g in self.guests:
            lines += [
                "  <guest>",
                f"    <os_type>{g.os_type}</os_type>",
                f"    <arch name='{g.arch}'>",
                f"      <domain type='{g.domain_type}'/>",
                "    </arch>",
                "  </guest>",
            ]
        lines += ["</capabilities>", ""]
        return "\n".join(lines)
