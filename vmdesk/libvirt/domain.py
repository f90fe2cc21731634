# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/libvirt/domain.py
"""
Normalized domain definition model.

A DomainDef is what the vmx translator produces. A DomainObj wraps it
once registered: runtime state, persistence and the VMware-specific
private extension live there.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class DiskDevice(str, Enum):
    DISK = "disk"
    CDROM = "cdrom"
    FLOPPY = "floppy"
    LUN = "lun"


class DiskType(str, Enum):
    FILE = "file"
    BLOCK = "block"
    DIR = "dir"
    NETWORK = "network"
    VOLUME = "volume"


class GraphicsType(str, Enum):
    SDL = "sdl"
    VNC = "vnc"
    RDP = "rdp"
    DESKTOP = "desktop"
    SPICE = "spice"


class DomainState(str, Enum):
    NOSTATE = "nostate"
    RUNNING = "running"
    PAUSED = "paused"
    SHUTOFF = "shutoff"


class DomainRunningReason(str, Enum):
    UNKNOWN = "unknown"
    BOOTED = "booted"


class DomainShutoffReason(str, Enum):
    UNKNOWN = "unknown"
    SHUTDOWN = "shutdown"


StateReason = Union[DomainRunningReason, DomainShutoffReason]


@dataclass
class DiskDef:
    device: DiskDevice = DiskDevice.DISK
    type: DiskType = DiskType.FILE
    src: Optional[str] = None
    dst: Optional[str] = None
    bus: Optional[str] = None


@dataclass
class GraphicsDef:
    type: GraphicsType
    port: Optional[int] = None
    listen: Optional[str] = None


@dataclass
class DomainDef:
    name: str
    uuid: Optional[str] = None
    memory_kib: int = 0
    vcpus: int = 1
    arch: str = "i686"
    os_type: str = "hvm"
    disks: List[DiskDef] = field(default_factory=list)
    graphics: List[GraphicsDef] = field(default_factory=list)
    # Process id of the running VM; -1 while unknown.
    id: int = -1

    def first_file_disk(self) -> Optional[DiskDef]:
        """First disk with device=DISK backed by a plain file (CD-ROMs are skipped)."""
        for disk in self.disks:
            if disk.device == DiskDevice.DISK and disk.type == DiskType.FILE:
                return disk
        return None


@dataclass
class VMwareDomainPrivate:
    """Per-domain data the VMware driver keeps next to the definition."""
    vmx_path: Optional[str] = None
    gui: bool = False


class DomainObj:
    """
    A registered domain.

    Use ``with obj:`` to hold the object lock while changing it.
    """

    def __init__(self, definition: DomainDef):
        self.definition = definition
        self.state = DomainState.SHUTOFF
        self.reason: StateReason = DomainShutoffReason.UNKNOWN
        self.persistent = False
        self.private = VMwareDomainPrivate()
        self._lock = threading.Lock()

    def __enter__(self) -> "DomainObj":
        self._lock.acquire()
        return self

    def __exit__(self, *exc: Any) -> None:
        self._lock.release()

    @property
    def name(self) -> str:
        return self.definition.name

    def is_active(self) -> bool:
        return self.definition.id != -1

    def set_state(self, state: DomainState, reason: StateReason) -> None:
        self.state = state
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        d = self.definition
        return {
            "name": d.name,
            "uuid": d.uuid,
            "id": d.id,
            "state": self.state.value,
            "reason": self.reason.value,
            "persistent": self.persistent,
            "vmx_path": self.private.vmx_path,
            "gui": self.private.gui,
            "memory_kib": d.memory_kib,
            "vcpus": d.vcpus,
            "arch": d.arch,
            "disks": [
                {"device": x.device.value, "type": x.type.value, "src": x.src, "dst": x.dst, "bus": x.bus}
                for x in d.disks
            ],
            "graphics": [{"type": g.type.value, "port": g.port} for g in d.graphics],
        }

    def __repr__(self) -> str:
        return f"DomainObj(name={self.name!r}, id={self.definition.id}, state={self.state.value})"
