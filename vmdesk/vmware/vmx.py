# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/vmx.py
"""
Translation between .vmx files and DomainDef.

The driver only depends on the ConfigTranslator protocol. VmxTranslator
covers the subset of keys the driver itself needs (name, uuid, memory,
cpus, guest arch, disks, VNC display). It is not a complete VMX
implementation.
"""
from __future__ import annotations

import logging
import re
import uuid as _uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from ..core.exceptions import ParseError
from ..core.file_ops import atomic_write
from ..core.logger import Log
from ..libvirt.domain import DiskDef, DiskDevice, DiskType, DomainDef, GraphicsDef, GraphicsType
from .vmx_path import format_vmx_file_name, parse_vmx_file_name, vmx_path_for

logger = logging.getLogger(__name__)


class ConfigTranslator(Protocol):
    def parse(self, data: bytes) -> DomainDef: ...

    def format(self, definition: DomainDef) -> bytes: ...


# Parse order of controllers; the first file-based disk found decides the vmx path.
_BUSES = ("scsi", "sata", "ide", "nvme")
_DISK_KEY_RE = re.compile(r"^(scsi|sata|ide|nvme)(\d+):(\d+)\.present$")
_FLOPPY_KEY_RE = re.compile(r"^floppy(\d+)\.present$")
_ESCAPE_RE = re.compile(r"\|([0-9A-Fa-f]{2})")

_SCSI_RESERVED_UNIT = 7


def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), value)


def _escape(value: str) -> str:
    return value.replace("|", "|7C").replace('"', "|22")


def _bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


def _disk_name(prefix: str, index: int) -> str:
    # 0 -> a, 25 -> z, 26 -> aa
    letters = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("a") + rem) + letters
    return prefix + letters


def _target_for(bus: str, controller: int, unit: int) -> str:
    if bus == "ide":
        return _disk_name("hd", controller * 2 + unit)
    if bus == "scsi":
        return _disk_name("sd", controller * 15 + unit)
    if bus == "sata":
        return _disk_name("sd", controller * 30 + unit)
    return f"nvme{controller}n{unit + 1}"


def parse_entries(text: str) -> Dict[str, str]:
    """
    Read ``key = "value"`` lines into a dict with lower-cased keys.

    Blank lines and '#' comments are skipped. Any other line without '='
    raises ParseError.
    """
    entries: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ParseError(msg=f"malformed vmx line {lineno}: {line[:80]!r}")
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        entries[key.lower()] = _unescape(value)
    return entries


def _uuid_from_bios(value: str) -> str:
    # "56 4d 8b 2a 1c 9f 41 05-8e 3a 4e 5f 60 71 82 93"
    hexdigits = value.replace(" ", "").replace("-", "")
    try:
        return str(_uuid.UUID(hex=hexdigits))
    except ValueError:
        raise ParseError(msg=f"expecting VMX entry 'uuid.bios' to be a UUID, found {value!r}") from None


def _uuid_to_bios(value: str) -> str:
    h = _uuid.UUID(value).hex
    pairs = [h[i:i + 2] for i in range(0, 32, 2)]
    return " ".join(pairs[:8]) + "-" + " ".join(pairs[8:])


def _int_entry(entries: Dict[str, str], key: str, default: Optional[int]) -> Optional[int]:
    value = entries.get(key.lower())
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ParseError(msg=f"expecting VMX entry '{key}' to be an integer, found {value!r}") from None


class VmxTranslator:
    """
    Minimal .vmx <-> DomainDef translator.

    parse_file_name/format_file_name map vmx file-name values to disk
    sources and back; the desktop driver uses them unchanged.
    """

    def __init__(
        self,
        *,
        parse_file_name: Callable[[str], str] = parse_vmx_file_name,
        format_file_name: Callable[[str], str] = format_vmx_file_name,
    ) -> None:
        self.parse_file_name = parse_file_name
        self.format_file_name = format_file_name

    # ------------------------------------------------------------------
    # vmx -> DomainDef
    # ------------------------------------------------------------------

    def parse(self, data: bytes) -> DomainDef:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(msg=f"vmx is not valid UTF-8: {e}") from e

        entries = parse_entries(text)

        name = entries.get("displayname")
        if not name:
            raise ParseError(msg="missing essential VMX entry 'displayName'")

        definition = DomainDef(name=name)

        bios = entries.get("uuid.bios")
        if bios:
            definition.uuid = _uuid_from_bios(bios)

        memsize = _int_entry(entries, "memsize", 32)
        definition.memory_kib = (memsize or 0) * 1024
        definition.vcpus = _int_entry(entries, "numvcpus", 1) or 1

        guest_os = entries.get("guestos", "").lower()
        definition.arch = "x86_64" if guest_os.endswith("-64") else "i686"

        definition.disks = self._parse_disks(entries)
        definition.graphics = self._parse_graphics(entries)

        logger.debug(
            "Parsed vmx for %s: %d disk(s), %d graphics", name, len(definition.disks), len(definition.graphics)
        )
        return definition

    def _parse_disks(self, entries: Dict[str, str]) -> List[DiskDef]:
        found: List[Tuple[int, int, int, DiskDef]] = []

        for key, value in entries.items():
            m = _DISK_KEY_RE.match(key)
            if not m or not _bool(value):
                continue
            bus, controller, unit = m.group(1), int(m.group(2)), int(m.group(3))
            prefix = f"{bus}{controller}:{unit}"

            file_name = entries.get(f"{prefix}.filename")
            device_type = entries.get(f"{prefix}.devicetype", "").lower()

            if "cdrom" in device_type:
                device = DiskDevice.CDROM
                dtype = DiskType.FILE if device_type == "cdrom-image" else DiskType.BLOCK
            elif file_name and file_name.startswith("/dev/"):
                device, dtype = DiskDevice.DISK, DiskType.BLOCK
            else:
                device, dtype = DiskDevice.DISK, DiskType.FILE

            src = self.parse_file_name(file_name) if file_name else None
            disk = DiskDef(device=device, type=dtype, src=src, dst=_target_for(bus, controller, unit), bus=bus)
            found.append((_BUSES.index(bus), controller, unit, disk))

        for key, value in entries.items():
            m = _FLOPPY_KEY_RE.match(key)
            if not m or not _bool(value):
                continue
            idx = int(m.group(1))
            file_name = entries.get(f"floppy{idx}.filename")
            dtype = DiskType.FILE if entries.get(f"floppy{idx}.filetype", "file").lower() == "file" else DiskType.BLOCK
            disk = DiskDef(
                device=DiskDevice.FLOPPY,
                type=dtype,
                src=self.parse_file_name(file_name) if file_name else None,
                dst=_disk_name("fd", idx),
                bus="fdc",
            )
            found.append((len(_BUSES), idx, 0, disk))

        found.sort(key=lambda t: t[:3])
        return [t[3] for t in found]

    @staticmethod
    def _parse_graphics(entries: Dict[str, str]) -> List[GraphicsDef]:
        if not _bool(entries.get("remotedisplay.vnc.enabled")):
            return []
        port = _int_entry(entries, "RemoteDisplay.vnc.port", None)
        listen = entries.get("remotedisplay.vnc.ip") or None
        return [GraphicsDef(type=GraphicsType.VNC, port=port, listen=listen)]

    # ------------------------------------------------------------------
    # DomainDef -> vmx
    # ------------------------------------------------------------------

    def format(self, definition: DomainDef) -> bytes:
        d = definition
        lines: List[Tuple[str, str]] = [
            (".encoding", "UTF-8"),
            ("config.version", "8"),
            ("virtualHW.version", "4"),
            ("displayName", d.name),
        ]
        if d.uuid:
            lines.append(("uuid.bios", _uuid_to_bios(d.uuid)))
        lines.append(("guestOS", "other-64" if d.arch == "x86_64" else "other"))
        lines.append(("memsize", str(max(d.memory_kib // 1024, 1))))
        lines.append(("numvcpus", str(d.vcpus)))

        scsi_unit = 0
        ide_slot = 0
        floppy_idx = 0
        scsi_used = False
        for disk in d.disks:
            if disk.device == DiskDevice.DISK:
                if scsi_unit == _SCSI_RESERVED_UNIT:
                    scsi_unit += 1
                prefix = f"scsi0:{scsi_unit}"
                scsi_unit += 1
                scsi_used = True
                lines.append((f"{prefix}.present", "true"))
                lines.append((f"{prefix}.deviceType", "rawDisk" if disk.type == DiskType.BLOCK else "scsi-hardDisk"))
            elif disk.device == DiskDevice.CDROM:
                prefix = f"ide{ide_slot // 2}:{ide_slot % 2}"
                ide_slot += 1
                lines.append((f"{prefix}.present", "true"))
                lines.append((f"{prefix}.deviceType", "cdrom-image" if disk.type == DiskType.FILE else "cdrom-raw"))
            elif disk.device == DiskDevice.FLOPPY:
                prefix = f"floppy{floppy_idx}"
                floppy_idx += 1
                lines.append((f"{prefix}.present", "true"))
                lines.append((f"{prefix}.fileType", "file" if disk.type == DiskType.FILE else "device"))
            else:
                Log.warn_once(
                    logger,
                    ("vmx-format-device", disk.device.value),
                    f"Skipping unsupported disk device {disk.device.value}",
                    domain=d.name,
                )
                continue
            if disk.src:
                lines.append((f"{prefix}.fileName", self.format_file_name(disk.src)))

        if scsi_used:
            lines.append(("scsi0.present", "true"))

        for g in d.graphics:
            if g.type != GraphicsType.VNC:
                continue
            lines.append(("RemoteDisplay.vnc.enabled", "true"))
            if g.port is not None:
                lines.append(("RemoteDisplay.vnc.port", str(g.port)))
            if g.listen:
                lines.append(("RemoteDisplay.vnc.ip", g.listen))
            break

        text = "".join(f'{k} = "{_escape(v)}"\n' for k, v in lines)
        return text.encode("utf-8")

    def write(self, definition: DomainDef, vmx_path: Optional[str] = None) -> str:
        """
        Format ``definition`` and write it atomically.

        Without an explicit path the location is deduced from the first
        file-based hard disk. Returns the path written.
        """
        path = vmx_path or vmx_path_for(definition)
        data = self.format(definition)
        with atomic_write(Path(path)) as tmp:
            tmp.write_bytes(data)
        logger.info("Wrote %s (%d bytes)", path, len(data))
        return path
