# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/libvirt/domain_xml.py
"""Render a DomainDef as libvirt domain XML (type='vmware')."""
from __future__ import annotations

from typing import List
from xml.sax.saxutils import escape as _xml_escape

from .domain import DiskType, DomainDef


def _xml(s: object) -> str:
    """Escape for XML text/attribute contexts."""
    return _xml_escape(str(s), entities={"'": "&apos;", '"': "&quot;"})


def _disk_xml(disk) -> List[str]:
    source_attr = "dev" if disk.type == DiskType.BLOCK else "file"
    lines = [f"    <disk type='{disk.type.value}' device='{disk.device.value}'>"]
    if disk.src:
        lines.append(f"      <source {source_attr}='{_xml(disk.src)}'/>")
    if disk.dst:
        bus_attr = f" bus='{_xml(disk.bus)}'" if disk.bus else ""
        lines.append(f"      <target dev='{_xml(disk.dst)}'{bus_attr}/>")
    lines.append("    </disk>")
    return lines


def domain_to_xml(definition: DomainDef) -> str:
    d = definition
    id_attr = f" id='{d.id}'" if d.id >= 0 else ""

    lines: List[str] = [f"<domain type='vmware'{id_attr}>", f"  <name>{_xml(d.name)}</name>"]
    if d.uuid:
        lines.append(f"  <uuid>{_xml(d.uuid)}</uuid>")
    if d.memory_kib:
        lines.append(f"  <memory unit='KiB'>{d.memory_kib}</memory>")
    lines.append(f"  <vcpu placement='static'>{d.vcpus}</vcpu>")
    lines += [
        "  <os>",
        f"    <type arch='{_xml(d.arch)}'>{_xml(d.os_type)}</type>",
        "  </os>",
        "  <devices>",
    ]
    for disk in d.disks:
        lines += _disk_xml(disk)
    for g in d.graphics:
        port_attr = f" port='{g.port}'" if g.port is not None else ""
        listen_attr = f" listen='{_xml(g.listen)}'" if g.listen else ""
        lines.append(f"    <graphics type='{g.type.value}'{port_attr}{listen_attr}/>")
    lines += ["  </devices>", "</domain>", ""]
    return "\n".join(lines)
