# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/cli/main.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Callable, Dict, Optional

from rich.console import Console
from rich.table import Table

from ..core.exceptions import FileAccessError, NotFound
from ..core.file_ops import move_file
from ..core.logger import Log
from ..core.utils import U
from ..driver.state import DriverState
from ..libvirt.capabilities import Capabilities
from ..libvirt.domain_xml import domain_to_xml
from ..vmware.vmx import VmxTranslator
from ..vmware.vmx_path import vmx_path_for
from .args import driver_config_from


def _console() -> Console:
    return Console(file=sys.stdout, highlight=False)


def _open_driver(args: argparse.Namespace, conf: Dict[str, Any]) -> DriverState:
    return DriverState.from_config(driver_config_from(args, conf))


def cmd_list(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    with _open_driver(args, conf) as driver:
        driver.reload()
        objs = driver.domains.objects()
        if not objs:
            Log.warn(logger, "vmrun reports no running VMs", flavor=driver.flavor.value)

        if getattr(args, "json", False):
            print(U.json_dump([o.to_dict() for o in objs]))
            return 0

        table = Table(title=f"Running VMs ({driver.flavor.name.lower()})")
        for col in ("Id", "Name", "State", "GUI"):
            table.add_column(col, no_wrap=True)
        table.add_column("VMX", overflow="fold")
        for o in objs:
            table.add_row(
                str(o.definition.id),
                o.name,
                f"{o.state.value} ({o.reason.value})",
                "yes" if o.private.gui else "no",
                o.private.vmx_path or "-",
            )
        _console().print(table)
    return 0


def cmd_version(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    with _open_driver(args, conf) as driver:
        version = driver.detect_version()
        print(f"{driver.flavor.name.lower()} {version} ({version.to_long()})")
    return 0


def cmd_capabilities(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    sys.stdout.write(Capabilities.probe().to_xml())
    return 0


def cmd_dumpxml(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    with _open_driver(args, conf) as driver:
        driver.reload()
        obj = driver.domains.find_by_name(args.name)
        if obj is None:
            raise NotFound(msg=f"no running domain named '{args.name}'")
        with obj:
            xml = domain_to_xml(obj.definition)
    sys.stdout.write(xml)
    return 0


def cmd_vmx_path(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    max_bytes = driver_config_from(args, conf).max_vmx_bytes
    definition = VmxTranslator().parse(U.read_file_bounded(args.vmx, max_bytes))
    print(vmx_path_for(definition))
    return 0


def cmd_define(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    max_bytes = driver_config_from(args, conf).max_vmx_bytes
    translator = VmxTranslator()
    definition = translator.parse(U.read_file_bounded(args.vmx, max_bytes))

    target = args.output or vmx_path_for(definition)
    if os.path.exists(target) and not args.force:
        raise FileAccessError(msg=f"{target} already exists (use --force to overwrite)")

    written = translator.write(definition, target)
    Log.ok(logger, f"Defined {definition.name} -> {written}")
    print(written)
    return 0


def cmd_move(logger: logging.Logger, args: argparse.Namespace, conf: Dict[str, Any]) -> int:
    move_file(args.src, args.dst)
    Log.ok(logger, f"Moved {args.src} -> {args.dst}")
    return 0


COMMANDS: Dict[str, Callable[[logging.Logger, argparse.Namespace, Dict[str, Any]], int]] = {
    "list": cmd_list,
    "version": cmd_version,
    "capabilities": cmd_capabilities,
    "dumpxml": cmd_dumpxml,
    "vmx-path": cmd_vmx_path,
    "define": cmd_define,
    "move": cmd_move,
}


def run(logger: logging.Logger, args: argparse.Namespace, conf: Optional[Dict[str, Any]] = None) -> int:
    handler = COMMANDS.get(args.cmd)
    if handler is None:
        raise NotFound(code=2, msg=f"unknown command: {args.cmd}")
    return handler(logger, args, conf or {})
