# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/driver/reconcile.py
"""
Bring the domain registry in line with what vmrun reports as running.

``vmrun -T <flavor> list`` prints a banner ("Total running VMs: N")
followed by one absolute .vmx path per running VM. Each vmx is read and
translated, the domain is registered, and its pid is taken from the
vmware.log next to it. The first failure aborts the whole pass. Domains
registered earlier in that pass stay registered.

After a successful pass, domains that vmrun no longer lists are removed
from the registry.
"""
from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, List, Set

from ..core.exceptions import ConfigParseError, VmdeskError
from ..core.logger import Log
from ..core.utils import U
from ..libvirt.domain import DomainDef, DomainRunningReason, DomainState, GraphicsType, VMwareDomainPrivate
from ..vmware.pid import extract_pid

if TYPE_CHECKING:  # pragma: no cover
    from .state import DriverState

logger = logging.getLogger(__name__)


def config_display(private: VMwareDomainPrivate, definition: DomainDef) -> None:
    """A VM shows a GUI unless it only has non-desktop graphics (e.g. VNC)."""
    if not definition.graphics:
        private.gui = True
        return
    private.gui = any(g.type == GraphicsType.DESKTOP for g in definition.graphics)


def list_running_vmx(driver: "DriverState") -> List[str]:
    """Run ``vmrun -T <flavor> list`` and return the absolute vmx paths it prints."""
    cmd = [driver.vmrun, "-T", driver.flavor.value, "list"]
    cp = U.run_cmd(logger, cmd, capture=True, timeout=driver.timeout, fatal=True)

    paths: List[str] = []
    for line in (cp.stdout or "").split("\n"):
        line = line.rstrip("\r")
        if not os.path.isabs(line):
            if line.strip():
                Log.trace(logger, "Skipping vmrun output line %r", line)
            continue
        paths.append(line)
    return paths


def reconcile(driver: "DriverState") -> int:
    """
    Register every VM that vmrun reports as running.

    Returns the number of distinct domains loaded; a path listed twice is
    loaded once. Raises ExternalToolError, FileAccessError/SizeExceeded,
    ConfigParseError, NotFound or MalformedLog (missing or unusable
    vmware.log), or DomainExists.
    """
    domains = driver.domains
    translator = driver.translator
    known = set(domains.names())
    seen_paths: Set[str] = set()
    loaded: Set[str] = set()

    for vmx_path in list_running_vmx(driver):
        if vmx_path in seen_paths:
            Log.trace(logger, "Skipping duplicate vmrun entry %s", vmx_path)
            continue
        seen_paths.add(vmx_path)
        log = Log.bind(logger, vmx=vmx_path)

        vmx = U.read_file_bounded(vmx_path, driver.max_vmx_bytes)

        try:
            definition = translator.parse(vmx)
        except VmdeskError as e:
            raise ConfigParseError(msg=f"Failed to parse {vmx_path}: {e.msg}", cause=e) from e
        except Exception as e:
            raise ConfigParseError(msg=f"Failed to parse {vmx_path}: {e}", cause=e) from e

        obj = domains.add(definition)
        with obj:
            obj.private.vmx_path = vmx_path
            config_display(obj.private, obj.definition)

        # Only running VMs are listed, so a missing pid is an error here.
        pid = extract_pid(vmx_path, driver.log_name)

        with obj:
            obj.definition.id = pid
            # The listing does not say why a VM is running.
            obj.set_state(DomainState.RUNNING, DomainRunningReason.UNKNOWN)
            obj.persistent = True

        log.bind(domain=obj.name, pid=pid).debug("Loaded domain (gui=%s)", obj.private.gui)
        loaded.add(obj.name)

    # Reached only when the whole pass succeeded.
    for name in sorted(known - loaded):
        stale = domains.find_by_name(name)
        if stale is None:
            continue
        domains.remove(stale)
        Log.bind(logger, domain=name).info("Dropped domain no longer reported by vmrun")

    logger.info("Loaded %d running domain(s) from %s", len(loaded), driver.vmrun)
    return len(loaded)
