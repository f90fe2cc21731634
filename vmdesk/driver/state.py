# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/driver/state.py
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Optional, Union

from ..config.config_loader import DEFAULT_MAX_VMX_BYTES, DEFAULT_TIMEOUT_S, DriverConfig
from ..core.exceptions import Fatal
from ..core.logging_utils import log_step
from ..core.utils import U
from ..libvirt.capabilities import Capabilities
from ..libvirt.domain_list import DomainObjList
from ..vmware.flavor import Flavor
from ..vmware.pid import LOG_FILE_NAME
from ..vmware.version import VersionTriple, parse_version_str
from ..vmware.vmx import ConfigTranslator, VmxTranslator
from .reconcile import reconcile

logger = logging.getLogger(__name__)


class DriverState:
    """
    Everything one VMware driver instance owns.

    The registry, capabilities and translator belong to the state and
    are released by close(), which also runs when the state is used as a
    context manager. ``_lock`` guards short reads and updates of mutable
    fields and is never held while vmrun runs. Reconciliation passes are
    serialized by ``_reconcile_lock``.
    """

    def __init__(
        self,
        vmrun: str,
        flavor: Union[Flavor, str],
        *,
        translator: Optional[ConfigTranslator] = None,
        caps: Optional[Capabilities] = None,
        domains: Optional[DomainObjList] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
        log_name: str = LOG_FILE_NAME,
        max_vmx_bytes: int = DEFAULT_MAX_VMX_BYTES,
    ) -> None:
        if not vmrun:
            raise Fatal(code=2, msg="vmrun binary path must not be empty")
        self.vmrun = str(vmrun)
        self.flavor = Flavor.from_string(flavor)
        self.timeout = timeout
        self.log_name = log_name
        self.max_vmx_bytes = max_vmx_bytes

        self._lock = threading.Lock()
        self._reconcile_lock = threading.Lock()
        self._version: Optional[VersionTriple] = None
        self._closed = False

        self._domains: Optional[DomainObjList] = domains if domains is not None else DomainObjList()
        self._caps: Optional[Capabilities] = caps if caps is not None else Capabilities.probe()
        self._translator: Optional[ConfigTranslator] = translator if translator is not None else VmxTranslator()

        logger.debug("Driver state created (vmrun=%s, flavor=%s)", self.vmrun, self.flavor.value)

    @classmethod
    def from_config(
        cls,
        cfg: DriverConfig,
        *,
        translator: Optional[ConfigTranslator] = None,
        caps: Optional[Capabilities] = None,
    ) -> "DriverState":
        vmrun = cfg.vmrun or U.which("vmrun")
        if not vmrun:
            raise Fatal(code=2, msg="vmrun not found; set 'vmrun' in the config or VMDESK_VMRUN")
        return cls(
            vmrun,
            cfg.flavor,
            translator=translator,
            caps=caps,
            timeout=cfg.timeout,
            log_name=cfg.log_name,
            max_vmx_bytes=cfg.max_vmx_bytes,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> "DriverState":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release owned objects. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            domains, self._domains = self._domains, None
            self._caps = None
            self._translator = None
        if domains is not None:
            domains.clear()
        logger.debug("Driver state closed")

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _owned(self, value: Any, what: str) -> Any:
        if value is None:
            raise Fatal(msg=f"driver state is closed (no {what})")
        return value

    @property
    def domains(self) -> DomainObjList:
        with self._lock:
            return self._owned(self._domains, "domain list")

    @property
    def caps(self) -> Capabilities:
        with self._lock:
            return self._owned(self._caps, "capabilities")

    @property
    def translator(self) -> ConfigTranslator:
        with self._lock:
            return self._owned(self._translator, "translator")

    @property
    def version(self) -> Optional[VersionTriple]:
        with self._lock:
            return self._version

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def companion_binary(self) -> str:
        return os.path.join(os.path.dirname(self.vmrun), self.flavor.companion_binary)

    def detect_version(self) -> VersionTriple:
        """Run ``<companion> -v`` and record the product version."""
        binary = self.companion_binary()
        with log_step(logger, f"Detecting {self.flavor.name.lower()} version", level=logging.DEBUG):
            cp = U.run_cmd(logger, [binary, "-v"], merge_stderr=True, timeout=self.timeout, fatal=True)
            version = parse_version_str(self.flavor, cp.stdout or "")

        with self._lock:
            self._version = version
        logger.info("VMware %s version %s", self.flavor.name.lower(), version)
        return version

    def reload(self) -> int:
        """Run one reconciliation pass; concurrent callers wait their turn."""
        with self._reconcile_lock:
            with log_step(logger, "Loading running domains"):
                return reconcile(self)
