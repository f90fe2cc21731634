# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/config/config_loader.py
"""
YAML configuration.

Several files can be given; they are deep-merged in order so later files
win. The merged mapping feeds argparse defaults (the CLI still overrides
it) and DriverConfig.
"""
from __future__ import annotations

import argparse
import glob
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from ..core.exceptions import Fatal, UnsupportedFlavor
from ..vmware.flavor import Flavor

ENV_VMRUN = "VMDESK_VMRUN"
ENV_FLAVOR = "VMDESK_FLAVOR"

DEFAULT_TIMEOUT_S = 60.0
DEFAULT_MAX_VMX_BYTES = 10000


def _deep_merge(base: Dict[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in extra.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, cfgs: Sequence[str]) -> List[Path]:
        """Expand ~ and globs; a pattern that matches nothing is an error."""
        out: List[Path] = []
        for c in cfgs:
            pattern = os.path.expanduser(str(c))
            matches = sorted(glob.glob(pattern)) if glob.has_magic(pattern) else [pattern]
            if not matches:
                raise Fatal(code=2, msg=f"Config pattern matched nothing: {c}")
            for m in matches:
                p = Path(m).resolve()
                if p not in out:
                    out.append(p)
        logger.debug("Config files: %s", [str(p) for p in out])
        return out

    @staticmethod
    def load(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise Fatal(code=2, msg=f"Cannot read config {path}: {e.strerror or e}", cause=e) from e
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise Fatal(code=2, msg=f"Invalid YAML in {path}: {e}", cause=e) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise Fatal(code=2, msg=f"Config {path} must be a mapping, got {type(data).__name__}")
        logger.debug("Loaded config %s (%d keys)", path, len(data))
        return data

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = _deep_merge(merged, Config.load(logger, p))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Mapping[str, Any]) -> None:
        """Push config keys that match parser (and subcommand) destinations into their defaults."""
        wanted = {k.replace("-", "_"): v for k, v in conf.items()}
        applied: List[str] = []

        def _apply(p: argparse.ArgumentParser) -> None:
            dests = {a.dest for a in p._actions}
            hits = {k: v for k, v in wanted.items() if k in dests}
            if hits:
                p.set_defaults(**hits)
                applied.extend(hits)
            for a in p._actions:
                if isinstance(a, argparse._SubParsersAction):
                    for sub in a.choices.values():
                        _apply(sub)

        _apply(parser)
        if applied:
            logger.debug("Config defaults applied: %s", sorted(set(applied)))


@dataclass(frozen=True)
class DriverConfig:
    """
    Settings for one driver instance.

    vmrun: path to the control tool (None = look it up on PATH)
    flavor: player | ws | fusion
    timeout: seconds allowed for each vmrun / version call
    log_name: per-VM log file holding the pid
    max_vmx_bytes: largest vmx file accepted
    """
    vmrun: Optional[str] = None
    flavor: Flavor = Flavor.WORKSTATION
    timeout: float = DEFAULT_TIMEOUT_S
    log_name: str = "vmware.log"
    max_vmx_bytes: int = DEFAULT_MAX_VMX_BYTES

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "flavor", Flavor.from_string(self.flavor))
        except UnsupportedFlavor as e:
            raise Fatal(code=2, msg=f"Invalid flavor in config: {e.msg}", cause=e) from e

        if self.vmrun is not None:
            v = str(self.vmrun).strip()
            object.__setattr__(self, "vmrun", os.path.expanduser(v) if v else None)

        if float(self.timeout) <= 0:
            raise Fatal(code=2, msg=f"timeout must be > 0 (got {self.timeout})")
        object.__setattr__(self, "timeout", float(self.timeout))

        if int(self.max_vmx_bytes) <= 0:
            raise Fatal(code=2, msg=f"max_vmx_bytes must be > 0 (got {self.max_vmx_bytes})")

        if not self.log_name or "/" in self.log_name:
            raise Fatal(code=2, msg=f"log_name must be a plain file name (got {self.log_name!r})")

    @classmethod
    def from_mapping(cls, conf: Mapping[str, Any], env: Optional[Mapping[str, str]] = None) -> "DriverConfig":
        """
        Build from a merged config mapping.

        Keys may sit at the top level or under a ``driver:`` section.
        VMDESK_VMRUN / VMDESK_FLAVOR from ``env`` override the file.
        """
        env = os.environ if env is None else env
        section = conf.get("driver") if isinstance(conf.get("driver"), Mapping) else conf

        kwargs: Dict[str, Any] = {}
        for key in ("vmrun", "flavor", "timeout", "log_name", "max_vmx_bytes"):
            if section.get(key) is not None:
                kwargs[key] = section[key]

        if env.get(ENV_VMRUN):
            kwargs["vmrun"] = env[ENV_VMRUN]
        if env.get(ENV_FLAVOR):
            kwargs["flavor"] = env[ENV_FLAVOR]

        return cls(**kwargs)
