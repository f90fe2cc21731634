# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/cli/args.py
from __future__ import annotations

import argparse
import dataclasses
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config.config_loader import Config, DriverConfig
from ..core.logger import Log, c
from ..core.utils import U

_DRIVER_KEYS = ("vmrun", "flavor", "timeout", "log_name", "max_vmx_bytes")

_EPILOG = """\
config.yaml:
  driver:
    vmrun: /usr/bin/vmrun
    flavor: ws          # player | ws | fusion
    timeout: 60         # seconds per vmrun call
  json: false

Environment: VMDESK_VMRUN and VMDESK_FLAVOR override the config file;
command-line flags override both.
"""


class HelpFormatter(argparse.RawDescriptionHelpFormatter, argparse.ArgumentDefaultsHelpFormatter):
    """Combines raw description formatting with default value display in help."""


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    from .. import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged config and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -vv debug, -vvv trace")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Quieter: -q warnings, -qq errors")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON logs on stderr.")


def _add_driver_knobs(p: argparse.ArgumentParser) -> None:
    g = p.add_argument_group("driver")
    g.add_argument("--vmrun", default=None, help="Path to vmrun (default: config, $VMDESK_VMRUN, then PATH).")
    g.add_argument("--flavor", default=None, choices=["player", "ws", "fusion"], help="VMware product variant.")
    g.add_argument("--timeout", type=float, default=None, help="Seconds allowed per vmrun call.")


def _add_commands(p: argparse.ArgumentParser) -> None:
    sub = p.add_subparsers(dest="cmd", metavar="COMMAND")
    sub.required = True

    ls = sub.add_parser("list", help="List running VMs reported by vmrun.")
    ls.add_argument("--json", action="store_true", help="Print JSON instead of a table.")

    sub.add_parser("version", help="Detect the VMware product version.")
    sub.add_parser("capabilities", help="Print host capabilities XML.")

    dx = sub.add_parser("dumpxml", help="Print domain XML of a running VM.")
    dx.add_argument("name", help="Domain name (displayName).")

    vp = sub.add_parser("vmx-path", help="Parse a .vmx and print the path deduced from its disks.")
    vp.add_argument("vmx", help="Path to a .vmx file.")

    df = sub.add_parser("define", help="Rewrite a .vmx in normalized form at the path deduced from its disks.")
    df.add_argument("vmx", help="Source .vmx file.")
    df.add_argument("-o", "--output", default=None, help="Write here instead of the deduced path.")
    df.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    mv = sub.add_parser("move", help="Move a VM file (no-op when source equals destination).")
    mv.add_argument("src")
    mv.add_argument("dst")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vmdesk",
        description=c("vmdesk: VMware Player/Workstation/Fusion driver shim", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_EPILOG,
    )
    _add_global_config_logging(p)
    _add_driver_knobs(p)
    _add_commands(p)
    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    return pre


def driver_config_from(args: argparse.Namespace, conf: Dict[str, Any]) -> DriverConfig:
    """Config file < environment < command line."""
    cfg = DriverConfig.from_mapping(conf)
    overrides = {k: getattr(args, k) for k in ("vmrun", "flavor", "timeout") if getattr(args, k, None) is not None}
    return dataclasses.replace(cfg, **overrides) if overrides else cfg


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Flow:
      Phase 0: parse ONLY global flags needed to locate config/logging
      Phase 1: load+merge config files
      Phase 2: apply non-driver config keys as parser defaults
      Phase 3: full parse to get final args
    """
    import sys

    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    parser = build_parser()
    args0, _rest = _build_preparser().parse_known_args(argv)

    if logger is None:
        logger = Log.setup(
            args0.verbose,
            args0.log_file,
            quiet=args0.quiet,
            json_logs=args0.json_logs,
        )

    conf: Dict[str, Any] = {}
    if args0.config:
        conf = Config.load_many(logger, Config.expand_configs(logger, args0.config))

    if args0.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    Config.apply_as_defaults(logger, parser, {k: v for k, v in conf.items() if k not in _DRIVER_KEYS})

    args = parser.parse_args(argv)
    return args, conf, logger
