# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/pid.py
"""
Recover the process id of a running VM from its vmware.log.

The first line of the log written by vmware-vmx looks like::

    2023-05-02T10:11:12.345Z In(05) vmx Log for VMware Workstation pid=4321 version=16.2.3 ...

Only that line is read. The pid follows the " pid=" marker and must be
terminated by a space.
"""
from __future__ import annotations

import logging
import os
from typing import Optional, Tuple

from ..core.exceptions import MalformedLog, NotFound

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "vmware.log"
PID_MARKER = " pid="

# Same bound as a fixed 1024-byte line buffer.
_MAX_LINE = 1023
_INT32_MAX = 2**31 - 1


def log_path_for(vmx_path: str, log_name: str = LOG_FILE_NAME) -> str:
    return os.path.join(os.path.dirname(vmx_path), log_name)


def _scan_int(text: str, pos: int) -> Tuple[int, int]:
    """
    Read an optionally signed base-10 integer starting at ``pos``.

    Returns (value, end). Raises ValueError if there are no digits.
    """
    start = pos
    if pos < len(text) and text[pos] in "+-":
        pos += 1
    digits_at = pos
    while pos < len(text) and "0" <= text[pos] <= "9":
        pos += 1
    if pos == digits_at:
        raise ValueError("no digits")
    return int(text[start:pos]), pos


def parse_pid_line(line: str) -> int:
    """Extract the pid from the first log line."""
    idx = line.find(PID_MARKER)
    if idx < 0:
        raise MalformedLog(msg="cannot find pid in vmware log file")

    try:
        value, end = _scan_int(line, idx + len(PID_MARKER))
    except ValueError:
        raise MalformedLog(msg="cannot parse pid in vmware log file") from None

    if end >= len(line) or line[end] != " ":
        raise MalformedLog(msg="cannot parse pid in vmware log file")

    # Domain ids are 32-bit, so larger pids are refused rather than truncated.
    if value < 0 or value > _INT32_MAX:
        raise MalformedLog(msg=f"pid {value} in vmware log file is out of range")
    return value


def extract_pid(vmx_path: str, log_name: str = LOG_FILE_NAME) -> int:
    """
    Return the pid recorded in the vmware.log next to ``vmx_path``.

    Raises NotFound if the log cannot be opened and MalformedLog if its
    first line cannot be read or does not carry a usable pid.
    """
    log_path = log_path_for(vmx_path, log_name)

    try:
        f = open(log_path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise NotFound(msg=f"cannot open vmware log file '{log_path}'", cause=e) from e

    with f:
        try:
            line = f.readline(_MAX_LINE)
        except OSError as e:
            raise MalformedLog(msg="unable to read vmware log file", cause=e) from e

    if not line:
        raise MalformedLog(msg="unable to read vmware log file").with_context(path=log_path)

    pid = parse_pid_line(line)
    logger.debug("Found pid %d in %s", pid, log_path)
    return pid


def try_extract_pid(vmx_path: str, log_name: str = LOG_FILE_NAME) -> Optional[int]:
    """Like extract_pid() but a missing log means "no known pid" (None)."""
    try:
        return extract_pid(vmx_path, log_name)
    except NotFound:
        return None
