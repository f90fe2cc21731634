# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/vmware/version.py
"""
Version banner parsing.

``vmplayer -v`` / ``vmware -v`` / ``vmware-vmx -v`` print free text such as
"VMware Workstation 16.2.3 build-19376536". The version follows a
flavor-specific marker.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from ..core.exceptions import NotFound, ParseError
from .flavor import Flavor

_MAX_COMPONENTS = 3
_MAX_MINOR = 999  # packed form reserves three decimal digits for minor and micro
_MAX_MAJOR = 0xFFFFFFFF // 1_000_000  # keeps major * 1000000 within an unsigned 32-bit int


@dataclass(frozen=True)
class VersionTriple:
    major: int
    minor: int = 0
    micro: int = 0

    def to_long(self) -> int:
        """Packed form used by the management daemon: major * 1000000 + minor * 1000 + micro."""
        return self.major * 1_000_000 + self.minor * 1_000 + self.micro

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.micro}"


def parse_version_string(text: str) -> VersionTriple:
    """
    Parse a dotted numeric prefix ("15", "15.5" or "15.5.6") of ``text``.

    Scanning stops at the first character that is neither a digit nor a
    dot, and after the third component. Raises ParseError when the text
    does not start with a digit or a dot is not followed by digits.
    """
    components: List[int] = []
    pos = 0
    n = len(text)

    while len(components) < _MAX_COMPONENTS:
        start = pos
        while pos < n and text[pos].isdigit() and text[pos].isascii():
            pos += 1
        if pos == start:
            raise ParseError(msg=f"version parsing error: expected digits at offset {start} in {text[:40]!r}")
        components.append(int(text[start:pos]))

        if pos < n and text[pos] == "." and len(components) < _MAX_COMPONENTS:
            pos += 1
            continue
        break

    major, minor, micro = (components + [0, 0])[:3]
    if major > _MAX_MAJOR or minor > _MAX_MINOR or micro > _MAX_MINOR:
        raise ParseError(msg=f"version parsing error: component out of range in {text[:40]!r}")
    return VersionTriple(major, minor, micro)


def parse_version_str(flavor: Union[Flavor, str], text: str) -> VersionTriple:
    """Locate the flavor's version marker in ``text`` and parse what follows it."""
    pattern = Flavor.from_string(flavor).version_marker

    idx = (text or "").find(pattern)
    if idx < 0:
        raise NotFound(msg=f'cannot find version pattern "{pattern}"')

    rest = text[idx + len(pattern):]
    try:
        return parse_version_string(rest)
    except ParseError as e:
        raise ParseError(msg=f"failed to parse {pattern.strip()} version: {e.msg}", cause=e) from e
