# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/core/exceptions.py
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional


class ExitCode(IntEnum):
    OK = 0
    UNKNOWN = 1
    USAGE = 2

    NOT_FOUND = 11
    PARSE = 12
    DOMAIN = 13

    EXTERNAL_TOOL = 20
    LOCAL_IO = 40

    INTERRUPTED = 130


def _safe_int(x: Any, default: int = 1) -> int:
    try:
        return int(x)
    except Exception:
        return default


def _clamp_exit_code(code: int) -> int:
    # Exit codes are 0..255.
    if code < 0:
        return 1
    if code > 255:
        return 255
    return code


def _one_line(s: str, limit: int = 600) -> str:
    s = (s or "").strip().replace("\r", " ").replace("\n", " ")
    s = " ".join(s.split())
    return s if len(s) <= limit else (s[: limit - 3] + "...")


_SECRET_KEY_PARTS = (
    "pass",
    "secret",
    "token",
    "apikey",
    "api_key",
    "auth",
    "cookie",
    "private_key",
)

_REDACTED = "<redacted>"


def _is_secret_key(k: str) -> bool:
    ks = (k or "").lower()
    return any(p in ks for p in _SECRET_KEY_PARTS)


def _redact(ctx: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (_REDACTED if _is_secret_key(str(k)) else v) for k, v in ctx.items()}


def _format_context_compact(ctx: Dict[str, Any]) -> str:
    # Stable order, redaction, single-line.
    red = _redact(ctx)
    return ", ".join(f"{k}={red[k]!r}" for k in sorted(red.keys()))


@dataclass(eq=False)
class VmdeskError(Exception):
    """
    Base project error with:
      - stable fields for reporting/JSON
      - readable __str__ (what users see)
      - safe code handling (never crashes on int())
    """
    code: int = ExitCode.UNKNOWN
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        self.code = _clamp_exit_code(_safe_int(self.code, default=1))
        self.msg = _one_line(self.msg) or self.__class__.__name__
        if self.context is None:
            self.context = {}
        super().__init__(self.msg)
        # Some tooling inspects Exception.args directly.
        self.args = (self.msg,)

    def with_context(self, **ctx: Any) -> "VmdeskError":
        assert self.context is not None
        self.context.update(ctx)
        return self

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        """
        Human-friendly message for CLI output/logs.
        """
        parts = [self.msg or self.__class__.__name__]

        if include_context and self.context:
            parts.append(f"[{_one_line(_format_context_compact(self.context))}]")

        if include_cause and self.cause is not None:
            parts.append(f"(cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})")

        return " ".join(parts)

    def __str__(self) -> str:
        return self.user_message(include_context=False, include_cause=False)

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": self.__class__.__name__,
            "code": self.code,
            "message": self.msg,
            "context": _redact(self.context or {}),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(VmdeskError):
    """
    User-facing fatal error (exit code should be honored by top-level main()).
    """
    pass


@dataclass(eq=False)
class NotFound(VmdeskError):
    """A marker, file or domain that was looked for is absent."""
    code: int = ExitCode.NOT_FOUND


@dataclass(eq=False)
class ParseError(VmdeskError):
    """External data (tool output, vmx, log) is malformed."""
    code: int = ExitCode.PARSE


class MalformedLog(ParseError):
    pass


class UnexpectedFormat(ParseError):
    pass


class ConfigParseError(ParseError):
    """The configuration translator rejected a vmx file."""
    pass


@dataclass(eq=False)
class ExternalToolError(VmdeskError):
    """vmrun (or a companion binary) could not be started, timed out or exited non-zero."""
    code: int = ExitCode.EXTERNAL_TOOL


@dataclass(eq=False)
class FileAccessError(VmdeskError):
    code: int = ExitCode.LOCAL_IO


class SizeExceeded(FileAccessError):
    pass


@dataclass(eq=False)
class DomainError(VmdeskError):
    code: int = ExitCode.DOMAIN


class MissingDisk(DomainError):
    pass


class MissingSource(DomainError):
    pass


class DomainExists(DomainError):
    pass


@dataclass(eq=False)
class UnsupportedFlavor(VmdeskError):
    code: int = ExitCode.USAGE


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    One-liner output for CLI.

    verbose=0: just message
    verbose=1: message + compact context (if any)
    verbose>=2: message + context + cause
    """
    if isinstance(e, VmdeskError):
        return e.user_message(
            include_context=(verbose >= 1),
            include_cause=(verbose >= 2),
        )

    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
