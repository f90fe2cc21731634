# SPDX-License-Identifier: LGPL-3.0-or-later
# vmdesk/core/logger.py
"""
Logging for vmdesk.

One logger tree ("vmdesk.*") with two renderings on stderr:

  console   ``10:11:12 ✅ INFO     Loaded domain web domain=web pid=4321``
  NDJSON    one object per record (``--json-logs``), for log shipping

Records may carry a ``ctx`` mapping (see ``Log.bind``). The driver's own
keys (domain, vmx, pid, flavor) are always rendered first and in that
order so a reconciliation pass reads the same way line after line.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Set, Tuple, Union

from termcolor import colored as _colored

TRACE = 5
if not hasattr(logging, "TRACE"):
    logging.TRACE = TRACE  # type: ignore[attr-defined]
    logging.addLevelName(TRACE, "TRACE")


def _logger_trace(self: logging.Logger, msg: str, *args, **kwargs) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _logger_trace  # type: ignore[attr-defined]


class _LevelLook(NamedTuple):
    emoji: str
    color: str


_LEVELS: Dict[str, _LevelLook] = {
    "TRACE": _LevelLook("🧬", "cyan"),
    "DEBUG": _LevelLook("🔍", "blue"),
    "INFO": _LevelLook("✅", "green"),
    "WARNING": _LevelLook("⚠️", "yellow"),
    "ERROR": _LevelLook("💥", "red"),
    "CRITICAL": _LevelLook("🧨", "red"),
}
_UNKNOWN_LEVEL = _LevelLook("•", "white")

# Context keys the driver attaches, in display order.
DRIVER_CTX_KEYS: Tuple[str, ...] = ("domain", "vmx", "pid", "flavor")


def is_tty(stream=None) -> bool:
    try:
        return (stream or sys.stdout).isatty()
    except (AttributeError, ValueError):
        return False


def color_wanted(stream=None) -> bool:
    """NO_COLOR disables color, FORCE_COLOR enables it, otherwise only on a TTY."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return is_tty(stream or sys.stderr)


def _emoji_ok(stream=None) -> bool:
    enc = getattr(stream or sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (LookupError, UnicodeEncodeError):
        return False
    return True


def c(
    text: str,
    color: Optional[str] = None,
    attrs: Optional[List[str]] = None,
    *,
    enable: bool = True,
) -> str:
    """Colorize text with termcolor unless disabled."""
    if not enable or not color:
        return text
    return _colored(text, color=color, attrs=attrs or [])


Ctx = Mapping[str, Any]


def _one_line(v: Any, *, max_len: int = 240) -> str:
    s = str(v).replace("\r", "\\r").replace("\n", "\\n")
    return s if len(s) <= max_len else s[: max_len - 1] + "…"


def ordered_ctx(ctx: Optional[Ctx]) -> List[Tuple[str, Any]]:
    """Driver keys first (in DRIVER_CTX_KEYS order), then the rest sorted by name."""
    if not ctx:
        return []
    first = [(k, ctx[k]) for k in DRIVER_CTX_KEYS if k in ctx]
    rest = sorted((str(k), v) for k, v in ctx.items() if k not in DRIVER_CTX_KEYS)
    return first + rest


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    Adapter carrying a context mapping onto every record as ``record.ctx``.

    Per-call ``extra={"ctx": {...}}`` is merged on top:

      log = Log.bind(logger, vmx="/vms/web/web.vmx")
      log.debug("Loaded domain %s", name, extra={"ctx": {"pid": 4321}})
    """

    def __init__(self, logger: logging.Logger, ctx: Optional[Ctx] = None):
        super().__init__(logger, extra={"ctx": dict(ctx or {})})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = {**self.extra["ctx"], **(extra.get("ctx") or {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **ctx: Any) -> "ContextLoggerAdapter":
        return ContextLoggerAdapter(self.logger, {**self.extra["ctx"], **ctx})


@dataclass(frozen=True)
class LogStyle:
    color: bool = True
    show_ms: bool = False
    show_src: bool = False  # module:line
    show_pid: bool = False
    show_thread: bool = False  # driver entry points may run on caller threads
    show_logger: bool = False
    utc: bool = False
    unicode: bool = True


class EmojiFormatter(logging.Formatter):
    """Single-line console records; tracebacks follow indented by two spaces."""

    LEVEL_WIDTH = 8

    def __init__(self, style: LogStyle):
        super().__init__()
        self._style = style

    def _clock(self, created: float) -> str:
        tz = _dt.timezone.utc if self._style.utc else None
        dt = _dt.datetime.fromtimestamp(created, tz=tz)
        return dt.strftime("%H:%M:%S.%f")[:-3] if self._style.show_ms else dt.strftime("%H:%M:%S")

    def _origin(self, record: logging.LogRecord) -> str:
        s = self._style
        bits = [
            bit
            for on, bit in (
                (s.show_pid, f"pid={record.process}"),
                (s.show_thread, f"thread={record.threadName}"),
                (s.show_logger, record.name),
                (s.show_src, f"{record.module}:{record.lineno}"),
            )
            if on
        ]
        return f" [{' '.join(bits)}]" if bits else ""

    def format(self, record: logging.LogRecord) -> str:
        look = _LEVELS.get(record.levelname, _UNKNOWN_LEVEL)
        colored = self._style.color

        emoji = look.emoji if self._style.unicode else "·"
        level = c(f"{record.levelname:<{self.LEVEL_WIDTH}}", look.color, enable=colored)
        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, look.color, attrs=["bold"], enable=colored)

        ctx = "".join(f" {k}={_one_line(v)}" for k, v in ordered_ctx(getattr(record, "ctx", None)))
        line = f"{self._clock(record.created)} {emoji} {level}{self._origin(record)} {msg}{ctx}"

        tail = [t for t in (self.formatException(record.exc_info) if record.exc_info else "", record.stack_info) if t]
        if tail:
            block = "\n".join("  " + ln for ln in "\n".join(tail).splitlines())
            line += "\n" + c(block, "red", enable=colored and bool(record.exc_info))
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg, pid, thread, source, ctx, exception."""

    def __init__(self, *, utc: bool = True, include_src: bool = True):
        super().__init__()
        self._tz = _dt.timezone.utc if utc else None
        self._include_src = include_src

    def format(self, record: logging.LogRecord) -> str:
        obj: Dict[str, Any] = {
            "ts": _dt.datetime.fromtimestamp(record.created, tz=self._tz).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": record.process,
            "thread": record.threadName,
        }
        if self._include_src:
            obj["module"] = record.module
            obj["lineno"] = record.lineno

        ctx = ordered_ctx(getattr(record, "ctx", None))
        if ctx:
            obj["ctx"] = dict(ctx)

        if record.exc_info:
            obj["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else "Exception"
            obj["traceback"] = self.formatException(record.exc_info)

        try:
            return json.dumps(obj, ensure_ascii=False)
        except (TypeError, ValueError):
            # Non-serializable ctx values (paths, enums) fall back to str().
            return json.dumps(obj, ensure_ascii=False, default=str)


_warned: Set[str] = set()
_warned_lock = threading.Lock()


class Log:
    """Static helpers around the "vmdesk" logger tree."""

    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """-q WARNING, -qq ERROR, -vv DEBUG, -vvv TRACE, otherwise INFO. Quiet wins."""
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        return logging.DEBUG if verbose >= 2 else logging.INFO

    @staticmethod
    def bind(logger: logging.Logger, **ctx: Any) -> ContextLoggerAdapter:
        return ContextLoggerAdapter(logger, ctx)

    @staticmethod
    def ok(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.info("✅ %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def warn(logger: logging.Logger, msg: str, **ctx: Any) -> None:
        logger.warning("⚠️  %s", msg, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def trace(logger: logging.Logger, msg: str, *args: Any, **ctx: Any) -> None:
        logger.log(TRACE, msg, *args, extra={"ctx": ctx} if ctx else None)

    @staticmethod
    def warn_once(logger: logging.Logger, key: Union[str, Tuple[Any, ...]], msg: str, **ctx: Any) -> bool:
        """
        Warn once per process for ``key``; later calls with the same key are
        dropped. Returns whether the warning was emitted.
        """
        k = key if isinstance(key, str) else "|".join(_one_line(x, max_len=160) for x in key)
        with _warned_lock:
            if k in _warned:
                return False
            _warned.add(k)
        Log.warn(logger, msg, **ctx)
        return True

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: Optional[bool] = None,
        utc: bool = False,
        logger_name: str = "vmdesk",
        json_logs: bool = False,
    ) -> logging.Logger:
        """
        (Re)configure ``logger_name`` and return it.

        Existing handlers are replaced, so calling this twice is safe. With
        ``log_file`` a second handler writes uncolored records with the full
        origin prefix (or NDJSON when ``json_logs``).
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        def _formatter(style: LogStyle) -> logging.Formatter:
            return JsonFormatter(utc=utc) if json_logs else EmojiFormatter(style)

        console = LogStyle(
            color=color_wanted(sys.stderr) if color is None else color,
            show_ms=verbose >= 3,
            show_src=verbose >= 3,
            show_pid=verbose >= 2,
            show_thread=verbose >= 3,
            utc=utc,
            unicode=_emoji_ok(sys.stderr),
        )
        handlers: List[logging.Handler] = [logging.StreamHandler(stream=sys.stderr)]
        handlers[0].setFormatter(_formatter(console))

        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(fp, encoding="utf-8")
            fh.setFormatter(
                _formatter(
                    LogStyle(
                        color=False,
                        show_ms=True,
                        show_src=True,
                        show_pid=True,
                        show_thread=True,
                        show_logger=True,
                        utc=utc,
                        unicode=console.unicode,
                    )
                )
            )
            handlers.append(fh)

        for h in handlers:
            h.setLevel(level)
            logger.addHandler(h)

        logger.debug("Logging at %s (pid=%s)", logging.getLevelName(level), os.getpid())
        Log.trace(logger, "TRACE enabled")
        return logger
