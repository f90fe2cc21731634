# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for logger setup and formatters."""
from __future__ import annotations

import json
import logging
import sys

import pytest

from vmdesk.core.logger import TRACE, EmojiFormatter, JsonFormatter, Log, LogStyle, color_wanted, ordered_ctx
from vmdesk.core.logging_utils import log_step


def _record(msg="hello", level=logging.INFO, ctx=None):
    rec = logging.LogRecord("vmdesk.test", level, __file__, 10, msg, None, None)
    if ctx is not None:
        rec.ctx = ctx
    return rec


@pytest.mark.unit
class TestLevels:

    @pytest.mark.parametrize(
        "verbose, quiet, level",
        [
            (0, 0, logging.INFO),
            (2, 0, logging.DEBUG),
            (3, 0, TRACE),
            (0, 1, logging.WARNING),
            (3, 2, logging.ERROR),
        ],
    )
    def test_level_from_flags(self, verbose, quiet, level):
        assert Log._level_from_flags(verbose, quiet) == level

    def test_setup_replaces_handlers(self, tmp_path):
        lg = Log.setup(0, str(tmp_path / "logs" / "vmdesk.log"), logger_name="test.vmdesk.setup")
        lg = Log.setup(0, None, logger_name="test.vmdesk.setup")

        assert len(lg.handlers) == 1
        assert lg.propagate is False
        assert (tmp_path / "logs" / "vmdesk.log").exists()


@pytest.mark.unit
class TestFormatters:

    def test_json_formatter(self):
        out = JsonFormatter().format(_record(ctx={"vmx": "/vms/a/a.vmx"}))
        obj = json.loads(out)

        assert obj["msg"] == "hello"
        assert obj["level"] == "INFO"
        assert obj["ctx"] == {"vmx": "/vms/a/a.vmx"}

    def test_emoji_formatter_plain(self):
        out = EmojiFormatter(LogStyle(color=False)).format(_record(ctx={"pid": 7}))

        assert "INFO" in out
        assert "hello" in out
        assert "pid=7" in out

    def test_driver_context_rendered_first(self):
        rec = _record(ctx={"attempt": 2, "pid": 7, "domain": "web", "vmx": "/vms/web/web.vmx"})
        out = EmojiFormatter(LogStyle(color=False)).format(rec)

        assert out.endswith(" domain=web vmx=/vms/web/web.vmx pid=7 attempt=2")

    def test_json_ctx_keeps_driver_order(self):
        out = JsonFormatter().format(_record(ctx={"b": 1, "flavor": "ws", "domain": "web"}))

        assert list(json.loads(out)["ctx"]) == ["domain", "flavor", "b"]

    def test_traceback_indented(self):
        try:
            raise ValueError("bad vmx")
        except ValueError:
            rec = logging.LogRecord("vmdesk.test", logging.ERROR, __file__, 10, "failed", None, sys.exc_info())
        out = EmojiFormatter(LogStyle(color=False)).format(rec)

        assert "\n  Traceback" in out
        assert out.rstrip().endswith("ValueError: bad vmx")


@pytest.mark.unit
class TestColor:

    def test_ordered_ctx_empty(self):
        assert ordered_ctx(None) == []

    def test_no_color_wins(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")
        monkeypatch.setenv("FORCE_COLOR", "1")

        assert color_wanted() is False

    def test_force_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("FORCE_COLOR", "1")

        assert color_wanted() is True

    def test_plain_style_has_no_escapes(self):
        out = EmojiFormatter(LogStyle(color=False)).format(_record(level=logging.WARNING))

        assert "\x1b[" not in out


@pytest.mark.unit
class TestHelpers:

    def test_bind_carries_context(self, caplog):
        lg = logging.getLogger("test.vmdesk.bind")
        with caplog.at_level(logging.INFO, logger="test.vmdesk.bind"):
            Log.bind(lg, vmx="/vms/a/a.vmx").info("loaded")

        assert caplog.records[0].ctx == {"vmx": "/vms/a/a.vmx"}

    def test_warn_once(self, caplog):
        lg = logging.getLogger("test.vmdesk.once")
        with caplog.at_level(logging.WARNING, logger="test.vmdesk.once"):
            assert Log.warn_once(lg, ("test-once", 1), "first") is True
            assert Log.warn_once(lg, ("test-once", 1), "again") is False

        assert len(caplog.records) == 1

    def test_log_step_success(self, caplog):
        lg = logging.getLogger("test.vmdesk.step")
        with caplog.at_level(logging.INFO, logger="test.vmdesk.step"):
            with log_step(lg, "Loading"):
                pass

        msgs = [r.getMessage() for r in caplog.records]
        assert any("Loading ..." in m for m in msgs)
        assert any("Loading done" in m for m in msgs)

    def test_log_step_reraises(self, caplog):
        lg = logging.getLogger("test.vmdesk.step2")
        with caplog.at_level(logging.INFO, logger="test.vmdesk.step2"):
            with pytest.raises(ValueError):
                with log_step(lg, "Parsing"):
                    raise ValueError("bad vmx")

        assert any("Parsing failed" in r.getMessage() for r in caplog.records)
