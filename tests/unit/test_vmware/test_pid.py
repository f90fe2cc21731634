# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for reading the VM process id out of vmware.log."""
from __future__ import annotations

import os

import pytest

from vmdesk.core.exceptions import MalformedLog, NotFound
from vmdesk.vmware.pid import extract_pid, log_path_for, parse_pid_line, try_extract_pid


@pytest.mark.unit
class TestParsePidLine:

    def test_typical_first_line(self):
        line = "2024-03-01T10:11:12.345Z In(05) vmx Log for VMware Workstation pid=4321 version=17.5.0\n"

        assert parse_pid_line(line) == 4321

    def test_missing_marker(self):
        with pytest.raises(MalformedLog) as ei:
            parse_pid_line("2024-03-01 vmx Log for VMware Workstation version=17.5.0\n")

        assert "cannot find pid" in str(ei.value)

    def test_marker_needs_leading_space(self):
        with pytest.raises(MalformedLog):
            parse_pid_line("xpid=12 version=1\n")

    @pytest.mark.parametrize(
        "line",
        [
            "vmx pid=abc version=1\n",
            "vmx pid= 12 version=1\n",
            "vmx pid=12\n",
            "vmx pid=12",
            "vmx pid=12,version=1\n",
        ],
    )
    def test_bad_value_or_terminator(self, line):
        with pytest.raises(MalformedLog):
            parse_pid_line(line)

    def test_negative_rejected(self):
        with pytest.raises(MalformedLog):
            parse_pid_line("vmx pid=-5 version=1\n")

    def test_int32_bounds(self):
        assert parse_pid_line("vmx pid=2147483647 version=1\n") == 2147483647
        with pytest.raises(MalformedLog):
            parse_pid_line("vmx pid=2147483648 version=1\n")

    def test_first_marker_wins(self):
        assert parse_pid_line("vmx pid=10 child pid=20 x\n") == 10


@pytest.mark.unit
class TestExtractPid:

    def test_reads_log_next_to_vmx(self, make_vm):
        vmx = make_vm("alpha", pid=9876)

        assert extract_pid(vmx) == 9876

    def test_log_path(self):
        assert log_path_for("/vms/a/a.vmx") == "/vms/a/vmware.log"
        assert log_path_for("/vms/a/a.vmx", "other.log") == "/vms/a/other.log"

    def test_missing_log(self, make_vm):
        vmx = make_vm("beta", pid=None)

        with pytest.raises(NotFound):
            extract_pid(vmx)

    def test_empty_log(self, make_vm):
        vmx = make_vm("gamma", pid=None)
        open(os.path.join(os.path.dirname(vmx), "vmware.log"), "w").close()

        with pytest.raises(MalformedLog) as ei:
            extract_pid(vmx)

        assert "unable to read vmware log file" in str(ei.value)

    def test_only_first_line_is_read(self, make_vm):
        vmx = make_vm("delta", pid=None)
        with open(os.path.join(os.path.dirname(vmx), "vmware.log"), "w") as f:
            f.write("no marker here\n")
            f.write("later line pid=55 x\n")

        with pytest.raises(MalformedLog):
            extract_pid(vmx)

    def test_custom_log_name(self, make_vm):
        vmx = make_vm("eps", pid=None)
        with open(os.path.join(os.path.dirname(vmx), "vmx.log"), "w") as f:
            f.write("vmx pid=77 version=1\n")

        assert extract_pid(vmx, "vmx.log") == 77

    def test_try_extract_pid_soft_on_missing(self, make_vm):
        assert try_extract_pid(make_vm("zeta", pid=None)) is None

    def test_try_extract_pid_still_raises_on_garbage(self, make_vm):
        vmx = make_vm("eta", pid="zz")

        with pytest.raises(MalformedLog):
            try_extract_pid(vmx)
