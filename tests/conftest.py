# SPDX-License-Identifier: LGPL-3.0-or-later
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

for _p in (_REPO_ROOT, _THIS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))

from vmdesk.libvirt.capabilities import Capabilities  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external tools")


VMX_TEMPLATE = """\
.encoding = "UTF-8"
config.version = "8"
virtualHW.version = "19"
displayName = "{name}"
guestOS = "ubuntu-64"
memsize = "2048"
numvcpus = "2"
scsi0.present = "TRUE"
scsi0:0.present = "TRUE"
scsi0:0.fileName = "{disk}"
"""

VNC_LINES = """\
RemoteDisplay.vnc.enabled = "TRUE"
RemoteDisplay.vnc.port = "5901"
"""


def log_line(pid: Union[int, str]) -> str:
    return f"2024-03-01T10:11:12.345Z In(05) vmx Log for VMware Workstation pid={pid} version=17.5.0 build=build-22583795\n"


@pytest.fixture
def make_vm(tmp_path: Path) -> Callable[..., str]:
    """
    Create ``<tmp>/<name>/<name>.vmx`` (plus vmware.log unless pid is None).

    Returns the absolute vmx path.
    """

    def _make(
        name: str,
        *,
        pid: Optional[Union[int, str]] = 4321,
        vnc: bool = False,
        disk: Optional[str] = None,
        extra: str = "",
    ) -> str:
        vm_dir = tmp_path / name
        vm_dir.mkdir(parents=True, exist_ok=True)
        vmx = vm_dir / f"{name}.vmx"
        body = VMX_TEMPLATE.format(name=name, disk=disk or f"{vm_dir}/{name}.vmdk")
        if vnc:
            body += VNC_LINES
        vmx.write_text(body + extra, encoding="utf-8")
        if pid is not None:
            (vm_dir / "vmware.log").write_text(log_line(pid) + "second line\n", encoding="utf-8")
        return str(vmx)

    return _make


class FakeRunner:
    """
    Stand-in for subprocess.run.

    ``responses`` maps the command (as a tuple) to (returncode, stdout)
    or to an exception instance to raise.
    """

    def __init__(self) -> None:
        self.responses: Dict[Tuple[str, ...], Union[Tuple[int, str], BaseException]] = {}
        self.calls: List[Tuple[Tuple[str, ...], dict]] = []

    def set(self, cmd: Sequence[str], rc: int = 0, stdout: str = "") -> None:
        self.responses[tuple(cmd)] = (rc, stdout)

    def fail(self, cmd: Sequence[str], exc: BaseException) -> None:
        self.responses[tuple(cmd)] = exc

    def __call__(self, cmd, **kwargs):
        key = tuple(str(x) for x in cmd)
        self.calls.append((key, kwargs))
        resp = self.responses.get(key)
        if resp is None:
            raise FileNotFoundError(2, "No such file or directory", key[0])
        if isinstance(resp, BaseException):
            raise resp
        rc, out = resp
        return subprocess.CompletedProcess(list(key), rc, stdout=out, stderr="")


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr(subprocess, "run", runner)
    return runner


@pytest.fixture
def caps() -> Capabilities:
    return Capabilities.probe(machine="x86_64", cpu_flags=frozenset({"lm", "vmx"}))


@pytest.fixture(autouse=True)
def _reset_vmdesk_logger():
    """CLI tests call Log.setup(); undo it so caplog keeps seeing vmdesk.* records."""
    yield
    lg = logging.getLogger("vmdesk")
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()
    lg.propagate = True
    lg.setLevel(logging.NOTSET)
