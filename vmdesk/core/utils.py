# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vmdesk/core/utils.py
from __future__ import annotations

import json
import logging
import shlex
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ExternalToolError, FileAccessError, SizeExceeded


class U:
    @staticmethod
    def which(prog: str) -> Optional[str]:
        from shutil import which as _which
        return _which(prog)

    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return repr(obj)

    @staticmethod
    def _pretty_cmd(cmd: List[str]) -> str:
        return " ".join(shlex.quote(str(x)) for x in cmd)

    @staticmethod
    def run_cmd(
        logger: logging.Logger,
        cmd: List[str],
        *,
        check: bool = True,
        capture: bool = False,
        merge_stderr: bool = False,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        cwd: Optional[Union[str, Path]] = None,
        fatal: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a command once. There is no retry.

        - capture=True captures stdout and stderr separately (text mode)
        - merge_stderr=True captures stderr into stdout (some tools print banners on stderr)
        - fatal=True wraps failures (non-zero exit, spawn failure, timeout) into
          ExternalToolError; otherwise subprocess/OS exceptions propagate
        """
        pretty = U._pretty_cmd(cmd)
        logger.debug("Running: %s", pretty)

        kwargs: Dict[str, Any] = {}
        if merge_stderr:
            kwargs.update(stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        elif capture:
            kwargs.update(capture_output=True)

        try:
            cp = subprocess.run(
                cmd,
                check=False,
                text=True,
                env=env,
                timeout=timeout,
                cwd=str(cwd) if cwd is not None else None,
                **kwargs,
            )
            if check and cp.returncode != 0:
                raise subprocess.CalledProcessError(cp.returncode, cmd, output=cp.stdout, stderr=cp.stderr)
            return cp

        except subprocess.CalledProcessError as e:
            stdout = (e.stdout or e.output or "").strip()
            stderr = (e.stderr or "").strip()
            if stdout or stderr:
                logger.error(
                    "Command failed: %s (rc=%s)%s%s",
                    pretty,
                    e.returncode,
                    f"\nstdout:\n{stdout}" if stdout else "",
                    f"\nstderr:\n{stderr}" if stderr else "",
                )
            else:
                logger.error("Command failed: %s (rc=%s, no output)", pretty, e.returncode)

            if fatal:
                raise ExternalToolError(
                    msg=f"Command failed with exit status {e.returncode}: {pretty}",
                    cause=e,
                    context={"rc": e.returncode},
                ) from e
            raise

        except subprocess.TimeoutExpired as e:
            logger.error("Command timed out: %s (timeout=%ss)", pretty, timeout)
            if fatal:
                raise ExternalToolError(msg=f"Command timed out after {timeout}s: {pretty}", cause=e) from e
            raise

        except OSError as e:
            logger.error("Command error: %s (%s)", pretty, e)
            if fatal:
                raise ExternalToolError(msg=f"Cannot run {pretty}: {e}", cause=e) from e
            raise

    @staticmethod
    def read_file_bounded(path: Union[str, Path], max_bytes: int) -> bytes:
        """
        Read a whole file, refusing anything larger than max_bytes.

        Raises FileAccessError if the file cannot be read and SizeExceeded
        if it is too large.
        """
        try:
            with open(path, "rb") as f:
                data = f.read(max_bytes + 1)
        except OSError as e:
            raise FileAccessError(msg=f"Failed to read file '{path}': {e.strerror or e}", cause=e) from e

        if len(data) > max_bytes:
            raise SizeExceeded(msg=f"File '{path}' is larger than {max_bytes} bytes").with_context(path=str(path))
        return data
