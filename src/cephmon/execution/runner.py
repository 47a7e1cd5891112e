# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/execution/runner.py

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Sequence

log = logging.getLogger("cephmon")


class CommandError(RuntimeError):
    def __init__(self, cmd: str, returncode: int, stderr: str = ""):
        super().__init__(f"command failed (exit {returncode}): {cmd}: {stderr.strip()}")
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr


@dataclass
class CommandExecutor:
    """
    Runs status commands locally and returns stdout.
    In dry-run mode nothing is executed and dry_run_output is returned.
    """
    timeout: Optional[float] = 30.0
    dry_run: bool = False
    dry_run_output: str = ""
    label: Optional[str] = None

    def execute_for_status(self, command: str, args: Sequence[str]) -> str:
        label = self.label or command
        argv = [command, *args]
        cmd_str = shlex.join(argv)
        log.debug("[%s] $ %s", label, cmd_str)

        if self.dry_run:
            log.debug("[%s] dry-run: skipped execution", label)
            return self.dry_run_output

        start = time.time()
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                check=False,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandError(cmd_str, -1, f"timed out after {self.timeout}s") from exc

        duration = time.time() - start
        if result.stderr:
            log.debug("[%s][stderr]\n%s", label, result.stderr.rstrip())
        log.debug("[%s][exit %d] (%.2fs)", label, result.returncode, duration)

        if result.returncode != 0:
            raise CommandError(cmd_str, result.returncode, result.stderr or result.stdout)
        return result.stdout
