# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/cephmon/utils/ssh_runner.py

from __future__ import annotations

import logging
import shlex
from typing import Optional, Sequence

import paramiko

from ..config.models import StatusSSH
from ..execution.runner import CommandError

log = logging.getLogger("cephmon")


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    @classmethod
    def connect(cls, host: StatusSSH, *, timeout: float = 20.0) -> "SSHRunner":
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        pkey = None
        if host.pkey_path:
            try:
                pkey = paramiko.RSAKey.from_private_key_file(host.pkey_path)
            except paramiko.ssh_exception.SSHException:
                pkey = paramiko.Ed25519Key.from_private_key_file(host.pkey_path)

        client.connect(
            hostname=host.host,
            port=host.port,
            username=host.username,
            password=host.password if not pkey else None,
            pkey=pkey,
            timeout=timeout,
            allow_agent=True,
            look_for_keys=True,
        )
        return cls(client)

    def run(
        self,
        cmd: str,
        *,
        sudo: bool = False,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        if sudo:
            cmd = f"sudo -H -E bash -c {shlex.quote(cmd)}"

        stdin, stdout, stderr = self.client.exec_command(cmd, timeout=timeout)
        out = stdout.read().decode()
        err = stderr.read().decode()
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    def close(self) -> None:
        self.client.close()


class SSHStatusExecutor:
    """Runs mon status commands on a remote mon/toolbox host."""

    def __init__(self, ssh: SSHRunner, *, sudo: bool = True, timeout: Optional[float] = 30.0):
        self.ssh = ssh
        self.sudo = sudo
        self.timeout = timeout

    def execute_for_status(self, command: str, args: Sequence[str]) -> str:
        cmd = shlex.join([command, *args])
        log.debug("[ssh] $ %s", cmd)
        rc, out, err = self.ssh.run(cmd, sudo=self.sudo, timeout=self.timeout)
        if rc != 0:
            raise CommandError(cmd, rc, err or out)
        return out
