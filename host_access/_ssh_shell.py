# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import socket
import time
from subprocess import CompletedProcess
from subprocess import TimeoutExpired
from typing import Optional

import paramiko

from host_access._command import Shell
from host_access._command import command_to_script
from host_access._command import to_script

_logger = logging.getLogger(__name__)


class SshNotConnected(Exception):

    def __init__(self, ssh, message):
        super().__init__(message)
        self.ssh = ssh


class SshShell(Shell):
    """Run commands on a remote Proxmox host.

    Output is collected in memory: commands issued by the tools are short
    and their output is small.
    """

    def __init__(
            self,
            hostname: str,
            port: int = 22,
            username: str = 'root',
            key_filename: Optional[str] = None,
            ):
        self._hostname = hostname
        self._port = port
        self._username = username
        self._key_filename = key_filename

    def __repr__(self):
        return '<{!s}>'.format(command_to_script([
            'ssh', '{!s}@{!s}'.format(self._username, self._hostname),
            '-p', self._port,
            ]))

    def _execute(self, command, input, timeout_sec):
        script = to_script(command)
        if '\n' in script:
            _logger.info("Run on %s:\n%s", self, script)
        else:
            _logger.info("Run on %s: %s", self, script)
        channel = self._client().get_transport().open_session()
        try:
            channel.exec_command(script)
            if input is not None:
                channel.sendall(input)
            channel.shutdown_write()
            stdout, stderr = self._receive(channel, command, timeout_sec)
            returncode = channel.recv_exit_status()
        finally:
            channel.close()
        return CompletedProcess(command, returncode, stdout, stderr)

    @staticmethod
    def _receive(channel: paramiko.Channel, command, timeout_sec):
        stdout = []
        stderr = []
        started_at = time.monotonic()
        while True:
            # Exit status is cached first: Paramiko sets it in another thread.
            exited = channel.exit_status_ready()
            received = False
            if channel.recv_ready():
                stdout.append(channel.recv(16 * 1024))
                received = True
            if channel.recv_stderr_ready():
                stderr.append(channel.recv_stderr(16 * 1024))
                received = True
            if exited and not received:
                break
            if time.monotonic() - started_at > timeout_sec:
                raise TimeoutExpired(command, timeout_sec, b''.join(stdout), b''.join(stderr))
            if not received:
                time.sleep(0.05)
        return b''.join(stdout), b''.join(stderr)

    def _client(self) -> paramiko.SSHClient:
        try:
            return self._ssh_client
        except AttributeError:
            pass
        ssh_client = paramiko.SSHClient()
        ssh_client.load_system_host_keys()
        ssh_client.set_missing_host_key_policy(paramiko.RejectPolicy())
        try:
            ssh_client.connect(
                self._hostname,
                port=self._port,
                username=self._username,
                key_filename=self._key_filename,
                look_for_keys=self._key_filename is None,
                allow_agent=self._key_filename is None,
                )
        except paramiko.ssh_exception.NoValidConnectionsError as e:
            raise SshNotConnected(self, f"Cannot connect to {self}: {e} (is port opened?)")
        except paramiko.ssh_exception.SSHException as e:
            raise SshNotConnected(self, f"Cannot connect to {self}: {e} (is host key known?)")
        except socket.gaierror as e:
            raise SshNotConnected(self, f"Cannot resolve {self._hostname!r}: {e}")
        self._ssh_client = ssh_client
        return self._ssh_client

    def close(self):
        try:
            ssh = self._ssh_client
        except AttributeError:
            pass
        else:
            ssh.close()
            del self._ssh_client
