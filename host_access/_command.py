# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import os
import shlex
from abc import ABCMeta
from abc import abstractmethod
from subprocess import CalledProcessError
from subprocess import CompletedProcess
from textwrap import dedent
from typing import Optional
from typing import Sequence
from typing import Union

_logger = logging.getLogger(__name__)

_DEFAULT_RUN_TIMEOUT_SEC = 60

Command = Union[str, Sequence[Union[str, int, os.PathLike]]]


class _CalledProcessError(CalledProcessError):

    def __str__(self):
        stderr = (self.stderr or b'').decode(errors='backslashreplace').strip()[:5000]
        if self.returncode is None:
            result = "no exit status"
        else:
            result = f"exit status {self.returncode}"
        return f"Command {self.cmd} died with {result}: {stderr}"


def quote_arg(arg):
    return shlex.quote(str(arg))


def command_to_script(command):
    """Join args into a single line for a POSIX shell.

    >>> command_to_script(['zfs', 'set', 'quota=10G', 'tank/nas homes'])
    "zfs set quota=10G 'tank/nas homes'"
    >>> command_to_script(['chmod', 1777, '/srv'])
    'chmod 1777 /srv'
    >>> command_to_script(['rm', True])
    Traceback (most recent call last):
    ...
    TypeError: Unsupported arg type True in command ['rm', True]
    """
    str_args = []
    for arg in command:
        if isinstance(arg, str):
            str_args.append(arg)
        elif isinstance(arg, int) and not isinstance(arg, bool):
            str_args.append(str(arg))
        elif isinstance(arg, os.PathLike):
            str_args.append(os.fspath(arg))
        else:
            raise TypeError(f"Unsupported arg type {arg} in command {command}")
    return shlex.join(str_args)


def augment_script(script, set_eu=True):
    """Prepare multiline script for sh.

    >>> print(augment_script('''
    ...     mkdir -p /etc/nas
    ...     cat /etc/nas/state.env
    ...     '''))
    set -eu
    mkdir -p /etc/nas
    cat /etc/nas/state.env
    """
    lines = []
    if set_eu:
        # language=Bash
        lines.append('set -eu')  # It's sh (dash), pipefail cannot be set here.
    lines.append(dedent(script).strip())
    return '\n'.join(lines)


def to_script(command: Command) -> str:
    if isinstance(command, str):
        return augment_script(command, set_eu='\n' in command.strip())
    return command_to_script(command)


class Shell(metaclass=ABCMeta):
    """Run commands somewhere: locally, over SSH or inside a container.

    A string is interpreted as a shell script, a sequence as an executable
    with arguments.
    """

    @abstractmethod
    def _execute(
            self,
            command: Command,
            input: Optional[bytes],  # noqa PyShadowingBuiltins
            timeout_sec: float,
            ) -> CompletedProcess:
        pass

    def run(
            self,
            command: Command,
            input: Optional[bytes] = None,  # noqa PyShadowingBuiltins
            timeout_sec: float = _DEFAULT_RUN_TIMEOUT_SEC,
            check=True,
            ) -> CompletedProcess:
        result = self._execute(command, input, timeout_sec)
        if check and result.returncode != 0:
            raise _CalledProcessError(result.returncode, command, result.stdout, result.stderr)
        return result

    def output(self, command: Command, **kwargs) -> str:
        return self.run(command, **kwargs).stdout.decode().strip()

    def succeeds(self, command: Command, **kwargs) -> bool:
        result = self.run(command, check=False, **kwargs)
        _logger.debug("%r: exit status %d", command, result.returncode)
        return result.returncode == 0
