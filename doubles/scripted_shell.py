# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from subprocess import CompletedProcess
from typing import List
from typing import Optional

from host_access import Shell
from host_access._command import to_script

_logger = logging.getLogger(__name__)


class ScriptedShell(Shell):
    """Record commands and answer them with canned results.

    The latest response whose prefix matches the command wins.
    Unmatched commands succeed with empty output.

    >>> shell = ScriptedShell()
    >>> shell.respond('zfs list', returncode=1, stderr=b'dataset does not exist')
    >>> shell.succeeds(['zfs', 'list', '-H', 'tank/nas'])
    False
    >>> shell.commands
    ['zfs list -H tank/nas']
    """

    def __init__(self):
        self.commands: List[str] = []
        self.inputs: List[Optional[bytes]] = []
        self._responses = []

    def __repr__(self):
        return '<ScriptedShell>'

    def respond(self, prefix: str, stdout=b'', stderr=b'', returncode=0):
        self._responses.append((prefix, stdout, stderr, returncode))

    def _execute(self, command, input, timeout_sec):
        script = to_script(command)
        _logger.debug("Scripted: %s", script)
        self.commands.append(script)
        self.inputs.append(input)
        for prefix, stdout, stderr, returncode in reversed(self._responses):
            if script.startswith(prefix):
                return CompletedProcess(command, returncode, stdout, stderr)
        return CompletedProcess(command, 0, b'', b'')

