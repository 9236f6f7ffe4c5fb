# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import subprocess

from host_access._command import Shell
from host_access._command import to_script

_logger = logging.getLogger(__name__)


class LocalShell(Shell):

    def __repr__(self):
        return '<LocalShell>'

    def _execute(self, command, input, timeout_sec):
        if isinstance(command, str):
            script = to_script(command)
            if '\n' in script:
                _logger.info("Run local script:\n%s", script)
            else:
                _logger.info("Run local script: %s", script)
            args = ['/bin/sh', '-c', script]
        else:
            args = [str(arg) for arg in command]
            _logger.info("Run: %s", to_script(args))
        return subprocess.run(
            args,
            input=input,
            # Do not hang waiting for input when no input is actually needed.
            stdin=subprocess.DEVNULL if input is None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout_sec,
            )


local_shell = LocalShell()
