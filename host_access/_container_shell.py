# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from host_access._command import Shell
from host_access._command import to_script


class ContainerShell(Shell):
    """Run commands inside an LXC container through pct on its host.

    >>> from host_access._local_shell import local_shell
    >>> ContainerShell(local_shell, 105)
    <ContainerShell 105 via <LocalShell>>
    """

    def __init__(self, host_shell: Shell, ctid: int):
        self._host_shell = host_shell
        self._ctid = ctid

    def __repr__(self):
        return f'<ContainerShell {self._ctid} via {self._host_shell!r}>'

    def _execute(self, command, input, timeout_sec):
        script = to_script(command)
        return self._host_shell.run(
            ['pct', 'exec', self._ctid, '--', 'bash', '-lc', script],
            input=input,
            timeout_sec=timeout_sec,
            check=False,
            )
