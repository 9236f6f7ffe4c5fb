# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from host_access._command import Shell
from host_access._command import command_to_script
from host_access._command import quote_arg
from host_access._container_shell import ContainerShell
from host_access._filesystem import Filesystem
from host_access._filesystem import ShellFilesystem
from host_access._local_shell import LocalShell
from host_access._local_shell import local_shell
from host_access._ssh_shell import SshNotConnected
from host_access._ssh_shell import SshShell

__all__ = [
    'ContainerShell',
    'Filesystem',
    'LocalShell',
    'Shell',
    'ShellFilesystem',
    'SshNotConnected',
    'SshShell',
    'command_to_script',
    'local_shell',
    'quote_arg',
    ]
