# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from enum import Enum
from typing import Mapping

from host_access import Filesystem
from host_access import LocalShell
from host_access import Shell
from host_access import ShellFilesystem
from host_access import SshShell
from proxmox import Container
from proxmox import Identity
from proxmox import PctContainer
from proxmox import ShellIdentity
from proxmox import Storage
from proxmox import Zfs

_logger = logging.getLogger(__name__)


class Location(Enum):
    HOST = 'host'
    CONTAINER = 'container'


class ManagedEnvironment:
    """Everything a provisioning run or an operational command touches."""

    def __init__(
            self,
            storage: Storage,
            host_files: Filesystem,
            container: Container,
            container_files: Filesystem,
            identity: Identity,
            ):
        self.storage = storage
        self.host_files = host_files
        self.container = container
        self.container_files = container_files
        self.identity = identity

    def __repr__(self):
        return f'<{ManagedEnvironment.__name__} {self.container!r}>'

    def files(self, location: Location) -> Filesystem:
        if location == Location.HOST:
            return self.host_files
        return self.container_files


def host_shell(config: Mapping[str, str]) -> Shell:
    if not config.get('ssh_host'):
        return LocalShell()
    return SshShell(
        config['ssh_host'],
        port=int(config.get('ssh_port') or 22),
        username=config.get('ssh_username') or 'root',
        )


def open_environment(shell: Shell, ctid: int) -> ManagedEnvironment:
    _logger.debug("Open CT %d via %r", ctid, shell)
    host_files = ShellFilesystem(shell)
    container = PctContainer(shell, host_files, ctid)
    return ManagedEnvironment(
        storage=Zfs(shell),
        host_files=host_files,
        container=container,
        container_files=ShellFilesystem(container.shell()),
        identity=ShellIdentity(container.shell()),
        )
