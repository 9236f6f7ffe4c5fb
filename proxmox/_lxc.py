# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import re
from abc import ABCMeta
from abc import abstractmethod
from typing import Mapping
from typing import NamedTuple
from typing import Optional

from host_access import ContainerShell
from host_access import Filesystem
from host_access import Shell

_logger = logging.getLogger(__name__)

_DEFAULT_ID_OFFSET = 100000


class ContainerNotFound(Exception):
    pass


class IdMap(NamedTuple):
    """How container uids and gids look on the host.

    >>> IdMap(unprivileged=True, offset=100000).host_id(1000)
    101000
    >>> IdMap(unprivileged=False, offset=0).host_id(1000)
    1000
    """

    unprivileged: bool
    offset: int

    def host_id(self, container_id: int) -> int:
        if self.unprivileged:
            return self.offset + container_id
        return container_id


class Container(metaclass=ABCMeta):

    @property
    @abstractmethod
    def ctid(self) -> int:
        pass

    @abstractmethod
    def exists(self) -> bool:
        pass

    @abstractmethod
    def is_running(self) -> bool:
        pass

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def shell(self) -> Shell:
        pass

    @abstractmethod
    def id_map(self) -> IdMap:
        pass

    @abstractmethod
    def mounts(self) -> Mapping[str, str]:
        """Map mount point keys (mp0, mp1, ...) to paths inside container."""
        pass

    @abstractmethod
    def add_mount(self, host_path: str, container_path: str) -> str:
        """Bind host path into container. Return the new mount point key."""
        pass

    @abstractmethod
    def remove_mount(self, key: str):
        pass

    @abstractmethod
    def address(self) -> Optional[str]:
        pass


class PctContainer(Container):

    def __init__(self, host_shell: Shell, host_files: Filesystem, ctid: int):
        self._host_shell = host_shell
        self._host_files = host_files
        self._ctid = ctid
        self._shell = ContainerShell(host_shell, ctid)

    def __repr__(self):
        return f'<CT {self._ctid}>'

    @property
    def ctid(self):
        return self._ctid

    def config_path(self):
        return f'/etc/pve/lxc/{self._ctid}.conf'

    def exists(self):
        return (
            self._host_shell.succeeds(['pct', 'status', self._ctid])
            and self._host_files.exists(self.config_path()))

    def is_running(self):
        result = self._host_shell.run(['pct', 'status', self._ctid], check=False)
        if result.returncode != 0:
            raise ContainerNotFound(f"CT {self._ctid} not found: {result.stderr.decode().strip()}")
        return 'running' in result.stdout.decode()

    def start(self):
        _logger.info("%r: start", self)
        self._host_shell.run(['pct', 'start', self._ctid])

    def shell(self):
        return self._shell

    def id_map(self):
        return parse_id_map(self._read_config())

    def mounts(self):
        return parse_mounts(self._read_config())

    def add_mount(self, host_path, container_path):
        key = _next_mount_key(self.mounts())
        _logger.info("%r: add mount %s: %s -> %s", self, key, host_path, container_path)
        self._host_shell.run(['pct', 'set', self._ctid, f'-{key}', f'{host_path},mp={container_path}'])
        return key

    def remove_mount(self, key):
        _logger.info("%r: remove mount %s", self, key)
        self._host_shell.run(['pct', 'set', self._ctid, '-delete', key])

    def address(self):
        result = self._shell.run(['hostname', '-I'], check=False)
        [address, *_] = result.stdout.decode().split() or [None]
        return address

    def _read_config(self):
        try:
            return self._host_files.read_text(self.config_path())
        except FileNotFoundError:
            raise ContainerNotFound(f"Missing LXC config: {self.config_path()}")


def _current_section(config: str):
    """Drop snapshot sections: they describe the past, not the container."""
    [current, *_snapshots] = re.split(r'^\[', config, maxsplit=1, flags=re.MULTILINE)
    return current


def parse_mounts(config: str) -> Mapping[str, str]:
    """Parse mount points of a Proxmox LXC config.

    >>> parse_mounts('''
    ... arch: amd64
    ... mp0: /tank/nas,mp=/srv/nas
    ... mp2: /tank/nas/homes,mp=/srv/nas/homes,backup=0
    ... rootfs: local-zfs:subvol-105-disk-0,size=8G
    ... [nas-before]
    ... mp1: /tank/old,mp=/srv/old
    ... ''')
    {'mp0': '/srv/nas', 'mp2': '/srv/nas/homes'}
    """
    result = {}
    for line in _current_section(config).splitlines():
        match = re.fullmatch(r'(mp\d+):\s*(\S+)', line.strip())
        if match is None:
            continue
        [_source, *options] = match[2].split(',')
        for option in options:
            name, _, value = option.partition('=')
            if name == 'mp':
                result[match[1]] = value
    return result


def parse_id_map(config: str) -> IdMap:
    """Find out whether container is unprivileged and its uid offset.

    >>> parse_id_map('arch: amd64\\nunprivileged: 1\\n')
    IdMap(unprivileged=True, offset=100000)
    >>> parse_id_map('unprivileged: 1\\nlxc.idmap: u 0 200000 65536\\nlxc.idmap: g 0 200000 65536\\n')
    IdMap(unprivileged=True, offset=200000)
    >>> parse_id_map('arch: amd64\\n')
    IdMap(unprivileged=False, offset=0)
    """
    config = _current_section(config)
    if re.search(r'^unprivileged:\s*1\s*$', config, flags=re.MULTILINE) is None:
        return IdMap(unprivileged=False, offset=0)
    match = re.search(r'^lxc\.idmap\s*[:=]\s*u\s+0\s+(\d+)\s', config, flags=re.MULTILINE)
    if match is None:
        return IdMap(unprivileged=True, offset=_DEFAULT_ID_OFFSET)
    return IdMap(unprivileged=True, offset=int(match[1]))


def _next_mount_key(mounts: Mapping[str, str]) -> str:
    """Find the lowest free mount point key.

    >>> _next_mount_key({})
    'mp0'
    >>> _next_mount_key({'mp0': '/srv/nas', 'mp2': '/srv/nas/homes'})
    'mp1'
    """
    used = {int(key[2:]) for key in mounts}
    index = 0
    while index in used:
        index += 1
    return f'mp{index}'
