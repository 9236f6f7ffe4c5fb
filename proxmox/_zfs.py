# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from subprocess import CompletedProcess

from host_access import Shell
from proxmox._storage import SnapshotNotFound
from proxmox._storage import Storage
from proxmox._storage import VolumeNotFound

_logger = logging.getLogger(__name__)

# Options every dataset gets. POSIX ACLs and xattrs in inodes are needed
# for Samba acl_xattr to work and be fast.
_CREATE_OPTIONS = [
    'compression=zstd',
    'atime=off',
    'xattr=sa',
    'acltype=posixacl',
    'aclinherit=passthrough',
    'aclmode=passthrough',
    ]


class Zfs(Storage):

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<Zfs via {self._shell!r}>'

    def pool_exists(self, pool):
        return self._shell.succeeds(['zpool', 'list', '-H', '-o', 'name', pool])

    def exists(self, volume):
        return self._shell.succeeds(['zfs', 'list', '-H', '-o', 'name', volume])

    def create(self, volume):
        options = [arg for option in _CREATE_OPTIONS for arg in ('-o', option)]
        self._shell.run(['zfs', 'create', '-p', *options, volume])
        _logger.info("%s: dataset created", volume)

    def destroy(self, volume):
        self._shell.run(['zfs', 'destroy', '-r', volume])
        _logger.info("%s: dataset destroyed", volume)

    def mountpoint(self, volume):
        return self._get(volume, 'mountpoint')

    def get_quota(self, volume):
        value = self._get(volume, 'quota')
        if value in ('none', '-', '0'):
            return None
        return value

    def set_quota(self, volume, quota):
        self._shell.run(['zfs', 'set', f'quota={quota or "none"}', volume])
        _logger.info("%s: quota=%s", volume, quota or 'none')

    def used(self, volume):
        return self._get(volume, 'used')

    def snapshot(self, volume, tag):
        self._shell.run(['zfs', 'snapshot', f'{volume}@{tag}'])

    def snapshot_many(self, volumes, tag):
        self._shell.run(['zfs', 'snapshot', *[f'{volume}@{tag}' for volume in volumes]])

    def has_snapshot(self, volume, tag):
        return self._shell.succeeds(['zfs', 'list', '-H', '-t', 'snapshot', '-o', 'name', f'{volume}@{tag}'])

    def rollback(self, volume, tag):
        result = self._shell.run(['zfs', 'rollback', '-r', f'{volume}@{tag}'], check=False)
        self._check_snapshot_result(result, volume, tag)

    def destroy_snapshot(self, volume, tag):
        result = self._shell.run(['zfs', 'destroy', f'{volume}@{tag}'], check=False)
        self._check_snapshot_result(result, volume, tag)

    def list_snapshots(self, tag_prefix):
        output = self._shell.output(['zfs', 'list', '-H', '-t', 'snapshot', '-o', 'name'])
        return [name for name in output.splitlines() if name.partition('@')[2].startswith(tag_prefix)]

    def _get(self, volume, prop):
        result = self._shell.run(['zfs', 'get', '-H', '-o', 'value', prop, volume], check=False)
        if result.returncode != 0:
            if b'does not exist' in result.stderr.lower():
                raise VolumeNotFound(f"{volume}: dataset does not exist")
            result.check_returncode()
        return result.stdout.decode().strip()

    @staticmethod
    def _check_snapshot_result(result: CompletedProcess, volume, tag):
        if result.returncode == 0:
            return
        stderr = result.stderr.lower()
        if b'does not exist' in stderr or b'could not find any snapshots' in stderr:
            raise SnapshotNotFound(f"{volume}@{tag}: snapshot does not exist")
        _logger.error("%s@%s: failure: %s", volume, tag, result.stderr)
        result.check_returncode()

