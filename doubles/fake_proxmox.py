# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""In-memory Proxmox host: ZFS, an LXC container, its users and files.

Every fake accepts injected failures: fail('create', 'tank/nas/Public')
makes the next and all later calls of that operation on that target
raise CalledProcessError, as a shell command would.
Container paths under bind mounts resolve to host paths,
so files made inside the container appear in datasets.
"""
from pathlib import PurePosixPath
from subprocess import CalledProcessError
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Tuple

from doubles.scripted_shell import ScriptedShell
from host_access import Filesystem
from nas import ManagedEnvironment
from proxmox import Container
from proxmox import IdMap
from proxmox import Identity
from proxmox import SnapshotNotFound
from proxmox import Storage
from proxmox import VolumeNotFound


class _Faults:

    def __init__(self):
        self._faults = set()

    def fail(self, operation: str, target):
        self._faults.add((operation, str(target)))

    def heal(self):
        self._faults.clear()

    def _check(self, operation, target):
        if (operation, str(target)) in self._faults:
            raise CalledProcessError(1, [operation, str(target)], b'', b'injected failure')


class _Entry:

    def __init__(self, kind, text='', target=None, mode=0o755, owner=('root', 'root')):
        self.kind = kind
        self.text = text
        self.target = target
        self.mode = mode
        self.owner = owner

    def copy(self):
        return _Entry(self.kind, self.text, self.target, self.mode, self.owner)

    def describe(self):
        return self.kind, self.text, self.target, self.mode, self.owner


class FakeFilesystem(_Faults, Filesystem):

    def __init__(self, name='fake'):
        super().__init__()
        self._name = name
        self._entries: Dict[PurePosixPath, _Entry] = {PurePosixPath('/'): _Entry('dir')}

    def __repr__(self):
        return f'<{FakeFilesystem.__name__} {self._name}>'

    def exists(self, path):
        return PurePosixPath(path) in self._entries

    def is_dir(self, path):
        entry = self._entries.get(PurePosixPath(path))
        return entry is not None and entry.kind == 'dir'

    def is_link(self, path):
        entry = self._entries.get(PurePosixPath(path))
        return entry is not None and entry.kind == 'link'

    def read_text(self, path):
        path = PurePosixPath(path)
        self._check('read_text', path)
        entry = self._entries.get(path)
        if entry is None:
            raise FileNotFoundError(f"{path} does not exist on {self!r}")
        if entry.kind != 'file':
            raise self._error('cat', path, 'Is a directory')
        return entry.text

    def write_text(self, path, text):
        path = PurePosixPath(path)
        self._check('write_text', path)
        self.make_dirs(path.parent)
        self._entries[path] = _Entry('file', text=text, mode=0o644)

    def copy(self, source, destination):
        source = PurePosixPath(source)
        destination = PurePosixPath(destination)
        self._check('copy', destination)
        if not self.exists(source):
            raise self._error('cp', source, 'No such file or directory')
        self._require_parent(destination)
        self._entries[destination] = self._entries[source].copy()

    def remove(self, path):
        path = PurePosixPath(path)
        self._check('remove', path)
        entry = self._entries.get(path)
        if entry is None:
            return
        if entry.kind == 'dir':
            raise self._error('rm', path, 'Is a directory')
        del self._entries[path]

    def make_dir(self, path):
        path = PurePosixPath(path)
        self._check('make_dir', path)
        if self.exists(path):
            raise self._error('mkdir', path, 'File exists')
        self._require_parent(path)
        self._entries[path] = _Entry('dir')

    def remove_empty_dir(self, path):
        path = PurePosixPath(path)
        self._check('remove_empty_dir', path)
        if not self.is_dir(path):
            raise self._error('rmdir', path, 'No such file or directory')
        if self.list_dir(path):
            raise self._error('rmdir', path, 'Directory not empty')
        del self._entries[path]

    def list_dir(self, path):
        path = PurePosixPath(path)
        if not self.is_dir(path):
            raise self._error('find', path, 'No such file or directory')
        return sorted(child.name for child in self._entries if child.parent == path and child != path)

    def chown(self, path, user, group):
        path = PurePosixPath(path)
        self._check('chown', path)
        self._existing(path).owner = (user, group)

    def chmod(self, path, mode):
        path = PurePosixPath(path)
        self._check('chmod', path)
        self._existing(path).mode = mode

    def symlink(self, target, link):
        link = PurePosixPath(link)
        self._check('symlink', link)
        if self.exists(link):
            raise self._error('ln', link, 'File exists')
        self._require_parent(link)
        self._entries[link] = _Entry('link', target=str(target), mode=0o777)

    def make_dirs(self, path):
        path = PurePosixPath(path)
        for directory in reversed([path, *path.parents]):
            if not self.exists(directory):
                self._entries[directory] = _Entry('dir')

    def mode(self, path) -> int:
        return self._existing(PurePosixPath(path)).mode

    def owner(self, path) -> Tuple:
        return self._existing(PurePosixPath(path)).owner

    def link_target(self, path) -> str:
        return self._existing(PurePosixPath(path)).target

    def save_tree(self, root, exclude=()) -> Mapping[PurePosixPath, _Entry]:
        """Copy entries strictly below root, skipping excluded subtrees."""
        return {
            path: entry.copy()
            for path, entry in self._entries.items()
            if _is_below(path, root) and not any(_is_within(path, e) for e in exclude)}

    def remove_tree(self, root, exclude=(), keep_root=False):
        root = PurePosixPath(root)
        for path in list(self._entries):
            if any(_is_within(path, e) for e in exclude):
                continue
            if _is_below(path, root) or (path == root and not keep_root):
                del self._entries[path]

    def restore_tree(self, saved: Mapping[PurePosixPath, _Entry]):
        for path, entry in saved.items():
            self._entries[path] = entry.copy()

    def listing(self) -> Mapping[str, tuple]:
        return {str(path): entry.describe() for path, entry in sorted(self._entries.items())}

    def _existing(self, path: PurePosixPath) -> _Entry:
        entry = self._entries.get(path)
        if entry is None:
            raise self._error('stat', path, 'No such file or directory')
        return entry

    def _require_parent(self, path: PurePosixPath):
        if not self.is_dir(path.parent):
            raise self._error('stat', path.parent, 'No such file or directory')

    def _error(self, command, path, message):
        return CalledProcessError(1, [command, str(path)], b'', f'{command}: {path}: {message}'.encode())


def _is_below(path, root):
    path = PurePosixPath(path)
    root = PurePosixPath(root)
    return path != root and root in path.parents


def _is_within(path, root):
    return PurePosixPath(path) == PurePosixPath(root) or _is_below(path, root)


class _Volume:

    def __init__(self):
        self.quota: Optional[str] = None
        self.snapshots: Dict[str, Mapping[PurePosixPath, _Entry]] = {}


class FakeStorage(_Faults, Storage):
    """Volumes mounted at /<name> in the host filesystem."""

    def __init__(self, host_files: FakeFilesystem, pools=('tank',)):
        super().__init__()
        self._host_files = host_files
        self._pools = list(pools)
        self._volumes: Dict[str, _Volume] = {}
        for pool in pools:
            self._volumes[pool] = _Volume()
            host_files.make_dirs(self.mountpoint(pool))

    def __repr__(self):
        return f'<{FakeStorage.__name__} {self._pools}>'

    def pool_exists(self, pool):
        return pool in self._pools

    def exists(self, volume):
        return volume in self._volumes

    def create(self, volume):
        self._check('create', volume)
        [pool, *_] = volume.split('/')
        if pool not in self._pools:
            raise CalledProcessError(1, ['zfs', 'create', volume], b'', b"no such pool")
        parts = volume.split('/')
        for i in range(2, len(parts) + 1):
            name = '/'.join(parts[:i])
            if name not in self._volumes:
                self._volumes[name] = _Volume()
                self._host_files.make_dirs(self.mountpoint(name))

    def destroy(self, volume):
        self._check('destroy', volume)
        self._require(volume)
        for name in list(self._volumes):
            if name == volume or name.startswith(volume + '/'):
                del self._volumes[name]
        self._host_files.remove_tree(self.mountpoint(volume))

    def mountpoint(self, volume):
        if volume not in self._volumes:
            raise VolumeNotFound(f"Dataset {volume} does not exist")
        return '/' + volume

    def get_quota(self, volume):
        return self._require(volume).quota

    def set_quota(self, volume, quota):
        self._check('set_quota', volume)
        self._require(volume).quota = quota

    def used(self, volume):
        self._require(volume)
        return '96K'

    def snapshot(self, volume, tag):
        self._check('snapshot', volume)
        data = self._require(volume)
        if tag in data.snapshots:
            raise CalledProcessError(1, ['zfs', 'snapshot', f'{volume}@{tag}'], b'', b'dataset already exists')
        data.snapshots[tag] = self._host_files.save_tree(self.mountpoint(volume), self._children(volume))

    def snapshot_many(self, volumes, tag):
        for volume in volumes:
            self._check('snapshot', volume)
            if tag in self._require(volume).snapshots:
                raise CalledProcessError(1, ['zfs', 'snapshot', f'{volume}@{tag}'], b'', b'dataset already exists')
        for volume in volumes:
            self.snapshot(volume, tag)

    def has_snapshot(self, volume, tag):
        return volume in self._volumes and tag in self._volumes[volume].snapshots

    def rollback(self, volume, tag):
        self._check('rollback', volume)
        data = self._require(volume)
        if tag not in data.snapshots:
            raise SnapshotNotFound(f"Snapshot {volume}@{tag} does not exist")
        tags = list(data.snapshots)
        for later in tags[tags.index(tag) + 1:]:
            del data.snapshots[later]
        root = self.mountpoint(volume)
        self._host_files.remove_tree(root, exclude=self._children(volume), keep_root=True)
        self._host_files.restore_tree(data.snapshots[tag])

    def destroy_snapshot(self, volume, tag):
        self._check('destroy_snapshot', volume)
        data = self._require(volume)
        if tag not in data.snapshots:
            raise SnapshotNotFound(f"Snapshot {volume}@{tag} does not exist")
        del data.snapshots[tag]

    def list_snapshots(self, tag_prefix):
        return [
            f'{name}@{tag}'
            for name, data in self._volumes.items()
            for tag in data.snapshots
            if tag.startswith(tag_prefix)]

    def volumes(self) -> Mapping[str, Optional[str]]:
        return {name: data.quota for name, data in sorted(self._volumes.items())}

    def _children(self, volume):
        return [self.mountpoint(name) for name in self._volumes if name.startswith(volume + '/')]

    def _require(self, volume) -> _Volume:
        try:
            return self._volumes[volume]
        except KeyError:
            raise VolumeNotFound(f"Dataset {volume} does not exist")


class FakeIdentity(_Faults, Identity):

    def __init__(self):
        super().__init__()
        self._users: Dict[str, Tuple[int, str, str]] = {'root': (0, 'root', '/root')}
        self._groups: Dict[str, Tuple[int, List[str]]] = {'root': (0, []), 'nogroup': (65534, [])}
        self.passwords: Dict[str, str] = {}

    def __repr__(self):
        return f'<{FakeIdentity.__name__}>'

    def user_exists(self, name):
        return name in self._users

    def create_user(self, name, home, primary_group):
        self._check('create_user', name)
        if name in self._users:
            raise CalledProcessError(9, ['useradd', name], b'', f"user '{name}' already exists".encode())
        if primary_group not in self._groups:
            raise CalledProcessError(6, ['useradd', name], b'', f"group '{primary_group}' does not exist".encode())
        uid = max([1000 - 1, *(uid for uid, _, _ in self._users.values())]) + 1
        self._users[name] = (uid, primary_group, home)

    def delete_user(self, name):
        self._check('delete_user', name)
        self._users.pop(name, None)
        self.passwords.pop(name, None)
        for _gid, members in self._groups.values():
            if name in members:
                members.remove(name)

    def user_ids(self, name):
        uid, group, _home = self._require_user(name)
        return uid, self._groups[group][0]

    def home_of(self, name):
        _uid, _group, home = self._require_user(name)
        return home

    def groups_of(self, name):
        _uid, primary, _home = self._require_user(name)
        return [primary, *(group for group, (_, members) in self._groups.items() if name in members and group != primary)]

    def set_password(self, name, password):
        self._check('set_password', name)
        self._require_user(name)
        self.passwords[name] = password

    def group_exists(self, name):
        return name in self._groups

    def create_group(self, name):
        self._check('create_group', name)
        if name not in self._groups:
            gid = max([1000 - 1, *(gid for gid, _ in self._groups.values() if gid < 65534)]) + 1
            self._groups[name] = (gid, [])

    def delete_group(self, name):
        self._check('delete_group', name)
        self._groups.pop(name, None)

    def group_id(self, name):
        return self._require_group(name)[0]

    def group_members(self, name):
        return list(self._require_group(name)[1])

    def add_to_group(self, name, group):
        self._check('add_to_group', f'{name}:{group}')
        self._require_user(name)
        members = self._require_group(group)[1]
        if name not in members:
            members.append(name)

    def remove_from_group(self, name, group):
        self._check('remove_from_group', f'{name}:{group}')
        members = self._require_group(group)[1]
        if name not in members:
            raise CalledProcessError(3, ['gpasswd', '-d', name, group], b'', b'is not a member')
        members.remove(name)

    def describe(self):
        return (
            {name: (uid, group, home) for name, (uid, group, home) in sorted(self._users.items())},
            {name: (gid, sorted(members)) for name, (gid, members) in sorted(self._groups.items())},
            )

    def _require_user(self, name):
        try:
            return self._users[name]
        except KeyError:
            raise CalledProcessError(1, ['id', name], b'', f"id: '{name}': no such user".encode())

    def _require_group(self, name):
        try:
            return self._groups[name]
        except KeyError:
            raise CalledProcessError(2, ['getent', 'group', name], b'', b'')


class FakeContainer(_Faults, Container):

    def __init__(
            self,
            host_files: FakeFilesystem,
            ctid: int = 105,
            unprivileged: bool = True,
            id_offset: int = 100000,
            running: bool = True,
            address: Optional[str] = '192.168.1.50',
            ):
        super().__init__()
        self._ctid = ctid
        self._running = running
        self._id_map = IdMap(unprivileged, id_offset if unprivileged else 0)
        self._address = address
        self._mounts: Dict[str, Tuple[str, str]] = {}
        self.root_files = FakeFilesystem(f'CT {ctid}')
        self.root_files.make_dirs('/etc/samba')
        self.files = FakeContainerFilesystem(self, host_files, self.root_files)
        self.shell_double = ScriptedShell()

    def __repr__(self):
        return f'<{FakeContainer.__name__} {self._ctid}>'

    @property
    def ctid(self):
        return self._ctid

    def exists(self):
        return True

    def is_running(self):
        return self._running

    def start(self):
        self._check('start', self._ctid)
        self._running = True

    def stop(self):
        self._running = False

    def shell(self):
        return self.shell_double

    def id_map(self):
        return self._id_map

    def mounts(self):
        return {key: container_path for key, (_host_path, container_path) in self._mounts.items()}

    def bind_sources(self) -> Mapping[str, str]:
        """Map paths inside container to host paths."""
        return {container_path: host_path for host_path, container_path in self._mounts.values()}

    def add_mount(self, host_path, container_path):
        self._check('add_mount', container_path)
        index = 0
        while f'mp{index}' in self._mounts:
            index += 1
        key = f'mp{index}'
        self._mounts[key] = (host_path, container_path)
        return key

    def remove_mount(self, key):
        self._check('remove_mount', key)
        if key not in self._mounts:
            raise CalledProcessError(255, ['pct', 'set', '-delete', key], b'', b'no such mount point')
        del self._mounts[key]

    def address(self):
        return self._address


class FakeContainerFilesystem(Filesystem):
    """Container view: bind mounts win over the container root filesystem."""

    def __init__(self, container: FakeContainer, host_files: FakeFilesystem, root_files: FakeFilesystem):
        self._container = container
        self._host_files = host_files
        self._root_files = root_files

    def __repr__(self):
        return f'<{FakeContainerFilesystem.__name__} of {self._container!r}>'

    def resolve(self, path) -> Tuple[FakeFilesystem, PurePosixPath]:
        path = PurePosixPath(path)
        best = None
        for container_path, host_path in self._container.bind_sources().items():
            if _is_within(path, container_path):
                if best is None or len(PurePosixPath(container_path).parts) > len(PurePosixPath(best[0]).parts):
                    best = container_path, host_path
        if best is None:
            return self._root_files, path
        container_path, host_path = best
        return self._host_files, PurePosixPath(host_path) / path.relative_to(container_path)

    def exists(self, path):
        files, path = self.resolve(path)
        return files.exists(path)

    def is_dir(self, path):
        files, path = self.resolve(path)
        return files.is_dir(path)

    def is_link(self, path):
        files, path = self.resolve(path)
        return files.is_link(path)

    def read_text(self, path):
        files, path = self.resolve(path)
        return files.read_text(path)

    def write_text(self, path, text):
        files, path = self.resolve(path)
        files.write_text(path, text)

    def copy(self, source, destination):
        source_files, source = self.resolve(source)
        files, destination = self.resolve(destination)
        if source_files is not files:
            raise NotImplementedError("Copy across mounts")
        files.copy(source, destination)

    def remove(self, path):
        files, path = self.resolve(path)
        files.remove(path)

    def make_dir(self, path):
        files, path = self.resolve(path)
        files.make_dir(path)

    def remove_empty_dir(self, path):
        files, path = self.resolve(path)
        files.remove_empty_dir(path)

    def list_dir(self, path):
        files, path = self.resolve(path)
        return files.list_dir(path)

    def chown(self, path, user, group):
        files, path = self.resolve(path)
        files.chown(path, user, group)

    def chmod(self, path, mode):
        files, path = self.resolve(path)
        files.chmod(path, mode)

    def symlink(self, target, link):
        files, link = self.resolve(link)
        files.symlink(target, link)


class FakeProxmox:
    """Host with pool "tank" and CT 105 with Samba installed."""

    def __init__(self, unprivileged=True):
        self.host_files = FakeFilesystem('host')
        self.storage = FakeStorage(self.host_files)
        self.container = FakeContainer(self.host_files, unprivileged=unprivileged)
        self.container_files = self.container.files
        self.identity = FakeIdentity()

    def environment(self) -> ManagedEnvironment:
        return ManagedEnvironment(
            storage=self.storage,
            host_files=self.host_files,
            container=self.container,
            container_files=self.container_files,
            identity=self.identity,
            )

    def world(self):
        """Everything provisioning may change, in a comparable form."""
        return {
            'volumes': self.storage.volumes(),
            'host': self.host_files.listing(),
            'container': self.container.root_files.listing(),
            'mounts': self.container.mounts(),
            'identity': self.identity.describe(),
            }
