# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""All-or-nothing provisioning of a NAS.

A run is a list of steps executed top-down. Each step checks what is
already there, creates only what is missing and appends a record for
everything it creates. The first failing step stops the run: records are
undone newest first and the failure of the step is reported.
"""
import logging
import time
from abc import ABCMeta
from abc import abstractmethod
from pathlib import PurePosixPath
from typing import Callable
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from nas._environment import Location
from nas._environment import ManagedEnvironment
from nas._exceptions import PreconditionError
from nas._exceptions import StepFailure
from nas._exceptions import ValidationError
from nas._ledger import BindMountAdded
from nas._ledger import ConfigFileWritten
from nas._ledger import DirectoryCreated
from nas._ledger import GroupCreated
from nas._ledger import GroupMembershipAdded
from nas._ledger import Ledger
from nas._ledger import LinkCreated
from nas._ledger import PrincipalCreated
from nas._ledger import QuotaChanged
from nas._ledger import ResourceRecord
from nas._ledger import VolumeCreated
from nas._smb_conf import SmbPolicy
from nas._smb_conf import render_smb_conf
from nas._state import PersistedState
from nas._state import StateStore
from nas._topology import ADMIN_GROUP
from nas._topology import GROUPS
from nas._topology import LogicalUnit
from nas._topology import Ownership
from nas._topology import PUBLIC_GROUP
from nas._topology import Topology
from nas._topology import USERS_GROUP
from nas._topology import resolve
from nas._validation import validate_quota
from nas._validation import validate_username

_logger = logging.getLogger(__name__)

DEFAULT_SMB_CONF = '/etc/samba/smb.conf'


class PrincipalRequest(NamedTuple):
    """Principal to create or update; password None keeps the current one."""

    username: str
    password: Optional[str] = None
    admin: bool = False
    public_write: bool = False

    def __repr__(self):
        password = '<unchanged>' if self.password is None else '<hidden>'
        return (
            f'{PrincipalRequest.__name__}({self.username!r}, {password}, '
            f'admin={self.admin}, public_write={self.public_write})')


class Plan(NamedTuple):
    topology: Topology
    policy: SmbPolicy
    principals: Sequence[PrincipalRequest] = ()
    quotas: Optional[Mapping[str, str]] = None  # Volume -> size or "none".
    create_base: bool = True


class _Step(metaclass=ABCMeta):

    @abstractmethod
    def run(self, env: ManagedEnvironment, ledger: Ledger):
        pass


class EnsureGroup(_Step):

    def __init__(self, name: str):
        self._name = name

    def __repr__(self):
        return f'{EnsureGroup.__name__}({self._name!r})'

    def run(self, env, ledger):
        if env.identity.group_exists(self._name):
            _logger.info("Group %s: exists", self._name)
            return
        env.identity.create_group(self._name)
        ledger.append(GroupCreated(self._name))


class EnsurePrincipal(_Step):

    def __init__(self, name: str, home: PurePosixPath):
        self._name = name
        self._home = home

    def __repr__(self):
        return f'{EnsurePrincipal.__name__}({self._name!r}, {str(self._home)!r})'

    def run(self, env, ledger):
        if env.identity.user_exists(self._name):
            _logger.info("User %s: exists; reuse", self._name)
            return
        env.identity.create_user(self._name, str(self._home), USERS_GROUP)
        ledger.append(PrincipalCreated(self._name))


class EnsureVolume(_Step):

    def __init__(self, volume: str):
        self._volume = volume

    def __repr__(self):
        return f'{EnsureVolume.__name__}({self._volume!r})'

    def run(self, env, ledger):
        if env.storage.exists(self._volume):
            _logger.info("Volume %s: exists; reuse", self._volume)
            return
        env.storage.create(self._volume)
        ledger.append(VolumeCreated(self._volume))


class ApplyQuota(_Step):

    def __init__(self, volume: str, quota: str):
        self._volume = volume
        quota = validate_quota(quota)
        self._quota = None if quota == 'none' else quota

    def __repr__(self):
        return f'{ApplyQuota.__name__}({self._volume!r}, {self._quota or "none"!r})'

    def run(self, env, ledger):
        old = env.storage.get_quota(self._volume)
        if old == self._quota:
            _logger.info("Volume %s: quota is already %s", self._volume, old or 'none')
            return
        env.storage.set_quota(self._volume, self._quota)
        ledger.append(QuotaChanged(self._volume, old))


def _ensure_directory(env: ManagedEnvironment, ledger: Ledger, path: PurePosixPath, location: Location):
    files = env.files(location)
    missing = []
    for candidate in [path, *path.parents]:
        if files.is_dir(candidate):
            break
        missing.append(candidate)
    for directory in reversed(missing):
        files.make_dir(directory)
        ledger.append(DirectoryCreated(str(directory), location))


def _host_ids(env: ManagedEnvironment, ownership: Ownership):
    """Translate container names into host ids through the id map."""
    [uid, _gid] = env.identity.user_ids(ownership.user)
    gid = env.identity.group_id(ownership.group)
    id_map = env.container.id_map()
    return id_map.host_id(uid), id_map.host_id(gid)


def _host_path(env: ManagedEnvironment, volume: str) -> PurePosixPath:
    mountpoint = env.storage.mountpoint(volume)
    if not mountpoint.startswith('/') or not env.host_files.is_dir(mountpoint):
        raise PreconditionError(f"Mountpoint of {volume} is not a directory: {mountpoint}")
    return PurePosixPath(mountpoint)


class BindUnit(_Step):
    """Make the volume visible inside the container at its mount target."""

    def __init__(self, unit: LogicalUnit):
        self._unit = unit

    def __repr__(self):
        return f'{BindUnit.__name__}({self._unit.volume!r}, {str(self._unit.mount_target)!r})'

    def run(self, env, ledger):
        host_path = _host_path(env, self._unit.volume)
        target = str(self._unit.mount_target)
        for key, container_path in env.container.mounts().items():
            if container_path == target:
                _logger.info("%s: reuse mount %s", target, key)
                return
        _ensure_directory(env, ledger, self._unit.mount_target, Location.CONTAINER)
        key = env.container.add_mount(str(host_path), target)
        ledger.append(BindMountAdded(key, target))


class EnsureSubdirectory(_Step):
    """Directory inside a volume, made on the host."""

    def __init__(self, volume: str, relative_path: str):
        self._volume = volume
        self._relative_path = relative_path

    def __repr__(self):
        return f'{EnsureSubdirectory.__name__}({self._volume!r}, {self._relative_path!r})'

    def run(self, env, ledger):
        path = _host_path(env, self._volume) / self._relative_path
        _ensure_directory(env, ledger, path, Location.HOST)


class ApplyOwnership(_Step):
    """Set owner and mode on the host, where ids of an unprivileged container are shifted."""

    def __init__(
            self,
            volume: str,
            relative_path: str,
            ownership: Ownership,
            mode: Optional[int],
            only_if_created: bool = False,
            ):
        self._volume = volume
        self._relative_path = relative_path
        self._ownership = ownership
        self._mode = mode
        self._only_if_created = only_if_created

    def __repr__(self):
        mode = 'unchanged' if self._mode is None else f'{self._mode:04o}'
        path = '/'.join(filter(None, [self._volume, self._relative_path]))
        return f'{ApplyOwnership.__name__}({path!r}, {self._ownership.user}:{self._ownership.group}, {mode})'

    def run(self, env, ledger):
        if self._only_if_created and VolumeCreated(self._volume) not in ledger.records():
            _logger.info("%s: existed before; ownership left as is", self._volume)
            return
        path = _host_path(env, self._volume)
        if self._relative_path:
            path = path / self._relative_path
        uid, gid = _host_ids(env, self._ownership)
        env.host_files.chown(path, uid, gid)
        if self._mode is not None:
            env.host_files.chmod(path, self._mode)


class SetContainerMode(_Step):

    def __init__(self, path: PurePosixPath, mode: int):
        self._path = path
        self._mode = mode

    def __repr__(self):
        return f'{SetContainerMode.__name__}({str(self._path)!r}, {self._mode:04o})'

    def run(self, env, ledger):
        env.container_files.chmod(self._path, self._mode)


class EnsureRecycleBin(_Step):
    """Per-principal .recycle/<name> with a "Recycle Bin" link to it."""

    def __init__(self, principal: str, home: PurePosixPath):
        self._principal = principal
        self._home = home

    def __repr__(self):
        return f'{EnsureRecycleBin.__name__}({self._principal!r})'

    def run(self, env, ledger):
        files = env.container_files
        bin_path = self._home / '.recycle' / self._principal
        _ensure_directory(env, ledger, bin_path, Location.CONTAINER)
        for path in bin_path.parent, bin_path:
            files.chown(path, self._principal, USERS_GROUP)
        files.chmod(bin_path, 0o700)
        link = self._home / 'Recycle Bin'
        if files.is_link(link) or files.exists(link):
            _logger.info("%s: exists", link)
            return
        files.symlink(PurePosixPath('.recycle', self._principal), link)
        ledger.append(LinkCreated(str(link), Location.CONTAINER))


class Enroll(_Step):

    def __init__(self, principal: str, group: str):
        self._principal = principal
        self._group = group

    def __repr__(self):
        return f'{Enroll.__name__}({self._principal!r}, {self._group!r})'

    def run(self, env, ledger):
        # getent lists supplementary members only; principals are discovered from that list.
        if self._principal in env.identity.group_members(self._group):
            _logger.info("User %s: already in %s", self._principal, self._group)
            return
        env.identity.add_to_group(self._principal, self._group)
        ledger.append(GroupMembershipAdded(self._principal, self._group))


class SetPassword(_Step):

    def __init__(self, principal: str, password: str):
        self._principal = principal
        self._password = password

    def __repr__(self):
        return f'{SetPassword.__name__}({self._principal!r})'

    def run(self, env, ledger):
        env.identity.set_password(self._principal, self._password)


class WriteSmbConf(_Step):

    def __init__(
            self,
            topology: Topology,
            policy: SmbPolicy,
            clock: Callable[[], float],
            path: str = DEFAULT_SMB_CONF,
            ):
        self._topology = topology
        self._policy = policy
        self._clock = clock
        self._path = path

    def __repr__(self):
        return f'{WriteSmbConf.__name__}({self._path!r})'

    def run(self, env, ledger):
        files = env.container_files
        text = render_smb_conf(self._topology, self._policy)
        if files.exists(self._path):
            if files.read_text(self._path) == text:
                _logger.info("%s: up to date", self._path)
                return
            backup = f'{self._path}.bak.{int(self._clock())}'
            files.copy(self._path, backup)
            _logger.info("%s: backed up to %s", self._path, backup)
        else:
            backup = None
        ledger.append(ConfigFileWritten(self._path, backup))
        files.write_text(self._path, text)
        env.container.shell().run(['testparm', '-s', self._path])
        for service in 'smbd', 'nmbd', 'winbind':
            _restart_service(env, service)


def _restart_service(env: ManagedEnvironment, service: str):
    result = env.container.shell().run(
        f'systemctl restart {service} || service {service} restart',
        check=False)
    if result.returncode != 0:
        _logger.warning("Service %s: cannot restart: %s", service, result.stderr.decode().strip())


class SaveState(_Step):

    def __init__(self, state_store: StateStore, state: PersistedState):
        self._state_store = state_store
        self._state = state

    def __repr__(self):
        return f'{SaveState.__name__}({self._state_store.path()!r})'

    def run(self, env, ledger):
        self._state_store.save(self._state)


def plan_steps(
        plan: Plan,
        state_store: StateStore,
        clock: Callable[[], float] = time.time,
        smb_conf: str = DEFAULT_SMB_CONF,
        ) -> Sequence[_Step]:
    topology = plan.topology
    units = resolve(topology)
    quotas = plan.quotas or {}
    steps: List[_Step] = [EnsureGroup(group) for group in GROUPS]
    for principal in topology.principals:
        steps.append(EnsurePrincipal(principal, topology.home_of(principal)))
    for unit in units:
        steps.append(EnsureVolume(unit.volume))
        if unit.volume in quotas:
            steps.append(ApplyQuota(unit.volume, quotas[unit.volume]))
    for unit in units:
        for subdirectory in unit.subdirectories:
            steps.append(EnsureSubdirectory(unit.volume, subdirectory.relative_path))
        steps.append(BindUnit(unit))
    for unit in units:
        if unit.mode is None:
            steps.append(ApplyOwnership(unit.volume, '', unit.ownership, None, only_if_created=True))
        else:
            steps.append(ApplyOwnership(unit.volume, '', unit.ownership, unit.mode))
        for subdirectory in unit.subdirectories:
            steps.append(ApplyOwnership(
                unit.volume, subdirectory.relative_path, subdirectory.ownership, subdirectory.mode))
    steps.append(SetContainerMode(topology.homes_root(), 0o711))
    if plan.policy.recycle_enabled:
        for principal in topology.principals:
            steps.append(EnsureRecycleBin(principal, topology.home_of(principal)))
    for request in plan.principals:
        steps.append(Enroll(request.username, USERS_GROUP))
        if request.admin:
            steps.append(Enroll(request.username, ADMIN_GROUP))
        if request.public_write:
            steps.append(Enroll(request.username, PUBLIC_GROUP))
        if request.password is not None:
            steps.append(SetPassword(request.username, request.password))
    steps.append(WriteSmbConf(topology, plan.policy, clock, smb_conf))
    steps.append(SaveState(state_store, PersistedState(topology, plan.policy)))
    return steps


class Provisioner:

    def __init__(
            self,
            env: ManagedEnvironment,
            state_store: StateStore,
            clock: Callable[[], float] = time.time,
            smb_conf: str = DEFAULT_SMB_CONF,
            ):
        self._env = env
        self._state_store = state_store
        self._clock = clock
        self._smb_conf = smb_conf

    def __repr__(self):
        return f'<{Provisioner.__name__} for {self._env!r}>'

    def run(self, plan: Plan) -> Sequence[ResourceRecord]:
        """Realize the plan or, on failure, undo everything done so far.

        Return records of what has been created.
        """
        self._validate(plan)
        ledger = Ledger()
        for step in plan_steps(plan, self._state_store, self._clock, self._smb_conf):
            _logger.info("Step %r", step)
            try:
                step.run(self._env, ledger)
            except KeyboardInterrupt:
                _logger.error("Step %r: interrupted", step)
                ledger.unwind(self._env)
                raise
            except Exception as e:
                _logger.exception("Step %r: failed", step)
                ledger.unwind(self._env)
                raise StepFailure(repr(step), e) from e
        _logger.info("%r: done; %d resources created", self, len(ledger))
        return ledger.records()

    def _validate(self, plan: Plan):
        topology = plan.topology
        for name in topology.principals:
            validate_username(name)
        enrolled = set(topology.principals)
        for request in plan.principals:
            if request.username not in enrolled:
                raise ValidationError(f"User {request.username!r} is not enrolled")
        volumes = {unit.volume for unit in resolve(topology)}
        for volume, quota in (plan.quotas or {}).items():
            if volume not in volumes:
                raise ValidationError(f"Quota for unknown volume {volume!r}")
            validate_quota(quota)
        [pool, *_] = topology.base_volume.split('/')
        if not self._env.storage.pool_exists(pool):
            raise PreconditionError(f"Pool {pool!r} not found")
        if not plan.create_base and not self._env.storage.exists(topology.base_volume):
            raise PreconditionError(f"Base dataset {topology.base_volume} does not exist")
