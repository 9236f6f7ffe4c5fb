# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Shape of a NAS: which volumes exist, where they are mounted, who owns them.

Both the installer and the operational tool compute the unit list here.
Snapshots, quotas and rollbacks address units by position and name,
so the order is part of the contract: base, homes parent, homes of
principals in enrollment order, optional shares in fixed order.

>>> topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.PUBLIC, OptionalShare.SHARED], ['alice', 'bob'])
>>> [unit.volume for unit in resolve(topology)]
['tank/nas', 'tank/nas/homes', 'tank/nas/homes/alice', 'tank/nas/homes/bob', 'tank/nas/Shared', 'tank/nas/Public']
>>> [str(unit.mount_target) for unit in resolve(topology)]
['/srv/nas', '/srv/nas/homes', '/srv/nas/homes/alice', '/srv/nas/homes/bob', '/srv/nas/Shared', '/srv/nas/Public']
>>> unified = Topology('tank/nas', LayoutMode.UNIFIED, [], ['alice'])
>>> [unit.volume for unit in resolve(unified)]
['tank/nas']
>>> [sub.relative_path for sub in resolve(unified)[0].subdirectories]
['homes', 'homes/alice']
"""
from enum import Enum
from pathlib import PurePosixPath
from typing import Iterable
from typing import NamedTuple
from typing import Optional
from typing import Tuple

ADMIN_GROUP = 'nas_admin'
PUBLIC_GROUP = 'nas_public'
USERS_GROUP = 'nas_users'
GROUPS = (ADMIN_GROUP, PUBLIC_GROUP, USERS_GROUP)

DEFAULT_MOUNT_ROOT = '/srv/nas'


class LayoutMode(Enum):
    # Values are what state.env stores in MODE.
    UNIFIED = '1'
    PER_PRINCIPAL = '2'


class OptionalShare(Enum):
    # Definition order is the order of units and smb.conf sections.
    SHARED = 'Shared'
    PUBLIC = 'Public'
    GUEST = 'Guest'


class Ownership(NamedTuple):
    user: str
    group: str


_ROOT = Ownership('root', 'root')


class Subdirectory(NamedTuple):
    relative_path: str
    ownership: Ownership
    mode: int


class LogicalUnit(NamedTuple):
    volume: str
    mount_target: PurePosixPath
    ownership: Ownership
    mode: Optional[int]  # None: leave as is.
    subdirectories: Tuple[Subdirectory, ...] = ()


class _TopologyFields(NamedTuple):
    base_volume: str
    layout: LayoutMode
    shares: Tuple[OptionalShare, ...]
    principals: Tuple[str, ...]
    mount_root: str


class Topology(_TopologyFields):
    """Equal choices give equal topologies: shares and principals are canonical."""

    __slots__ = ()

    def __new__(
            cls,
            base_volume: str,
            layout: LayoutMode,
            shares: Iterable[OptionalShare],
            principals: Iterable[str],
            mount_root: str = DEFAULT_MOUNT_ROOT,
            ):
        shares = set(shares)
        canonical_shares = tuple(share for share in OptionalShare if share in shares)
        unique_principals = tuple(dict.fromkeys(principals))
        return super().__new__(cls, base_volume, layout, canonical_shares, unique_principals, mount_root)

    def with_shares(self, shares: Iterable[OptionalShare]) -> 'Topology':
        return Topology(self.base_volume, self.layout, shares, self.principals, self.mount_root)

    def with_principals(self, names: Iterable[str]) -> 'Topology':
        """Enroll more principals; already enrolled keep their places."""
        return Topology(self.base_volume, self.layout, self.shares, [*self.principals, *names], self.mount_root)

    def homes_root(self) -> PurePosixPath:
        return PurePosixPath(self.mount_root, 'homes')

    def home_of(self, principal: str) -> PurePosixPath:
        return self.homes_root() / principal


def share_access(share: OptionalShare) -> Tuple[Ownership, int]:
    """Directory-level half of the fixed access policy of a share.

    Shared: sticky, everyone writes, only owners delete.
    Public: only group members write.
    Guest: only root writes, Samba admin users write as root.
    """
    if share == OptionalShare.SHARED:
        return _ROOT, 0o1777
    if share == OptionalShare.PUBLIC:
        return Ownership('root', PUBLIC_GROUP), 0o775
    if share == OptionalShare.GUEST:
        return _ROOT, 0o755
    raise ValueError(f"Unknown share {share}")


def _home_access(principal: str) -> Tuple[Ownership, int]:
    return Ownership(principal, USERS_GROUP), 0o700


def resolve(topology: Topology) -> Tuple[LogicalUnit, ...]:
    base = topology.base_volume
    mount_root = PurePosixPath(topology.mount_root)
    if topology.layout == LayoutMode.UNIFIED:
        subdirectories = [Subdirectory('homes', _ROOT, 0o711)]
        for principal in topology.principals:
            ownership, mode = _home_access(principal)
            subdirectories.append(Subdirectory(f'homes/{principal}', ownership, mode))
        for share in topology.shares:
            ownership, mode = share_access(share)
            subdirectories.append(Subdirectory(share.value, ownership, mode))
        return (LogicalUnit(base, mount_root, _ROOT, None, tuple(subdirectories)),)
    units = [
        LogicalUnit(base, mount_root, _ROOT, None),
        LogicalUnit(f'{base}/homes', mount_root / 'homes', _ROOT, 0o711),
        ]
    for principal in topology.principals:
        ownership, mode = _home_access(principal)
        units.append(LogicalUnit(f'{base}/homes/{principal}', mount_root / 'homes' / principal, ownership, mode))
    for share in topology.shares:
        ownership, mode = share_access(share)
        units.append(LogicalUnit(f'{base}/{share.value}', mount_root / share.value, ownership, mode))
    return tuple(units)
