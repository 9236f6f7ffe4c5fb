# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Persisted NAS state: /etc/nas/state.env inside the container.

The file is a flat KEY=value list that POSIX shells can source:
the periodic recycle purge, running inside the container, reads it too.
Its presence is the only sign that the NAS is installed.

>>> state = PersistedState(
...     Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.SHARED], ['alice', 'bob']),
...     SmbPolicy(allowed_subnets=('192.168.1.0/24', '10.0.0.0/8')))
>>> print(format_state(state), end='')
BASE_DATASET=tank/nas
MODE=2
MP_IN=/srv/nas
CREATE_SHARED=1
CREATE_PUBLIC=0
CREATE_GUEST=0
ENABLE_HOMES_RECYCLE=0
WORKGROUP=WORKGROUP
ALLOWED_SUBNETS=192.168.1.0/24,10.0.0.0/8
NAS_USERS=alice,bob
>>> parse_state(format_state(state)) == state
True
"""
import logging
import shlex
from typing import Callable
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Sequence

from host_access import Filesystem
from nas._exceptions import StaleStateError
from nas._exceptions import ValidationError
from nas._smb_conf import DEFAULT_WORKGROUP
from nas._smb_conf import SmbPolicy
from nas._topology import DEFAULT_MOUNT_ROOT
from nas._topology import LayoutMode
from nas._topology import OptionalShare
from nas._topology import Topology
from nas._topology import USERS_GROUP
from nas._validation import validate_mount_root
from nas._validation import validate_subnets
from nas._validation import validate_username
from nas._validation import validate_volume
from nas._validation import validate_workgroup
from proxmox import Identity

_logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = '/etc/nas/state.env'

_SHARE_KEYS = {
    OptionalShare.SHARED: 'CREATE_SHARED',
    OptionalShare.PUBLIC: 'CREATE_PUBLIC',
    OptionalShare.GUEST: 'CREATE_GUEST',
    }


class PersistedState(NamedTuple):
    topology: Topology
    policy: SmbPolicy


def format_state(state: PersistedState) -> str:
    topology, policy = state
    values = {
        'BASE_DATASET': topology.base_volume,
        'MODE': topology.layout.value,
        'MP_IN': topology.mount_root,
        **{key: _flag(share in topology.shares) for share, key in _SHARE_KEYS.items()},
        'ENABLE_HOMES_RECYCLE': _flag(policy.recycle_enabled),
        'WORKGROUP': policy.workgroup,
        'ALLOWED_SUBNETS': ','.join(policy.allowed_subnets),
        'NAS_USERS': ','.join(topology.principals),
        }
    return ''.join(f'{key}={shlex.quote(value)}\n' for key, value in values.items())


def parse_state(
        text: str,
        discover_principals: Optional[Callable[[], Sequence[str]]] = None,
        ) -> PersistedState:
    values = _parse_lines(text)
    base = values.get('BASE_DATASET', '')
    if not base:
        raise StaleStateError("State record has no BASE_DATASET")
    try:
        layout = LayoutMode(values.get('MODE', LayoutMode.UNIFIED.value))
    except ValueError:
        raise StaleStateError(f"State record has invalid MODE={values['MODE']!r}")
    shares = [share for share, key in _SHARE_KEYS.items() if _parse_flag(values, key)]
    if 'NAS_USERS' in values:
        principals = [name for name in values['NAS_USERS'].split(',') if name]
    elif discover_principals is not None:
        # Written by an older installer: principals are the members of nas_users.
        principals = discover_principals()
    else:
        principals = []
    try:
        topology = Topology(
            validate_volume(base),
            layout,
            shares,
            [validate_username(name) for name in principals],
            validate_mount_root(values.get('MP_IN') or DEFAULT_MOUNT_ROOT),
            )
        policy = SmbPolicy(
            workgroup=validate_workgroup(values.get('WORKGROUP') or DEFAULT_WORKGROUP),
            allowed_subnets=validate_subnets(values.get('ALLOWED_SUBNETS', '')),
            recycle_enabled=_parse_flag(values, 'ENABLE_HOMES_RECYCLE'),
            )
    except ValidationError as e:
        raise StaleStateError(f"State record is malformed: {e}")
    return PersistedState(topology, policy)


def _parse_lines(text: str) -> Mapping[str, str]:
    result = {}
    for line_number, line in enumerate(text.splitlines(), 1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue
        key, sep, raw_value = line.partition('=')
        if not sep:
            raise StaleStateError(f"State record line {line_number} is not KEY=value: {line!r}")
        try:
            result[key.strip()] = ''.join(shlex.split(raw_value))
        except ValueError as e:
            raise StaleStateError(f"State record line {line_number}: {e}")
    return result


def _flag(value: bool) -> str:
    return '1' if value else '0'


def _parse_flag(values: Mapping[str, str], key: str) -> bool:
    value = values.get(key, '0')
    if value not in ('0', '1'):
        raise StaleStateError(f"State record has invalid {key}={value!r}")
    return value == '1'


class StateStore:
    """Load and save the state record; absent record means not installed."""

    def __init__(
            self,
            files: Filesystem,
            path: str = DEFAULT_STATE_FILE,
            discover_principals: Optional[Callable[[], Sequence[str]]] = None,
            ):
        self._files = files
        self._path = path
        self._discover_principals = discover_principals

    def __repr__(self):
        return f'<{StateStore.__name__} {self._path} on {self._files!r}>'

    def path(self):
        return self._path

    def load(self) -> Optional[PersistedState]:
        if not self._files.exists(self._path):
            _logger.info("%s: doesn't exist; not installed", self._path)
            return None
        text = self._files.read_text(self._path)
        _logger.debug("%s:\n%s", self._path, text)
        return parse_state(text, self._discover_principals)

    def save(self, state: PersistedState):
        self._files.write_text(self._path, format_state(state))
        _logger.info("%s: saved", self._path)


def enrolled_principals(identity: Identity) -> Sequence[str]:
    """Members of nas_users; for records written without NAS_USERS."""
    if not identity.group_exists(USERS_GROUP):
        return []
    return identity.group_members(USERS_GROUP)
