# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from abc import ABCMeta
from abc import abstractmethod
from typing import Collection
from typing import Sequence
from typing import Tuple

from host_access import Shell

_logger = logging.getLogger(__name__)


class Identity(metaclass=ABCMeta):
    """Users, groups and Samba accounts inside the container."""

    @abstractmethod
    def user_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def create_user(self, name: str, home: str, primary_group: str):
        pass

    @abstractmethod
    def delete_user(self, name: str):
        """Delete system and Samba accounts. Home directory is left alone."""
        pass

    @abstractmethod
    def user_ids(self, name: str) -> Tuple[int, int]:
        pass

    @abstractmethod
    def groups_of(self, name: str) -> Collection[str]:
        pass

    @abstractmethod
    def set_password(self, name: str, password: str):
        """Set both system and Samba password."""
        pass

    @abstractmethod
    def group_exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def create_group(self, name: str):
        pass

    @abstractmethod
    def delete_group(self, name: str):
        pass

    @abstractmethod
    def group_id(self, name: str) -> int:
        pass

    @abstractmethod
    def group_members(self, name: str) -> Sequence[str]:
        pass

    @abstractmethod
    def add_to_group(self, name: str, group: str):
        pass

    @abstractmethod
    def remove_from_group(self, name: str, group: str):
        pass


class ShellIdentity(Identity):

    def __init__(self, shell: Shell):
        self._shell = shell

    def __repr__(self):
        return f'<{ShellIdentity.__name__} via {self._shell!r}>'

    def user_exists(self, name):
        return self._shell.succeeds(['id', name])

    def create_user(self, name, home, primary_group):
        self._shell.run([
            'useradd',
            '-M',  # Home is a dataset or a directory made separately.
            '-d', home,
            '-s', '/usr/sbin/nologin',
            '-g', primary_group,
            name,
            ])
        _logger.info("%s: user added", name)

    def delete_user(self, name):
        # Samba account may be absent if the run failed before password was set.
        r = self._shell.run(['pdbedit', '-x', name], check=False)
        if r.returncode == 0:
            _logger.info("%s: Samba account deleted", name)
        else:
            _logger.info("%s: no Samba account: %s", name, r.stderr)
        r = self._shell.run(['userdel', name], check=False)
        if b'does not exist' in r.stderr.lower():
            _logger.info("User does not exist: %s", name)
        elif r.returncode == 0:
            _logger.info("User deleted: %s", name)
        else:
            r.check_returncode()

    def user_ids(self, name):
        uid = int(self._shell.output(['id', '-u', name]))
        gid = int(self._shell.output(['id', '-g', name]))
        return uid, gid

    def groups_of(self, name):
        return self._shell.output(['id', '-nG', name]).split()

    def set_password(self, name, password):
        # Passwords go through stdin only: command lines are logged.
        self._shell.run(['chpasswd'], input=f'{name}:{password}\n'.encode())
        self._shell.run(['smbpasswd', '-s', '-a', name], input=f'{password}\n{password}\n'.encode())
        _logger.info("%s: password set", name)

    def group_exists(self, name):
        return self._shell.succeeds(['getent', 'group', name])

    def create_group(self, name):
        r = self._shell.run(['groupadd', name], check=False)
        if r.returncode == 0:
            _logger.info("%s: group added", name)
        elif b'already exists' in r.stderr.lower():
            _logger.info("%s: group already exists", name)
        else:
            _logger.error("%s: failure: %s", name, r.stderr)
            r.check_returncode()

    def delete_group(self, name):
        r = self._shell.run(['groupdel', name], check=False)
        if b'does not exist' in r.stderr.lower():
            _logger.info("Group does not exist: %s", name)
        elif r.returncode == 0:
            _logger.info("Group deleted: %s", name)
        else:
            r.check_returncode()

    def group_id(self, name):
        [_name, _password, gid, _members] = self._getent_group(name)
        return int(gid)

    def group_members(self, name):
        [_name, _password, _gid, members] = self._getent_group(name)
        return [member for member in members.split(',') if member]

    def add_to_group(self, name, group):
        self._shell.run(['usermod', '-aG', group, name])

    def remove_from_group(self, name, group):
        self._shell.run(['gpasswd', '-d', name, group])

    def _getent_group(self, name):
        return self._shell.output(['getent', 'group', name]).split(':')

