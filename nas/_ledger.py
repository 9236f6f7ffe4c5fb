# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Records of what a provisioning run has created, and how to undo it.

A record is appended right after the resource appears.
Resources that existed before the run never get a record,
so undoing every record returns to the state before the run.
"""
import logging
from abc import ABCMeta
from abc import abstractmethod
from typing import List
from typing import Optional
from typing import Sequence

from nas._environment import Location
from nas._environment import ManagedEnvironment
from nas._exceptions import CompensationFailure

_logger = logging.getLogger(__name__)


class ResourceRecord(metaclass=ABCMeta):

    @abstractmethod
    def undo(self, env: ManagedEnvironment):
        pass

    def _fields(self):
        return tuple(vars(self).values())

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._fields() == other._fields()

    def __hash__(self):
        return hash((type(self), self._fields()))

    def __repr__(self):
        args = ', '.join(repr(value) for value in self._fields())
        return f'{self.__class__.__name__}({args})'


class VolumeCreated(ResourceRecord):

    def __init__(self, volume: str):
        self.volume = volume

    def undo(self, env):
        env.storage.destroy(self.volume)


class DirectoryCreated(ResourceRecord):

    def __init__(self, path: str, location: Location):
        self.path = path
        self.location = location

    def undo(self, env):
        files = env.files(self.location)
        if not files.is_dir(self.path):
            _logger.info("%s: %s: already gone", self.location.value, self.path)
            return
        if files.list_dir(self.path):
            _logger.warning("%s: %s: not empty, left in place", self.location.value, self.path)
            return
        files.remove_empty_dir(self.path)


class BindMountAdded(ResourceRecord):

    def __init__(self, key: str, container_path: str):
        self.key = key
        self.container_path = container_path

    def undo(self, env):
        env.container.remove_mount(self.key)


class PrincipalCreated(ResourceRecord):

    def __init__(self, name: str):
        self.name = name

    def undo(self, env):
        env.identity.delete_user(self.name)


class GroupCreated(ResourceRecord):

    def __init__(self, name: str):
        self.name = name

    def undo(self, env):
        env.identity.delete_group(self.name)


class GroupMembershipAdded(ResourceRecord):

    def __init__(self, name: str, group: str):
        self.name = name
        self.group = group

    def undo(self, env):
        env.identity.remove_from_group(self.name, self.group)


class QuotaChanged(ResourceRecord):

    def __init__(self, volume: str, old_quota: Optional[str]):
        self.volume = volume
        self.old_quota = old_quota  # None: there was no quota.

    def undo(self, env):
        env.storage.set_quota(self.volume, self.old_quota)


class LinkCreated(ResourceRecord):

    def __init__(self, path: str, location: Location):
        self.path = path
        self.location = location

    def undo(self, env):
        env.files(self.location).remove(self.path)


class ConfigFileWritten(ResourceRecord):

    def __init__(self, path: str, backup: Optional[str], location: Location = Location.CONTAINER):
        self.path = path
        self.backup = backup  # None: there was no file.
        self.location = location

    def undo(self, env):
        files = env.files(self.location)
        if self.backup is None:
            files.remove(self.path)
        else:
            files.copy(self.backup, self.path)
            files.remove(self.backup)


class Ledger:
    """Ordered records of one run; undone newest first."""

    def __init__(self):
        self._records: List[ResourceRecord] = []
        self._closed = False

    def __repr__(self):
        return f'<{Ledger.__name__} with {len(self._records)} records>'

    def __len__(self):
        return len(self._records)

    def append(self, record: ResourceRecord):
        if self._closed:
            raise RuntimeError(f"{self!r} is already unwound")
        _logger.debug("Record: %r", record)
        self._records.append(record)

    def records(self) -> Sequence[ResourceRecord]:
        return tuple(self._records)

    def unwind(self, env: ManagedEnvironment) -> Sequence[CompensationFailure]:
        """Undo every record; a failed undo does not stop the others."""
        self._closed = True
        failures = []
        for record in reversed(self._records):
            _logger.warning("Roll back: %r", record)
            try:
                record.undo(env)
            except Exception as e:
                failure = CompensationFailure(record, e)
                _logger.error("%s", failure)
                failures.append(failure)
        self._records.clear()
        _logger.warning("Rollback complete: %d failures", len(failures))
        return failures
