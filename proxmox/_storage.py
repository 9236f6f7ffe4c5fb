# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from abc import ABCMeta
from abc import abstractmethod
from typing import Optional
from typing import Sequence


class StorageError(Exception):
    pass


class VolumeNotFound(StorageError):
    """Error to handle outside; part of the interface; legitimate outcome."""


class SnapshotNotFound(StorageError):
    """Error to handle outside; part of the interface; legitimate outcome."""


class Storage(metaclass=ABCMeta):
    """Copy-on-write pool with volumes, quotas and snapshots.

    Quota None means "no quota".
    """

    @abstractmethod
    def pool_exists(self, pool: str) -> bool:
        pass

    @abstractmethod
    def exists(self, volume: str) -> bool:
        pass

    @abstractmethod
    def create(self, volume: str):
        pass

    @abstractmethod
    def destroy(self, volume: str):
        """Destroy volume with its descendants and snapshots."""
        pass

    @abstractmethod
    def mountpoint(self, volume: str) -> str:
        pass

    @abstractmethod
    def get_quota(self, volume: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_quota(self, volume: str, quota: Optional[str]):
        pass

    @abstractmethod
    def used(self, volume: str) -> str:
        pass

    @abstractmethod
    def snapshot(self, volume: str, tag: str):
        pass

    @abstractmethod
    def snapshot_many(self, volumes: Sequence[str], tag: str):
        """Take the tag on all volumes at once or on none of them."""
        pass

    @abstractmethod
    def has_snapshot(self, volume: str, tag: str) -> bool:
        pass

    @abstractmethod
    def rollback(self, volume: str, tag: str):
        """Revert volume to the snapshot, discarding later snapshots."""
        pass

    @abstractmethod
    def destroy_snapshot(self, volume: str, tag: str):
        pass

    @abstractmethod
    def list_snapshots(self, tag_prefix: str) -> Sequence[str]:
        """Return names in volume@tag form."""
        pass
