# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Snapshots of all units of a NAS under one tag.

A tag is taken on every unit so the NAS can be brought back as a whole.
Rollback is all-or-nothing at the level of checks: the tag must exist
on every unit before any unit is rolled back.
"""
import logging
from datetime import datetime
from typing import Callable
from typing import Sequence

from nas import PreconditionError
from nas import SnapshotMissing
from nas import Topology
from nas import resolve
from nas import validate_snapshot_tag
from proxmox import SnapshotNotFound
from proxmox import Storage
from proxmox import VolumeNotFound

_logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_PREFIX = 'nas-'


class Snapshots:

    def __init__(
            self,
            storage: Storage,
            topology: Topology,
            prefix: str = DEFAULT_SNAPSHOT_PREFIX,
            now: Callable[[], datetime] = datetime.now,
            ):
        self._storage = storage
        self._topology = topology
        self._prefix = prefix
        self._now = now

    def __repr__(self):
        return f'<{Snapshots.__name__} of {self._topology.base_volume}>'

    def volumes(self) -> Sequence[str]:
        return [unit.volume for unit in resolve(self._topology)]

    def create(self) -> str:
        volumes = self.volumes()
        missing = [volume for volume in volumes if not self._storage.exists(volume)]
        if missing:
            raise PreconditionError(f"Datasets missing: {', '.join(missing)}; run nas-setup to repair")
        tag = f'{self._prefix}{self._now():%Y-%m-%d-%H%M%S}'
        self._storage.snapshot_many(volumes, tag)
        _logger.info("@%s: created on %s", tag, ', '.join(volumes))
        return tag

    def list(self) -> Sequence[str]:
        return self._storage.list_snapshots(self._prefix)

    def rollback(self, tag: str):
        tag = validate_snapshot_tag(tag)
        volumes = self.volumes()
        missing = [volume for volume in volumes if not self._storage.has_snapshot(volume, tag)]
        if missing:
            raise SnapshotMissing(tag, missing)
        for volume in volumes:
            self._storage.rollback(volume, tag)
            _logger.info("%s@%s: rolled back", volume, tag)

    def remove(self, tag: str) -> Sequence[str]:
        """Destroy the tag where it exists. Return volumes it was removed from."""
        tag = validate_snapshot_tag(tag)
        removed = []
        for volume in self.volumes():
            try:
                self._storage.destroy_snapshot(volume, tag)
            except (SnapshotNotFound, VolumeNotFound):
                _logger.debug("%s@%s: absent, skipped", volume, tag)
                continue
            _logger.info("%s@%s: removed", volume, tag)
            removed.append(volume)
        return removed
