# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Proxmox host facilities the NAS is built from.

Storage is ZFS on the host, the managed environment is an LXC container
run by pct, identities live inside the container.
Everything is reached through a shell, so the tools run the same way
on the host itself and from a workstation over SSH.
"""
from proxmox._identity import Identity
from proxmox._identity import ShellIdentity
from proxmox._lxc import Container
from proxmox._lxc import ContainerNotFound
from proxmox._lxc import IdMap
from proxmox._lxc import PctContainer
from proxmox._storage import SnapshotNotFound
from proxmox._storage import Storage
from proxmox._storage import StorageError
from proxmox._storage import VolumeNotFound
from proxmox._zfs import Zfs

__all__ = [
    'Container',
    'ContainerNotFound',
    'IdMap',
    'Identity',
    'PctContainer',
    'ShellIdentity',
    'SnapshotNotFound',
    'Storage',
    'StorageError',
    'VolumeNotFound',
    'Zfs',
    ]
