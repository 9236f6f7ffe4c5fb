# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Checks of operator input and persisted values.

Each function returns the normalized value or raises ValidationError.
Everything here ends up in command lines, smb.conf or state.env,
hence the strict character sets.
"""
import ipaddress
import re
from typing import Tuple

from nas._exceptions import ValidationError


def validate_username(name: str) -> str:
    """Validate a name acceptable both for useradd and Samba.

    >>> validate_username('alice_01')
    'alice_01'
    >>> validate_username('1alice')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid username: '1alice'
    """
    if re.fullmatch(r'[a-zA-Z_][a-zA-Z0-9_-]{0,31}', name) is None:
        raise ValidationError(f"Invalid username: {name!r}")
    return name


def validate_dataset_name(name: str) -> str:
    """Validate a single component of a dataset name, e.g. a pool.

    >>> validate_dataset_name('tank')
    'tank'
    >>> validate_dataset_name('tank/nas')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid dataset name: 'tank/nas'
    """
    if re.fullmatch(r'[A-Za-z0-9_.:-]+', name) is None:
        raise ValidationError(f"Invalid dataset name: {name!r}")
    return name


def validate_volume(volume: str) -> str:
    """Validate a full dataset path; the base must be below a pool.

    >>> validate_volume('tank/nas')
    'tank/nas'
    >>> validate_volume('tank')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid dataset: 'tank'
    >>> validate_volume('tank//nas')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid dataset: 'tank//nas'
    """
    parts = volume.split('/')
    if len(parts) < 2:
        raise ValidationError(f"Invalid dataset: {volume!r}")
    for part in parts:
        if re.fullmatch(r'[A-Za-z0-9_.:-]+', part) is None:
            raise ValidationError(f"Invalid dataset: {volume!r}")
    return volume


def validate_workgroup(workgroup: str) -> str:
    """NetBIOS-compatible: 1-15 chars.

    >>> validate_workgroup('HOME-LAN')
    'HOME-LAN'
    >>> validate_workgroup('A_VERY_LONG_WORKGROUP')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid workgroup: 'A_VERY_LONG_WORKGROUP'; use 1-15 chars: letters, numbers, dash, underscore
    """
    if re.fullmatch(r'[A-Za-z0-9_-]{1,15}', workgroup) is None:
        raise ValidationError(
            f"Invalid workgroup: {workgroup!r}; "
            "use 1-15 chars: letters, numbers, dash, underscore")
    return workgroup


def validate_subnets(text: str) -> Tuple[str, ...]:
    """Parse a comma-separated list of IPv4 networks; empty means all.

    >>> validate_subnets('192.168.1.0/24, 10.0.0.0/8')
    ('192.168.1.0/24', '10.0.0.0/8')
    >>> validate_subnets('')
    ()
    >>> validate_subnets('192.168.1.300/24')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid subnet: '192.168.1.300/24'; use e.g. 192.168.1.0/24,10.0.0.0/8
    """
    result = []
    for subnet in text.split(','):
        subnet = subnet.strip()
        if not subnet and not text.strip():
            continue
        if re.fullmatch(r'[0-9]{1,3}(\.[0-9]{1,3}){3}/[0-9]{1,2}', subnet) is None:
            raise ValidationError(f"Invalid subnet: {subnet!r}; use e.g. 192.168.1.0/24,10.0.0.0/8")
        try:
            ipaddress.IPv4Network(subnet, strict=False)
        except ValueError:
            raise ValidationError(f"Invalid subnet: {subnet!r}; use e.g. 192.168.1.0/24,10.0.0.0/8")
        result.append(subnet)
    return tuple(result)


def validate_ctid(ctid: str) -> int:
    """Proxmox guest ids are numbers.

    >>> validate_ctid('105')
    105
    >>> validate_ctid('105; reboot')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid CTID: '105; reboot'
    """
    if re.fullmatch(r'[0-9]+', ctid) is None:
        raise ValidationError(f"Invalid CTID: {ctid!r}")
    return int(ctid)


def validate_quota(quota: str) -> str:
    """Accept ZFS sizes like 500G or 1.5T and "none".

    >>> validate_quota('1T')
    '1T'
    >>> validate_quota('NONE')
    'none'
    >>> validate_quota('lots')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid quota: 'lots'; use e.g. 1T, 500G or none
    """
    if quota.lower() == 'none':
        return 'none'
    if re.fullmatch(r'[0-9]+(\.[0-9]+)?[KMGTPE]?', quota, flags=re.IGNORECASE) is None:
        raise ValidationError(f"Invalid quota: {quota!r}; use e.g. 1T, 500G or none")
    return quota.upper()


def validate_mount_root(path: str) -> str:
    """Absolute path inside the container, not the root itself.

    >>> validate_mount_root('/srv/nas/')
    '/srv/nas'
    >>> validate_mount_root('srv/nas')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid mount path: 'srv/nas'
    """
    normalized = path.rstrip('/')
    if re.fullmatch(r'(/[A-Za-z0-9_.-]+)+', normalized) is None or '/..' in normalized:
        raise ValidationError(f"Invalid mount path: {path!r}")
    return normalized


def validate_snapshot_tag(tag: str) -> str:
    """Part of a snapshot name after "@".

    >>> validate_snapshot_tag('nas-2025-12-14-093000')
    'nas-2025-12-14-093000'
    >>> validate_snapshot_tag('nas@x')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid snapshot tag: 'nas@x'
    """
    if re.fullmatch(r'[A-Za-z0-9_.:-]+', tag) is None:
        raise ValidationError(f"Invalid snapshot tag: {tag!r}")
    return tag


def validate_backup_name(name: str) -> str:
    """File name inside the backup directory, never a path.

    >>> validate_backup_name('smb.conf.2025-12-14-093000')
    'smb.conf.2025-12-14-093000'
    >>> validate_backup_name('../smb.conf')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid backup name: '../smb.conf'
    """
    if '/' in name or name in ('', '.', '..'):
        raise ValidationError(f"Invalid backup name: {name!r}")
    return name
