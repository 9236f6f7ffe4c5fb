# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Day-to-day operations on an installed NAS.

Nothing here creates or removes units, users or shares: that is
what nas_setup does. The installed state record is read, never written.
"""
from nas_manage._info import info_report
from nas_manage._recycle import RecycleBins
from nas_manage._recycle import homes_path_from_conf
from nas_manage._recycle import parse_timer
from nas_manage._smb_backups import DEFAULT_BACKUP_DIR
from nas_manage._smb_backups import SmbBackups
from nas_manage._snapshots import DEFAULT_SNAPSHOT_PREFIX
from nas_manage._snapshots import Snapshots

__all__ = [
    'DEFAULT_BACKUP_DIR',
    'DEFAULT_SNAPSHOT_PREFIX',
    'RecycleBins',
    'SmbBackups',
    'Snapshots',
    'homes_path_from_conf',
    'info_report',
    'parse_timer',
    ]
