# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Purge of Samba recycle bins of homes.

A bin is a directory .recycle/<user> inside a home. Bins themselves
are kept: Samba and the "Recycle Bin" links rely on them.
"""
import logging
import re
from pathlib import PurePosixPath
from typing import Optional
from typing import Sequence

from host_access import Filesystem
from host_access import Shell
from host_access import quote_arg
from nas import DEFAULT_SMB_CONF
from nas import ValidationError

_logger = logging.getLogger(__name__)

CRON_SCRIPT = '/root/nas-recycle-cron.sh'
CRON_FILE = '/etc/cron.d/nas-recycle'
CRON_LOG = '/var/log/nas-recycle.log'


class RecycleBins:

    def __init__(self, shell: Shell, files: Filesystem, mount_root: str, smb_conf: str = DEFAULT_SMB_CONF):
        self._shell = shell
        self._files = files
        self._mount_root = PurePosixPath(mount_root)
        self._smb_conf = smb_conf

    def __repr__(self):
        return f'<{RecycleBins.__name__} under {self._mount_root}>'

    def homes_path(self) -> PurePosixPath:
        if self._files.exists(self._smb_conf):
            path = homes_path_from_conf(self._files.read_text(self._smb_conf))
            if path is not None:
                return PurePosixPath(path)
        if self._files.is_dir(self._mount_root / 'homes'):
            return self._mount_root / 'homes'
        return self._mount_root

    def find(self) -> Sequence[str]:
        root = self.homes_path()
        # Unreadable and vanishing directories are not an error for a purge.
        result = self._shell.run(['find', root, '-type', 'd', '-path', '*/.recycle/*'], check=False)
        if result.returncode != 0:
            _logger.debug("find under %s: %s", root, result.stderr.decode(errors='replace').strip())
        found = [
            PurePosixPath(line)
            for line in result.stdout.decode().splitlines()
            if PurePosixPath(line).parent.name == '.recycle']
        # A bin inside another bin is emptied along with the outer one.
        return [
            str(path)
            for path in found
            if not any(other in path.parents for other in found)]

    def flush(self) -> Sequence[str]:
        bins = self.find()
        for path in bins:
            if not self._files.is_dir(path):
                _logger.info("Gone before flush: %s", path)
                continue
            _logger.info("Emptying: %s", path)
            self._shell.run(['find', '-P', path, '-mindepth', '1', '-xdev', '-delete'])
        return bins

    def install_timer(self, timer: str) -> str:
        """Make cron in the container flush the bins periodically."""
        schedule = parse_timer(timer)
        self._files.write_text(CRON_SCRIPT, _cron_script(self.homes_path()))
        self._files.chmod(CRON_SCRIPT, 0o755)
        self._files.write_text(CRON_FILE, f'{schedule} root {CRON_SCRIPT} >> {CRON_LOG} 2>&1\n')
        _logger.info("Recycle flush scheduled: %s", schedule)
        return schedule

    def remove_timer(self):
        self._files.remove(CRON_FILE)
        self._files.remove(CRON_SCRIPT)
        _logger.info("Recycle flush disabled")


def homes_path_from_conf(text: str) -> Optional[str]:
    """Path of [homes] without the %U placeholder, if set.

    >>> homes_path_from_conf('[global]\\n   path = /x\\n[homes]\\n   path = /srv/nas/homes/%U\\n')
    '/srv/nas/homes'
    >>> homes_path_from_conf('[homes]\\n   browseable = no\\n[Shared]\\n   path = /srv/nas/Shared\\n')
    """
    in_homes = False
    for line in text.splitlines():
        line = line.strip()
        if line.startswith('['):
            in_homes = line == '[homes]'
            continue
        if not in_homes:
            continue
        key, sep, value = line.partition('=')
        if sep and key.strip() == 'path':
            return value.strip().replace('%U', '').rstrip('/') or None
    return None


def parse_timer(timer: str) -> str:
    """Turn Nm, Nh or Nd into a cron schedule.

    >>> parse_timer('15m')
    '*/15 * * * *'
    >>> parse_timer('6h')
    '0 */6 * * *'
    >>> parse_timer('2d')
    '0 0 */2 * *'
    >>> parse_timer('90s')
    Traceback (most recent call last):
    ...
    nas._exceptions.ValidationError: Invalid timer: '90s'; use Nm, Nh or Nd, e.g. 30m, 6h, 1d
    """
    match = re.fullmatch(r'([1-9][0-9]*)([mhd])', timer)
    if match is None:
        raise ValidationError(f"Invalid timer: {timer!r}; use Nm, Nh or Nd, e.g. 30m, 6h, 1d")
    count, unit = int(match.group(1)), match.group(2)
    limit = {'m': 59, 'h': 23, 'd': 31}[unit]
    if count > limit:
        raise ValidationError(f"Invalid timer: {timer!r}; at most {limit}{unit}")
    if unit == 'm':
        return f'*/{count} * * * *'
    if unit == 'h':
        return f'0 */{count} * * *'
    return f'0 0 */{count} * *'


def _cron_script(homes_path: PurePosixPath) -> str:
    return (
        '#!/bin/sh\n'
        f'# Empty recycle bins below {homes_path}; bins themselves are kept.\n'
        f"find {quote_arg(homes_path)} -type d -path '*/.recycle/*' 2>/dev/null |\n"
        'while read -r d; do\n'
        '    [ -d "$d" ] || continue\n'
        '    [ "$(basename "$(dirname "$d")")" = .recycle ] || continue\n'
        '    find -P "$d" -mindepth 1 -xdev -delete\n'
        'done\n'
        )
