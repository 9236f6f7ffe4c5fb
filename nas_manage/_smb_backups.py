# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
from datetime import datetime
from pathlib import PurePosixPath
from subprocess import CalledProcessError
from typing import Callable
from typing import Optional
from typing import Sequence

from host_access import Filesystem
from host_access import Shell
from nas import DEFAULT_SMB_CONF
from nas import PreconditionError
from nas import ValidationError
from nas import validate_backup_name

_logger = logging.getLogger(__name__)

DEFAULT_BACKUP_DIR = '/etc/samba/backup'


class SmbBackups:
    """Timestamped copies of smb.conf kept in a directory of the container.

    Names are smb.conf.<YYYY-MM-DD-HHMMSS>, so the newest sorts last.
    """

    def __init__(
            self,
            files: Filesystem,
            shell: Shell,
            conf_path: str = DEFAULT_SMB_CONF,
            backup_dir: str = DEFAULT_BACKUP_DIR,
            now: Callable[[], datetime] = datetime.now,
            ):
        self._files = files
        self._shell = shell
        self._conf_path = PurePosixPath(conf_path)
        self._backup_dir = PurePosixPath(backup_dir)
        self._now = now

    def __repr__(self):
        return f'<{SmbBackups.__name__} {self._backup_dir}>'

    def backup(self) -> str:
        if not self._files.exists(self._conf_path):
            raise PreconditionError(f"{self._conf_path} does not exist")
        if not self._files.is_dir(self._backup_dir):
            self._files.make_dir(self._backup_dir)
        path = self._backup_dir / f'{self._conf_path.name}.{self._now():%Y-%m-%d-%H%M%S}'
        self._files.copy(self._conf_path, path)
        _logger.info("Saved %s", path)
        return str(path)

    def list(self) -> Sequence[str]:
        if not self._files.is_dir(self._backup_dir):
            return []
        prefix = self._conf_path.name + '.'
        return sorted(name for name in self._files.list_dir(self._backup_dir) if name.startswith(prefix))

    def restore(self, name: Optional[str] = None) -> str:
        """Put the backup in place and make testparm check it.

        If testparm rejects the backup, the replaced file is put back.
        """
        if name is None:
            backups = self.list()
            if not backups:
                raise PreconditionError(f"No backups in {self._backup_dir}")
            name = backups[-1]
        path = self._backup_dir / validate_backup_name(name)
        if not self._files.exists(path):
            raise PreconditionError(f"Backup {name} not found in {self._backup_dir}")
        previous = None
        if self._files.exists(self._conf_path):
            previous = self._files.read_text(self._conf_path)
        self._files.copy(path, self._conf_path)
        try:
            self._shell.run(['testparm', '-s', self._conf_path])
        except CalledProcessError as e:
            if previous is None:
                self._files.remove(self._conf_path)
            else:
                self._files.write_text(self._conf_path, previous)
            raise ValidationError(f"Backup {name} rejected by testparm: {e}")
        _logger.info("Restored %s", path)
        return name
