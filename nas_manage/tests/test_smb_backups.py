# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest
from datetime import datetime

from doubles.fake_proxmox import FakeProxmox
from nas import PreconditionError
from nas import ValidationError
from nas_manage import SmbBackups

_CONF = '/etc/samba/smb.conf'


class TestSmbBackups(unittest.TestCase):

    def setUp(self):
        proxmox = FakeProxmox()
        self._files = proxmox.container_files
        self._shell = proxmox.container.shell_double
        self._times = iter([
            datetime(2025, 12, 14, 9, 30, 0),
            datetime(2025, 12, 15, 18, 5, 7),
            ])
        self._backups = SmbBackups(self._files, self._shell, now=lambda: next(self._times))
        self._files.write_text(_CONF, 'v1')

    def test_backup_and_list(self):
        self.assertEqual(self._backups.list(), [])
        path = self._backups.backup()
        self.assertEqual(path, '/etc/samba/backup/smb.conf.2025-12-14-093000')
        self.assertEqual(self._files.read_text(path), 'v1')
        self._files.write_text('/etc/samba/backup/README', 'not a backup')
        self.assertEqual(self._backups.list(), ['smb.conf.2025-12-14-093000'])

    def test_restore_newest(self):
        self._backups.backup()
        self._files.write_text(_CONF, 'v2')
        self._backups.backup()
        self._files.write_text(_CONF, 'v3')
        self.assertEqual(self._backups.restore(), 'smb.conf.2025-12-15-180507')
        self.assertEqual(self._files.read_text(_CONF), 'v2')
        self.assertIn('testparm -s /etc/samba/smb.conf', self._shell.commands)

    def test_restore_named(self):
        self._backups.backup()
        self._files.write_text(_CONF, 'v2')
        self._backups.backup()
        self._backups.restore('smb.conf.2025-12-14-093000')
        self.assertEqual(self._files.read_text(_CONF), 'v1')

    def test_rejected_backup_is_not_kept(self):
        self._backups.backup()
        self._files.write_text(_CONF, 'v2')
        self._shell.respond('testparm', returncode=1, stderr=b'Unknown parameter encountered')
        with self.assertRaisesRegex(ValidationError, 'rejected by testparm'):
            self._backups.restore()
        self.assertEqual(self._files.read_text(_CONF), 'v2')

    def test_restore_without_backups(self):
        with self.assertRaisesRegex(PreconditionError, 'No backups'):
            self._backups.restore()

    def test_names_are_not_paths(self):
        self._backups.backup()
        with self.assertRaises(ValidationError):
            self._backups.restore('../smb.conf')
        with self.assertRaises(PreconditionError):
            self._backups.restore('smb.conf.1999-01-01-000000')
        self.assertEqual(self._files.read_text(_CONF), 'v1')
