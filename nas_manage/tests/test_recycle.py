# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import shutil
import tempfile
import unittest
from pathlib import Path
from pathlib import PurePosixPath

from doubles.fake_proxmox import FakeFilesystem
from doubles.scripted_shell import ScriptedShell
from host_access import ShellFilesystem
from host_access import local_shell
from nas import ValidationError
from nas_manage import RecycleBins


class TestRecycleBins(unittest.TestCase):

    def setUp(self):
        self._root = Path(tempfile.mkdtemp(prefix='nas-recycle-'))
        self.addCleanup(shutil.rmtree, self._root)
        self._homes = self._root / 'homes'
        self._alice_bin = self._homes / 'alice' / '.recycle' / 'alice'
        self._bob_bin = self._homes / 'bob' / '.recycle' / 'bob'
        (self._alice_bin / 'Documents').mkdir(parents=True)
        (self._alice_bin / 'old.txt').write_text('old')
        (self._alice_bin / 'Documents' / 'older.txt').write_text('older')
        (self._homes / 'alice' / 'keep.txt').write_text('keep')
        self._bob_bin.mkdir(parents=True)
        self._smb_conf = self._root / 'smb.conf'

    def _bins(self, files=None):
        return RecycleBins(
            local_shell,
            files or ShellFilesystem(local_shell),
            str(self._root),
            str(self._smb_conf))

    def test_flush_keeps_bin_roots(self):
        flushed = self._bins().flush()
        self.assertEqual(sorted(flushed), [str(self._alice_bin), str(self._bob_bin)])
        self.assertTrue(self._alice_bin.is_dir())
        self.assertEqual(list(self._alice_bin.iterdir()), [])
        self.assertTrue(self._bob_bin.is_dir())
        self.assertEqual((self._homes / 'alice' / 'keep.txt').read_text(), 'keep')

    def test_bin_inside_bin(self):
        nested = self._alice_bin / 'proj' / '.recycle' / 'old'
        nested.mkdir(parents=True)
        (nested / 'f.txt').write_text('f')
        bins = self._bins()
        self.assertEqual(sorted(bins.find()), [str(self._alice_bin), str(self._bob_bin)])
        self.assertEqual(sorted(bins.flush()), [str(self._alice_bin), str(self._bob_bin)])
        self.assertFalse((self._alice_bin / 'proj').exists())
        self.assertEqual(sorted(bins.flush()), [str(self._alice_bin), str(self._bob_bin)])

    def test_vanished_bin_is_skipped(self):
        shell = ScriptedShell()
        shell.respond('find', stdout=f'{self._alice_bin}\n'.encode())
        files = FakeFilesystem()
        files.make_dirs(self._homes)
        bins = RecycleBins(shell, files, str(self._root), str(self._smb_conf))
        self.assertEqual(bins.flush(), [str(self._alice_bin)])
        self.assertEqual(len(shell.commands), 1)

    def test_homes_path_from_samba(self):
        self._smb_conf.write_text(f'[global]\n   workgroup = HOME\n[homes]\n   path = {self._root}/custom/%U\n')
        self.assertEqual(self._bins().homes_path(), PurePosixPath(self._root, 'custom'))

    def test_homes_path_falls_back_to_mount_root(self):
        shutil.rmtree(self._homes)
        self.assertEqual(self._bins().homes_path(), PurePosixPath(self._root))
        self.assertEqual(self._bins().flush(), [])

    def test_cron_script_flushes(self):
        files = FakeFilesystem()
        files.make_dirs(self._homes)
        bins = self._bins(files)
        self.assertEqual(bins.install_timer('6h'), '0 */6 * * *')
        local_shell.run(files.read_text('/root/nas-recycle-cron.sh'))
        self.assertEqual(list(self._alice_bin.iterdir()), [])
        self.assertTrue(self._bob_bin.is_dir())
        self.assertTrue((self._homes / 'alice' / 'keep.txt').exists())


class TestRecycleTimer(unittest.TestCase):

    def setUp(self):
        self._files = FakeFilesystem()
        self._files.make_dirs('/srv/nas/homes')
        self._bins = RecycleBins(ScriptedShell(), self._files, '/srv/nas')

    def test_install_and_remove(self):
        self._bins.install_timer('30m')
        self.assertEqual(
            self._files.read_text('/etc/cron.d/nas-recycle'),
            '*/30 * * * * root /root/nas-recycle-cron.sh >> /var/log/nas-recycle.log 2>&1\n')
        self.assertEqual(self._files.mode('/root/nas-recycle-cron.sh'), 0o755)
        self.assertIn("find /srv/nas/homes -type d", self._files.read_text('/root/nas-recycle-cron.sh'))
        self._bins.remove_timer()
        self.assertFalse(self._files.exists('/etc/cron.d/nas-recycle'))
        self.assertFalse(self._files.exists('/root/nas-recycle-cron.sh'))

    def test_invalid_interval(self):
        for timer in '0m', '1w', 'm', '90m':
            with self.subTest(timer=timer):
                with self.assertRaises(ValidationError):
                    self._bins.install_timer(timer)
        self.assertFalse(self._files.exists('/etc/cron.d/nas-recycle'))
