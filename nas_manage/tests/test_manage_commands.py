# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import io
import unittest
from contextlib import redirect_stderr
from contextlib import redirect_stdout

from doubles.fake_proxmox import FakeProxmox
from nas import LayoutMode
from nas import OptionalShare
from nas import Plan
from nas import PreconditionError
from nas import PrincipalRequest
from nas import Provisioner
from nas import SmbPolicy
from nas import StateStore
from nas import Topology
from nas_manage.__main__ import _parse_args
from nas_manage.__main__ import execute
from nas_manage.__main__ import run


class TestManageCommands(unittest.TestCase):

    def setUp(self):
        self._proxmox = FakeProxmox()
        self._env = self._proxmox.environment()

    def _install(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [OptionalShare.PUBLIC], ['alice'])
        Provisioner(self._env, StateStore(self._env.container_files)).run(
            Plan(topology, SmbPolicy(recycle_enabled=True), [PrincipalRequest('alice', 'secret')]))

    def _run(self, *args, config=None):
        return run(self._env, config or {}, _parse_args(['105', *args]))

    def test_not_installed(self):
        for command in ['info'], ['snapshot', 'list'], ['recycle']:
            with self.subTest(command=command):
                with self.assertRaisesRegex(PreconditionError, 'NAS not installed'):
                    self._run(*command)

    def test_smb_needs_no_state(self):
        self._proxmox.container_files.write_text('/etc/samba/smb.conf', '[global]\n')
        self.assertEqual(self._run('smb', 'list'), '(none)')
        self.assertRegex(self._run('smb', 'backup'), r'^Saved /etc/samba/backup/smb\.conf\.\d{4}-\d\d-\d\d-\d{6}$')

    def test_snapshot_commands(self):
        self._install()
        created = self._run('snapshot', 'create', config={'snapshot_prefix': 'daily-'})
        [tag] = created.split()[1:2]
        tag = tag.lstrip('@')
        self.assertTrue(tag.startswith('daily-'))
        self.assertEqual(self._run('snapshot', 'list', config={'snapshot_prefix': 'daily-'}), f'tank/nas@{tag}')
        self.assertEqual(self._run('snapshot', 'list'), '(none)')
        self.assertEqual(self._run('snapshot', 'rollback', tag), f'Rolled back to @{tag}')
        self.assertEqual(self._run('snapshot', 'remove', tag), f'Snapshot @{tag} removed from 1 dataset(s)')

    def test_exit_status(self):
        self._install()
        self._proxmox.storage.fail('snapshot', 'tank/nas')
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            failed = execute(self._env, {}, _parse_args(['105', 'snapshot', 'create']))
            listed = execute(self._env, {}, _parse_args(['105', 'snapshot', 'list']))
        self.assertEqual(failed, 1)
        [line] = stderr.getvalue().splitlines()
        self.assertTrue(line.startswith("Error: "))
        self.assertIn('tank/nas', line)
        self.assertEqual(listed, 0)
        self.assertEqual(stdout.getvalue(), "(none)\n")

    def test_recycle_commands(self):
        self._install()
        shell = self._proxmox.container.shell_double
        self.assertEqual(self._run('recycle'), 'No recycle bins found')
        self.assertIn("find /srv/nas/homes -type d -path '*/.recycle/*'", shell.commands)
        self.assertEqual(self._run('recycle', 'timer', '1d'), 'Recycle flush scheduled: 0 0 */1 * *')
        files = self._proxmox.container_files
        self.assertTrue(files.exists('/etc/cron.d/nas-recycle'))
        self.assertEqual(self._run('recycle', 'timer', 'off'), 'Recycle flush disabled')
        self.assertFalse(files.exists('/etc/cron.d/nas-recycle'))

    def test_info(self):
        self._install()
        self.assertIn('Layout          : single dataset with subdirectories', self._run('info'))

    def test_usage_errors(self):
        for args in ['snapshot', 'rollback'], ['recycle', 'timer'], ['smb', 'purge'], ['frob']:
            with self.subTest(args=args):
                with self.assertRaises(SystemExit):
                    _parse_args(['105', *args])
        with self.assertRaises(SystemExit):
            _parse_args(['10x', 'info'])
