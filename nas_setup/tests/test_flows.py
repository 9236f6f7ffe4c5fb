# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from doubles.fake_proxmox import FakeProxmox
from doubles.scripted_prompter import ScriptedPrompter
from doubles.scripted_shell import ScriptedShell
from nas import LayoutMode
from nas import OptionalShare
from nas import PersistedState
from nas import PreconditionError
from nas import PrincipalRequest
from nas import Provisioner
from nas import SmbPolicy
from nas import StateStore
from nas import Topology
from nas import ValidationError
from nas_setup import install_flow
from nas_setup import manage_flow
from nas_setup import select_container
from nas_setup import summary


class TestInstallFlow(unittest.TestCase):

    def setUp(self):
        self._proxmox = FakeProxmox()
        self._shell = ScriptedShell()

    def test_unified(self):
        prompter = ScriptedPrompter([
            '',  # Mount base
            '',  # Mode
            'tank',
            'nas',
            'y',  # Create base
            'y', 'n', '',  # Shared, Public, Guest
            '',  # Base quota
            '192.168.1.0/24',
            '',  # Workgroup
            'y',  # Recycle
            'y', 'alice', 'secret', 'secret', 'y', 'n',
            'n',
            ])
        plan = install_flow(prompter, self._proxmox.environment(), self._shell)
        self.assertEqual(prompter.unused(), [])
        self.assertEqual(plan.topology, Topology('tank/nas', LayoutMode.UNIFIED, [OptionalShare.SHARED], ['alice']))
        self.assertEqual(plan.policy, SmbPolicy('WORKGROUP', ('192.168.1.0/24',), True))
        self.assertEqual(plan.principals, [PrincipalRequest('alice', 'secret', admin=True)])
        self.assertEqual(plan.quotas, {})
        self.assertTrue(plan.create_base)
        self.assertIn('zpool list', self._shell.commands)

    def test_per_principal_with_quotas(self):
        self._proxmox.storage.create('tank/nas')
        prompter = ScriptedPrompter([
            '/mnt/nas/',
            '2',
            'tank',
            'nas',
            'n', 'y', 'n',  # Shared, Public, Guest
            '2T',  # Public quota
            '',
            'LAN',
            '',
            'y', '1bob', 'bob', 'pw', 'pw', '', 'y', '100G',
            'y', 'eve', 'pw1', 'pw2',
            'n',
            ])
        plan = install_flow(prompter, self._proxmox.environment(), self._shell)
        self.assertEqual(prompter.unused(), [])
        self.assertEqual(
            plan.topology,
            Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.PUBLIC], ['bob'], '/mnt/nas'))
        self.assertEqual(plan.quotas, {'tank/nas/Public': '2T', 'tank/nas/homes/bob': '100G'})
        self.assertEqual(plan.principals, [PrincipalRequest('bob', 'pw', public_write=True)])
        self.assertFalse(plan.create_base)
        self.assertIn("Invalid username: '1bob'", prompter.messages)
        self.assertIn("Password mismatch; skipping user eve.", prompter.messages)

    def test_missing_pool(self):
        prompter = ScriptedPrompter(['', '', 'data'])
        with self.assertRaisesRegex(PreconditionError, "Pool 'data' not found"):
            install_flow(prompter, self._proxmox.environment(), self._shell)

    def test_base_creation_declined(self):
        prompter = ScriptedPrompter(['', '', 'tank', 'nas', ''])
        with self.assertRaisesRegex(PreconditionError, 'aborting'):
            install_flow(prompter, self._proxmox.environment(), self._shell)

    def test_invalid_ctid(self):
        with self.assertRaises(ValidationError):
            select_container(ScriptedPrompter(['105a']), self._shell)
        self.assertEqual(select_container(ScriptedPrompter(['105']), self._shell), 105)


class TestManageFlow(unittest.TestCase):

    def setUp(self):
        self._proxmox = FakeProxmox()
        topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.SHARED], ['alice', 'bob'])
        self._state = PersistedState(topology, SmbPolicy(allowed_subnets=('10.0.0.0/8',)))
        for volume in 'tank/nas/homes/alice', 'tank/nas/homes/bob', 'tank/nas/Shared':
            self._proxmox.storage.create(volume)

    def test_toggles_quotas_and_new_user(self):
        prompter = ScriptedPrompter([
            '', 'y', '',  # Shared kept, Public enabled, Guest stays off
            'all',
            'HOME',
            '',  # Recycle stays off
            'y', '', '', '200G', '', '',  # Quotas of existing units
            'y', 'carol', 'pw', 'pw', '', 'y', '50G',
            'n',
            ])
        plan = manage_flow(prompter, self._proxmox.environment(), self._state)
        self.assertEqual(prompter.unused(), [])
        self.assertEqual(plan.topology.shares, (OptionalShare.SHARED, OptionalShare.PUBLIC))
        self.assertEqual(plan.topology.principals, ('alice', 'bob', 'carol'))
        self.assertEqual(plan.policy, SmbPolicy('HOME', (), False))
        self.assertEqual(plan.quotas, {'tank/nas/homes/alice': '200G', 'tank/nas/homes/carol': '50G'})
        self.assertFalse(plan.create_base)

    def test_existing_user_keeps_password(self):
        prompter = ScriptedPrompter([
            '', '', '', '', '', '',
            'n',
            'y', 'alice', '', '', 'y', '', '',
            'n',
            ])
        plan = manage_flow(prompter, self._proxmox.environment(), self._state)
        self.assertEqual(plan.principals, [PrincipalRequest('alice', None, admin=True)])
        self.assertEqual(plan.topology.principals, ('alice', 'bob'))
        self.assertEqual(plan.policy, self._state.policy)

    def test_summary_after_run(self):
        prompter = ScriptedPrompter([
            '', 'y', 'y',
            '', '', 'y',
            'n',
            'y', 'carol', 'pw', 'pw', 'y', 'n', '',
            'n',
            ])
        env = self._proxmox.environment()
        plan = manage_flow(prompter, env, self._state)
        records = Provisioner(env, StateStore(env.container_files)).run(plan)
        text = summary(env, plan, records)
        self.assertIn('Container: 105', text)
        self.assertIn('\\\\192.168.1.50\\Guest', text)
        self.assertIn('carol   (admin: yes, public_write: no)', text)
        self.assertIn('Recycle bin: enabled', text)
        self.assertIn(f'Resources created in this run: {len(records)}', text)
