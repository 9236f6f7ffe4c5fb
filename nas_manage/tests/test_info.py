# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from doubles.fake_proxmox import FakeProxmox
from nas import LayoutMode
from nas import OptionalShare
from nas import Plan
from nas import PrincipalRequest
from nas import Provisioner
from nas import SmbPolicy
from nas import StateStore
from nas import Topology
from nas_manage import info_report


class TestInfoReport(unittest.TestCase):

    def setUp(self):
        self._proxmox = FakeProxmox()
        self._env = self._proxmox.environment()
        self._state_store = StateStore(self._env.container_files)
        topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.SHARED], ['alice'])
        Provisioner(self._env, self._state_store).run(Plan(
            topology, SmbPolicy(recycle_enabled=True), [PrincipalRequest('alice', 'secret')],
            quotas={'tank/nas/homes/alice': '100G'}))

    def test_report(self):
        text = info_report(self._env, self._state_store.load())
        self.assertIn('  CTID            : 105', text)
        self.assertIn('  Layout          : per-user datasets + optional share datasets', text)
        self.assertIn('  Shared          : enabled', text)
        self.assertIn('  Guest           : disabled', text)
        self.assertRegex(text, r'tank/nas/homes/alice +96K +100G')
        self.assertRegex(text, r'tank/nas/Shared +96K +none')
        self.assertIn('  - alice', text)
        self.assertIn('  Recycle bin     : enabled', text)
        self.assertIn('    [homes]', text)
        self.assertIn('    [Shared]', text)
        self.assertIn('  Shared : \\\\192.168.1.50\\Shared', text)
        self.assertNotIn('Public :', text)

    def test_missing_dataset_is_shown(self):
        [topology, policy] = self._state_store.load()
        state = (topology.with_principals(['bob']), policy)
        text = info_report(self._env, state)
        self.assertRegex(text, r'tank/nas/homes/bob +- +-')
