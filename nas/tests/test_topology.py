# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest
from pathlib import PurePosixPath

from nas import LayoutMode
from nas import OptionalShare
from nas import Ownership
from nas import Topology
from nas import resolve


class TestResolve(unittest.TestCase):

    def test_unified_without_shares(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [], ['alice'])
        [unit] = resolve(topology)
        self.assertEqual(unit.volume, 'tank/nas')
        self.assertEqual(unit.mount_target, PurePosixPath('/srv/nas'))
        self.assertIsNone(unit.mode)
        [homes, alice_home] = unit.subdirectories
        self.assertEqual(homes, ('homes', Ownership('root', 'root'), 0o711))
        self.assertEqual(alice_home, ('homes/alice', Ownership('alice', 'nas_users'), 0o700))

    def test_unified_shares_are_subdirectories(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [OptionalShare.GUEST, OptionalShare.PUBLIC], [])
        [unit] = resolve(topology)
        self.assertEqual(
            [(sub.relative_path, sub.ownership, sub.mode) for sub in unit.subdirectories],
            [
                ('homes', Ownership('root', 'root'), 0o711),
                ('Public', Ownership('root', 'nas_public'), 0o775),
                ('Guest', Ownership('root', 'root'), 0o755),
                ])

    def test_per_principal(self):
        topology = Topology(
            'tank/nas', LayoutMode.PER_PRINCIPAL,
            [OptionalShare.PUBLIC, OptionalShare.SHARED], ['alice', 'bob'])
        units = resolve(topology)
        self.assertEqual([unit.volume for unit in units], [
            'tank/nas',
            'tank/nas/homes',
            'tank/nas/homes/alice',
            'tank/nas/homes/bob',
            'tank/nas/Shared',
            'tank/nas/Public',
            ])
        self.assertEqual(
            [(unit.ownership, unit.mode) for unit in units[1:]],
            [
                (Ownership('root', 'root'), 0o711),
                (Ownership('alice', 'nas_users'), 0o700),
                (Ownership('bob', 'nas_users'), 0o700),
                (Ownership('root', 'root'), 0o1777),
                (Ownership('root', 'nas_public'), 0o775),
                ])
        self.assertTrue(all(not unit.subdirectories for unit in units))

    def test_custom_mount_root(self):
        topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.GUEST], ['carol'], '/mnt/data')
        self.assertEqual(
            [str(unit.mount_target) for unit in resolve(topology)],
            ['/mnt/data', '/mnt/data/homes', '/mnt/data/homes/carol', '/mnt/data/Guest'])
        self.assertEqual(topology.home_of('carol'), PurePosixPath('/mnt/data/homes/carol'))

    def test_deterministic(self):
        first = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.SHARED], ['bob', 'alice'])
        second = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [OptionalShare.SHARED], ['bob', 'alice'])
        self.assertEqual(resolve(first), resolve(second))
        self.assertEqual(resolve(first), resolve(first))

    def test_enrollment_order_kept(self):
        topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [], ['bob', 'alice', 'bob'])
        self.assertEqual(topology.principals, ('bob', 'alice'))
        topology = topology.with_principals(['alice', 'carol'])
        self.assertEqual(topology.principals, ('bob', 'alice', 'carol'))
        self.assertEqual(
            [unit.volume for unit in resolve(topology)][2:],
            ['tank/nas/homes/bob', 'tank/nas/homes/alice', 'tank/nas/homes/carol'])

    def test_shares_in_fixed_order(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [], [])
        topology = topology.with_shares([OptionalShare.GUEST, OptionalShare.SHARED])
        self.assertEqual(topology.shares, (OptionalShare.SHARED, OptionalShare.GUEST))
