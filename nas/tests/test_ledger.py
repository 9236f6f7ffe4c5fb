# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import unittest

from doubles.fake_proxmox import FakeProxmox
from nas import BindMountAdded
from nas import ConfigFileWritten
from nas import DirectoryCreated
from nas import GroupCreated
from nas import GroupMembershipAdded
from nas import Ledger
from nas import LinkCreated
from nas import Location
from nas import PrincipalCreated
from nas import QuotaChanged
from nas import VolumeCreated


class TestLedger(unittest.TestCase):

    def setUp(self):
        self._proxmox = FakeProxmox()
        self._env = self._proxmox.environment()
        self._ledger = Ledger()

    def test_records_compare_by_value(self):
        self.assertEqual(VolumeCreated('tank/nas'), VolumeCreated('tank/nas'))
        self.assertNotEqual(VolumeCreated('tank/nas'), PrincipalCreated('tank/nas'))
        self.assertEqual(repr(QuotaChanged('tank/nas', None)), "QuotaChanged('tank/nas', None)")

    def test_unwind_in_reverse(self):
        storage = self._proxmox.storage
        storage.create('tank/nas')
        self._ledger.append(VolumeCreated('tank/nas'))
        storage.set_quota('tank/nas', '1T')
        self._ledger.append(QuotaChanged('tank/nas', None))
        self._proxmox.host_files.make_dir('/tank/nas/homes')
        self._ledger.append(DirectoryCreated('/tank/nas/homes', Location.HOST))
        self.assertEqual(self._ledger.unwind(self._env), [])
        self.assertFalse(storage.exists('tank/nas'))
        self.assertFalse(self._proxmox.host_files.exists('/tank/nas'))
        self.assertEqual(len(self._ledger), 0)

    def test_unwind_continues_past_failures(self):
        identity = self._proxmox.identity
        identity.create_group('nas_users')
        self._ledger.append(GroupCreated('nas_users'))
        identity.create_user('alice', '/srv/nas/homes/alice', 'nas_users')
        self._ledger.append(PrincipalCreated('alice'))
        identity.create_group('nas_admin')
        self._ledger.append(GroupCreated('nas_admin'))
        identity.add_to_group('alice', 'nas_admin')
        self._ledger.append(GroupMembershipAdded('alice', 'nas_admin'))
        identity.fail('delete_user', 'alice')
        [failure] = self._ledger.unwind(self._env)
        self.assertEqual(failure.record, PrincipalCreated('alice'))
        self.assertFalse(identity.group_exists('nas_admin'))
        self.assertFalse(identity.group_exists('nas_users'))

    def test_closed_after_unwind(self):
        self._ledger.unwind(self._env)
        with self.assertRaises(RuntimeError):
            self._ledger.append(VolumeCreated('tank/nas'))

    def test_directory_not_removed_when_not_empty(self):
        files = self._proxmox.host_files
        files.make_dirs('/tank/data')
        files.write_text('/tank/data/file.txt', 'data')
        self._ledger.append(DirectoryCreated('/tank/data', Location.HOST))
        self.assertEqual(self._ledger.unwind(self._env), [])
        self.assertTrue(files.exists('/tank/data/file.txt'))

    def test_bind_mount(self):
        key = self._proxmox.container.add_mount('/tank/nas', '/srv/nas')
        self._ledger.append(BindMountAdded(key, '/srv/nas'))
        self._ledger.unwind(self._env)
        self.assertEqual(self._proxmox.container.mounts(), {})

    def test_config_file_restored_from_backup(self):
        files = self._proxmox.container_files
        files.write_text('/etc/samba/smb.conf', 'old')
        files.copy('/etc/samba/smb.conf', '/etc/samba/smb.conf.bak.1700000000')
        self._ledger.append(ConfigFileWritten('/etc/samba/smb.conf', '/etc/samba/smb.conf.bak.1700000000'))
        files.write_text('/etc/samba/smb.conf', 'new')
        self._ledger.unwind(self._env)
        self.assertEqual(files.read_text('/etc/samba/smb.conf'), 'old')
        self.assertFalse(files.exists('/etc/samba/smb.conf.bak.1700000000'))

    def test_config_file_removed_without_backup(self):
        files = self._proxmox.container_files
        files.write_text('/etc/samba/smb.conf', 'new')
        self._ledger.append(ConfigFileWritten('/etc/samba/smb.conf', None))
        files.symlink('.recycle/alice', '/etc/samba/Recycle Bin')
        self._ledger.append(LinkCreated('/etc/samba/Recycle Bin', Location.CONTAINER))
        self._ledger.unwind(self._env)
        self.assertEqual(self._proxmox.container.root_files.list_dir('/etc/samba'), [])
