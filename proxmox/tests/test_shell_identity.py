# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import logging
import unittest
from subprocess import CalledProcessError

from doubles.scripted_shell import ScriptedShell
from proxmox import ShellIdentity


class TestShellIdentity(unittest.TestCase):

    def setUp(self):
        self._shell = ScriptedShell()
        self._identity = ShellIdentity(self._shell)

    def test_create_user(self):
        self._identity.create_user('alice', '/srv/nas/homes/alice', 'nas_users')
        self.assertEqual(self._shell.commands, [
            'useradd -M -d /srv/nas/homes/alice -s /usr/sbin/nologin -g nas_users alice',
            ])

    def test_password_is_never_on_command_line(self):
        self._identity.set_password('alice', 's3cret')
        self.assertEqual(self._shell.commands, ['chpasswd', 'smbpasswd -s -a alice'])
        self.assertEqual(self._shell.inputs, [b'alice:s3cret\n', b's3cret\ns3cret\n'])

    def test_delete_user_without_samba_account(self):
        self._shell.respond('pdbedit', returncode=255, stderr=b'Failed to find entry\n')
        self._identity.delete_user('alice')
        self.assertEqual(self._shell.commands, ['pdbedit -x alice', 'userdel alice'])

    def test_delete_missing_user(self):
        self._shell.respond('userdel', returncode=6, stderr=b"userdel: user 'alice' does not exist\n")
        self._identity.delete_user('alice')

    def test_delete_user_failure(self):
        self._shell.respond('userdel', returncode=8, stderr=b"userdel: user alice is currently used\n")
        with self.assertRaises(CalledProcessError):
            self._identity.delete_user('alice')

    def test_create_existing_group(self):
        self._shell.respond('groupadd', returncode=9, stderr=b"groupadd: group 'nas_users' already exists\n")
        self._identity.create_group('nas_users')

    def test_group_members(self):
        self._shell.respond('getent group nas_users', stdout=b'nas_users:x:1001:alice,bob\n')
        self.assertEqual(self._identity.group_members('nas_users'), ['alice', 'bob'])
        self.assertEqual(self._identity.group_id('nas_users'), 1001)
        self._shell.respond('getent group nas_users', stdout=b'nas_users:x:1001:\n')
        self.assertEqual(self._identity.group_members('nas_users'), [])

    def test_user_ids(self):
        self._shell.respond('id -u alice', stdout=b'1000\n')
        self._shell.respond('id -g alice', stdout=b'1001\n')
        self.assertEqual(self._identity.user_ids('alice'), (1000, 1001))

    def test_membership(self):
        self._shell.respond('id -nG alice', stdout=b'nas_users nas_public\n')
        self.assertEqual(set(self._identity.groups_of('alice')), {'nas_users', 'nas_public'})
        self._identity.add_to_group('alice', 'nas_admin')
        self._identity.remove_from_group('alice', 'nas_admin')
        self.assertEqual(self._shell.commands[-2:], [
            'usermod -aG nas_admin alice',
            'gpasswd -d alice nas_admin',
            ])


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG)
    unittest.main()
