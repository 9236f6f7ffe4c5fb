# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
import re
import unittest
from configparser import ConfigParser

from nas import LayoutMode
from nas import OptionalShare
from nas import SmbPolicy
from nas import Topology
from nas import render_smb_conf


def _parse(text):
    parser = ConfigParser(delimiters=('=',), interpolation=None, strict=False)
    parser.read_string(text)
    return parser


class TestSmbConf(unittest.TestCase):

    def test_no_shares(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [], ['alice'])
        parser = _parse(render_smb_conf(topology, SmbPolicy()))
        self.assertEqual(parser.sections(), ['global', 'homes'])
        self.assertEqual(parser['global']['workgroup'], 'WORKGROUP')
        self.assertEqual(parser['global']['server min protocol'], 'SMB2_10')
        self.assertEqual(parser['global']['server max protocol'], 'SMB3_11')
        self.assertEqual(parser['global']['map to guest'], 'Bad User')
        self.assertEqual(parser['global']['restrict anonymous'], '2')
        self.assertEqual(parser['global']['access based share enum'], 'yes')
        self.assertNotIn('hosts allow', parser['global'])
        self.assertNotIn('hosts deny', parser['global'])

    def test_homes_are_private(self):
        topology = Topology('tank/nas', LayoutMode.PER_PRINCIPAL, [], ['alice', 'bob'])
        text = render_smb_conf(topology, SmbPolicy())
        homes = _parse(text)['homes']
        self.assertEqual(homes['browseable'], 'no')
        self.assertEqual(homes['valid users'], '%S')
        self.assertEqual(homes['vfs objects'], 'acl_xattr')
        self.assertNotIn('alice', text)
        self.assertNotIn('bob', text)

    def test_restricted_subnets(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [], [])
        policy = SmbPolicy('HOME', ('192.168.1.0/24', '10.0.0.0/8'))
        parser = _parse(render_smb_conf(topology, policy))
        self.assertEqual(parser['global']['workgroup'], 'HOME')
        self.assertEqual(parser['global']['hosts allow'], '192.168.1.0/24,10.0.0.0/8')
        self.assertEqual(parser['global']['hosts deny'], 'ALL')

    def test_recycle(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [], [])
        homes = _parse(render_smb_conf(topology, SmbPolicy(recycle_enabled=True)))['homes']
        self.assertEqual(homes['vfs objects'], 'acl_xattr recycle')
        self.assertEqual(homes['recycle:repository'], '.recycle/%U')
        self.assertEqual(homes['recycle:directory_mode'], '0700')

    def test_shares(self):
        topology = Topology(
            'tank/nas', LayoutMode.PER_PRINCIPAL,
            [OptionalShare.GUEST, OptionalShare.PUBLIC, OptionalShare.SHARED], [], '/mnt/nas')
        parser = _parse(render_smb_conf(topology, SmbPolicy()))
        self.assertEqual(parser.sections(), ['global', 'homes', 'Shared', 'Public', 'Guest'])
        self.assertEqual(parser['Shared']['path'], '/mnt/nas/Shared')
        self.assertEqual(parser['Shared']['read only'], 'no')
        self.assertEqual(parser['Public']['read only'], 'yes')
        self.assertEqual(parser['Public']['write list'], '@nas_public @nas_admin')
        self.assertEqual(parser['Guest']['guest ok'], 'yes')
        self.assertEqual(parser['Guest']['read only'], 'yes')
        self.assertEqual(parser['Guest']['write list'], '@nas_admin')

    def test_pure(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [OptionalShare.SHARED], ['alice'])
        policy = SmbPolicy(recycle_enabled=True)
        self.assertEqual(render_smb_conf(topology, policy), render_smb_conf(topology, policy))

    def test_sections_separated_by_blank_line(self):
        topology = Topology('tank/nas', LayoutMode.UNIFIED, [OptionalShare.SHARED], [])
        text = render_smb_conf(topology, SmbPolicy())
        self.assertEqual(re.findall(r'\n\n\[(\w+)\]', text), ['homes', 'Shared'])
