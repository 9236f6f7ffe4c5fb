# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Samba configuration renderer.

The file is rendered from scratch every time and never merged by hand.
Rendering is pure: the same topology and policy give the same text,
which allows to skip rewriting an up-to-date file.

Homes are private: not browseable, only the owner is a valid user,
so no user can see the names of others.
Each optional share has a fixed access policy:

- Shared: everyone reads, owners write (sticky directory);
- Public: everyone reads, only nas_public and nas_admin write;
- Guest: guests read, nas_admin writes.
"""
from textwrap import dedent
from typing import NamedTuple
from typing import Tuple

from nas._topology import ADMIN_GROUP
from nas._topology import OptionalShare
from nas._topology import PUBLIC_GROUP
from nas._topology import Topology
from nas._topology import USERS_GROUP

DEFAULT_WORKGROUP = 'WORKGROUP'


class SmbPolicy(NamedTuple):
    workgroup: str = DEFAULT_WORKGROUP
    allowed_subnets: Tuple[str, ...] = ()  # Empty: allow all.
    recycle_enabled: bool = False


def render_smb_conf(topology: Topology, policy: SmbPolicy) -> str:
    sections = [_global(policy), _homes(policy)]
    for share in topology.shares:
        sections.append(_share_renderers[share](topology.mount_root))
    return '\n'.join(sections)


def _global(policy: SmbPolicy):
    text = dedent(f'''\
        # Managed by proxmox-nas (do not hand-edit unless you know what you're doing)
        [global]
           workgroup = {policy.workgroup}
           server string = Proxmox NAS
           server role = standalone server
           security = user
           aio read size = 1
           aio write size = 1

           log file = /var/log/samba/log.%m
           max log size = 1000
           log level = 1

           # Protocol hardening
           server min protocol = SMB2_10
           client min protocol = SMB2_10
           server max protocol = SMB3_11
           client max protocol = SMB3_11

           # Signing disabled for lan
           server signing = disabled

           # ACL / xattr
           vfs objects = acl_xattr
           map acl inherit = yes
           store dos attributes = yes
           inherit acls = yes
           ea support = yes

           map to guest = Bad User
           guest account = nobody

           disable netbios = yes
           dns proxy = no

           restrict anonymous = 2
           null passwords = no

           access based share enum = yes
           hide unreadable = yes
           hide dot files = yes

           unix extensions = no
           follow symlinks = yes
           wide links = no
        ''')
    if policy.allowed_subnets:
        text += f'   hosts allow = {",".join(policy.allowed_subnets)}\n'
        text += '   hosts deny  = ALL\n'
    return text


def _homes(policy: SmbPolicy):
    text = dedent(f'''\
        [homes]
           comment = Home Directories
           browseable = no
           read only = no
           valid users = %S
           admin users = @{ADMIN_GROUP}
           create mask = 0600
           directory mask = 0700
        ''')
    if policy.recycle_enabled:
        text += ''.join(f'   {line}\n' for line in _RECYCLE_OPTIONS)
    else:
        text += '   vfs objects = acl_xattr\n'
    return text


# Deleted files go to .recycle/<user> inside the home; it is purged by nas_manage.
_RECYCLE_OPTIONS = [
    'vfs objects = acl_xattr recycle',
    'recycle:repository = .recycle/%U',
    'recycle:keeptree = yes',
    'recycle:versions = yes',
    'recycle:touch = yes',
    'recycle:touch_mtime = yes',
    'recycle:directory_mode = 0700',
    'recycle:subdir_mode = 0700',
    ]


def _shared(mount_root):
    return dedent(f'''\
        [Shared]
           path = {mount_root}/Shared
           comment = Shared (everyone read, only owners edit/delete)
           browseable = yes
           read only = no
           guest ok = no
           valid users = @{USERS_GROUP} @{ADMIN_GROUP}
           admin users = @{ADMIN_GROUP}
           create mask = 0644
           force create mode = 0644
           directory mask = 0755
           force directory mode = 0755
           inherit acls = yes
        ''')


def _public(mount_root):
    return dedent(f'''\
        [Public]
           path = {mount_root}/Public
           comment = Public (RO for all, RW for {PUBLIC_GROUP}/admin)
           browseable = yes
           read only = yes
           guest ok = no
           valid users = @{USERS_GROUP} @{PUBLIC_GROUP} @{ADMIN_GROUP}
           write list = @{PUBLIC_GROUP} @{ADMIN_GROUP}
           force group = {PUBLIC_GROUP}
           create mask = 0664
           force create mode = 0664
           directory mask = 2775
           force directory mode = 2775
           inherit acls = yes
        ''')


def _guest(mount_root):
    return dedent(f'''\
        [Guest]
           path = {mount_root}/Guest
           comment = Guest (guest read-only, admin write)
           browseable = yes
           read only = yes
           write list = @{ADMIN_GROUP}
           admin users = @{ADMIN_GROUP}
           guest ok = yes
           public = yes
        ''')


_share_renderers = {
    OptionalShare.SHARED: _shared,
    OptionalShare.PUBLIC: _public,
    OptionalShare.GUEST: _guest,
    }
