# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Checks done before anything is changed."""
import logging

from host_access import Shell
from nas._environment import ManagedEnvironment
from nas._exceptions import PreconditionError
from proxmox import ContainerNotFound

_logger = logging.getLogger(__name__)

_HOST_TOOLS = ('pct', 'zfs', 'zpool')
_SAMBA_TOOLS = ('smbd', 'smbpasswd', 'testparm')


def check_host(shell: Shell):
    """Must be root on a Proxmox host with ZFS."""
    uid = shell.output(['id', '-u'])
    if uid != '0':
        raise PreconditionError(f"Run as root on the Proxmox host; uid is {uid}")
    for tool in _HOST_TOOLS:
        if not shell.succeeds(f'command -v {tool}'):
            raise PreconditionError(f"{tool} not found; run on a Proxmox host with ZFS tools")
    _logger.debug("Host %r: fine", shell)


def check_container(env: ManagedEnvironment, start: bool = True):
    """Container exists, runs and has Samba installed."""
    container = env.container
    if not container.exists():
        raise PreconditionError(f"CT {container.ctid} not found or its config is missing")
    try:
        running = container.is_running()
    except ContainerNotFound as e:
        raise PreconditionError(str(e))
    if not running:
        if not start:
            raise PreconditionError(f"CT {container.ctid} is not running")
        _logger.info("CT %s: starting", container.ctid)
        container.start()
    shell = container.shell()
    missing = [tool for tool in _SAMBA_TOOLS if not shell.succeeds(f'command -v {tool}')]
    if missing:
        raise PreconditionError(
            f"Samba tools missing in CT {container.ctid}: {', '.join(missing)}; "
            "install the samba package in the container")
    id_map = container.id_map()
    if id_map.unprivileged:
        _logger.info("CT %s: unprivileged, id offset %d", container.ctid, id_map.offset)
    else:
        _logger.info("CT %s: privileged", container.ctid)
