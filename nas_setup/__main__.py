# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Install a ZFS + Samba NAS into a Proxmox LXC container, or manage it.

Without a state record in the container, performs a full install.
With it, enables and disables shares, adds users, changes quotas,
allowed subnets, workgroup and the recycle bin.
Any failure rolls back what the run has created.
"""
import argparse
import logging
import sys
from subprocess import CalledProcessError
from subprocess import TimeoutExpired
from typing import Mapping
from typing import Optional
from typing import Sequence

from host_access import Shell
from host_access import SshNotConnected
from nas import DEFAULT_MOUNT_ROOT
from nas import DEFAULT_SMB_CONF
from nas import DEFAULT_STATE_FILE
from nas import NasError
from nas import Provisioner
from nas import StateStore
from nas import check_container
from nas import check_host
from nas import enrolled_principals
from nas import host_shell
from nas import init_logging
from nas import load_config
from nas import open_environment
from nas import validate_ctid
from nas_setup._flows import install_flow
from nas_setup._flows import manage_flow
from nas_setup._flows import select_container
from nas_setup._flows import summary
from nas_setup._prompts import ConsolePrompter
from nas_setup._prompts import Prompter
from proxmox import ContainerNotFound
from proxmox import StorageError

_logger = logging.getLogger(__name__)

_FATAL_ERRORS = (
    NasError,
    SshNotConnected,
    StorageError,
    ContainerNotFound,
    CalledProcessError,
    TimeoutExpired,
    OSError,
    )


def main(args: Optional[Sequence[str]] = None) -> int:
    parsed_args = _parse_args(args)
    config = load_config()
    init_logging('nas_setup', config.get('log_dir') or '~/.cache/proxmox_nas', parsed_args.verbose)
    try:
        shell = host_shell(config)
    except _FATAL_ERRORS as e:
        return _fatal(e)
    return execute(ConsolePrompter(), shell, config, parsed_args.ctid)


def execute(prompter: Prompter, shell: Shell, config: Mapping[str, str], ctid: Optional[int] = None) -> int:
    """Run the installer or manager and return the exit status."""
    try:
        run(prompter, shell, config, ctid)
    except _FATAL_ERRORS as e:
        return _fatal(e)
    except KeyboardInterrupt:
        return _fatal("interrupted")
    return 0


def _fatal(error) -> int:
    _logger.debug("Fatal: %s", error, exc_info=True)
    print(f"Error: {' '.join(str(error).split())}", file=sys.stderr)
    return 1


def run(prompter: Prompter, shell: Shell, config: Mapping[str, str], ctid: Optional[int] = None):
    prompter.say("== Proxmox ZFS + Samba NAS installer ==")
    check_host(shell)
    if ctid is None:
        ctid = select_container(prompter, shell)
    env = open_environment(shell, ctid)
    check_container(env)
    state_store = StateStore(
        env.container_files,
        config.get('state_file') or DEFAULT_STATE_FILE,
        discover_principals=lambda: enrolled_principals(env.identity))
    state = state_store.load()
    if state is None:
        plan = install_flow(prompter, env, shell, config.get('mount_root') or DEFAULT_MOUNT_ROOT)
    else:
        plan = manage_flow(prompter, env, state)
    provisioner = Provisioner(env, state_store, smb_conf=config.get('smb_conf') or DEFAULT_SMB_CONF)
    records = provisioner.run(plan)
    prompter.say(summary(env, plan, records))


def _parse_args(args: Sequence[str]):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        'ctid', nargs='?', type=_ctid, metavar='CTID',
        help="Container ID; asked interactively if omitted")
    parser.add_argument('-v', '--verbose', action='store_true', help="Log debug messages to console")
    return parser.parse_args(args)


def _ctid(value: str) -> int:
    try:
        return validate_ctid(value)
    except NasError as e:
        raise argparse.ArgumentTypeError(str(e))


if __name__ == '__main__':
    exit(main(sys.argv[1:]))
