# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Operate an installed Proxmox ZFS + Samba NAS.

info: layout, users, quotas, shares.
smb: backup | list | restore [file].
snapshot: create | list | rollback <tag> | remove <tag>.
recycle: flush | timer <Nm|Nh|Nd|off> | off.
"""
import argparse
import logging
import sys
from subprocess import CalledProcessError
from subprocess import TimeoutExpired
from typing import Mapping
from typing import Optional
from typing import Sequence

from host_access import SshNotConnected
from nas import DEFAULT_SMB_CONF
from nas import DEFAULT_STATE_FILE
from nas import ManagedEnvironment
from nas import NasError
from nas import PersistedState
from nas import PreconditionError
from nas import StateStore
from nas import check_container
from nas import check_host
from nas import enrolled_principals
from nas import host_shell
from nas import init_logging
from nas import load_config
from nas import open_environment
from nas import validate_ctid
from nas_manage._info import info_report
from nas_manage._recycle import RecycleBins
from nas_manage._smb_backups import DEFAULT_BACKUP_DIR
from nas_manage._smb_backups import SmbBackups
from nas_manage._snapshots import DEFAULT_SNAPSHOT_PREFIX
from nas_manage._snapshots import Snapshots
from proxmox import ContainerNotFound
from proxmox import StorageError

_logger = logging.getLogger(__name__)

# Expected failures of the NAS, its host and the commands run there.
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
    init_logging('nas_manage', config.get('log_dir') or '~/.cache/proxmox_nas', parsed_args.verbose)
    try:
        shell = host_shell(config)
        check_host(shell)
        env = open_environment(shell, parsed_args.ctid)
        check_container(env)
    except _FATAL_ERRORS as e:
        return _fatal(e)
    except KeyboardInterrupt:
        return _fatal("interrupted")
    return execute(env, config, parsed_args)


def execute(env: ManagedEnvironment, config: Mapping[str, str], parsed_args: argparse.Namespace) -> int:
    """Run a command, print its output and return the exit status."""
    try:
        print(run(env, config, parsed_args))
    except _FATAL_ERRORS as e:
        return _fatal(e)
    except KeyboardInterrupt:
        return _fatal("interrupted")
    return 0


def _fatal(error) -> int:
    _logger.debug("Fatal: %s", error, exc_info=True)
    print(f"Error: {' '.join(str(error).split())}", file=sys.stderr)
    return 1


def run(env: ManagedEnvironment, config: Mapping[str, str], parsed_args: argparse.Namespace) -> str:
    smb_conf = config.get('smb_conf') or DEFAULT_SMB_CONF
    if parsed_args.command == 'smb':
        return _smb(env, config, smb_conf, parsed_args)
    state = _load_state(env, config)
    if parsed_args.command == 'info':
        return info_report(env, state, smb_conf)
    if parsed_args.command == 'snapshot':
        return _snapshot(env, config, state, parsed_args)
    return _recycle(env, state, smb_conf, parsed_args)


def _load_state(env: ManagedEnvironment, config: Mapping[str, str]) -> PersistedState:
    state_store = StateStore(
        env.container_files,
        config.get('state_file') or DEFAULT_STATE_FILE,
        discover_principals=lambda: enrolled_principals(env.identity))
    state = state_store.load()
    if state is None:
        raise PreconditionError(f"NAS not installed (missing {state_store.path()})")
    return state


def _smb(env, config, smb_conf, parsed_args) -> str:
    backups = SmbBackups(
        env.container_files,
        env.container.shell(),
        smb_conf,
        config.get('smb_backup_dir') or DEFAULT_BACKUP_DIR)
    if parsed_args.action == 'backup':
        return f"Saved {backups.backup()}"
    if parsed_args.action == 'list':
        return '\n'.join(backups.list()) or "(none)"
    return f"Restored {backups.restore(parsed_args.name)}"


def _snapshot(env, config, state, parsed_args) -> str:
    snapshots = Snapshots(
        env.storage, state.topology,
        config.get('snapshot_prefix') or DEFAULT_SNAPSHOT_PREFIX)
    if parsed_args.action == 'create':
        return f"Snapshot @{snapshots.create()} created"
    if parsed_args.action == 'list':
        return '\n'.join(snapshots.list()) or "(none)"
    if parsed_args.action == 'rollback':
        snapshots.rollback(parsed_args.tag)
        return f"Rolled back to @{parsed_args.tag}"
    removed = snapshots.remove(parsed_args.tag)
    return f"Snapshot @{parsed_args.tag} removed from {len(removed)} dataset(s)"


def _recycle(env, state, smb_conf, parsed_args) -> str:
    bins = RecycleBins(env.container.shell(), env.container_files, state.topology.mount_root, smb_conf)
    if parsed_args.action == 'off' or (parsed_args.action == 'timer' and parsed_args.timer == 'off'):
        bins.remove_timer()
        return "Recycle flush disabled"
    if parsed_args.action == 'timer':
        return f"Recycle flush scheduled: {bins.install_timer(parsed_args.timer)}"
    flushed = bins.flush()
    return '\n'.join(f"Emptied: {path}" for path in flushed) or "No recycle bins found"


def _parse_args(args: Sequence[str]):
    parser = argparse.ArgumentParser(
        description=__doc__.splitlines()[0],
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='\n'.join(__doc__.splitlines()[2:]))
    parser.add_argument('-v', '--verbose', action='store_true', help="Log debug messages to console")
    parser.add_argument('ctid', type=_ctid, metavar='CTID', help="Container ID")
    commands = parser.add_subparsers(dest='command', required=True)
    commands.add_parser('info', help="Show layout, users, quotas and shares")
    smb = commands.add_parser('smb', help="Back up and restore smb.conf")
    smb.add_argument('action', choices=['backup', 'list', 'restore'])
    smb.add_argument('name', nargs='?', help="Backup to restore; newest if omitted")
    snapshot = commands.add_parser('snapshot', help="Snapshot all datasets under one tag")
    snapshot.add_argument('action', choices=['create', 'list', 'rollback', 'remove'])
    snapshot.add_argument('tag', nargs='?')
    recycle = commands.add_parser('recycle', help="Empty recycle bins now or periodically")
    recycle.add_argument('action', nargs='?', choices=['flush', 'timer', 'off'], default='flush')
    recycle.add_argument('timer', nargs='?', metavar='Nm|Nh|Nd|off')
    parsed_args = parser.parse_args(args)
    if parsed_args.command == 'snapshot' and parsed_args.action in ('rollback', 'remove'):
        if parsed_args.tag is None:
            snapshot.error(f"{parsed_args.action} requires a tag")
    if parsed_args.command == 'recycle' and parsed_args.action == 'timer':
        if parsed_args.timer is None:
            recycle.error("timer requires Nm, Nh, Nd or off")
    return parsed_args


def _ctid(value: str) -> int:
    try:
        return validate_ctid(value)
    except NasError as e:
        raise argparse.ArgumentTypeError(str(e))


if __name__ == '__main__':
    exit(main(sys.argv[1:]))
