# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
"""Dialogues that turn operator answers into a provisioning plan.

Nothing is changed here: install and management flows only ask
and validate. Changes are made by the provisioner as a whole.
"""
import logging
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from host_access import Shell
from nas import DEFAULT_MOUNT_ROOT
from nas import LayoutMode
from nas import ManagedEnvironment
from nas import OptionalShare
from nas import PersistedState
from nas import Plan
from nas import PreconditionError
from nas import PrincipalRequest
from nas import ResourceRecord
from nas import SmbPolicy
from nas import Topology
from nas import resolve
from nas import validate_ctid
from nas import validate_dataset_name
from nas import validate_mount_root
from nas import validate_quota
from nas import validate_subnets
from nas import validate_username
from nas import validate_workgroup
from nas_setup._prompts import Prompter

_logger = logging.getLogger(__name__)

_SHARE_DESCRIPTIONS = {
    OptionalShare.SHARED: "read for all, edit for creators",
    OptionalShare.PUBLIC: "read-only for all, nas_public for write",
    OptionalShare.GUEST: "read-only for guest",
    }


def select_container(prompter: Prompter, shell: Shell) -> int:
    prompter.say("Existing containers:")
    prompter.say(shell.run(['pct', 'list'], check=False).stdout.decode().rstrip())
    return validate_ctid(prompter.ask("Container ID (CTID): "))


def install_flow(
        prompter: Prompter,
        env: ManagedEnvironment,
        shell: Shell,
        default_mount_root: str = DEFAULT_MOUNT_ROOT,
        ) -> Plan:
    mount_root = prompter.ask_valid(
        f"Mount base inside CT (default {default_mount_root}): ",
        default_mount_root, validate_mount_root)
    layout = _ask_layout(prompter)
    base, create_base = _ask_base(prompter, env, shell)
    shares = _ask_shares(prompter, current=())
    quotas: Dict[str, str] = {}
    if layout == LayoutMode.UNIFIED:
        _ask_quota(prompter, quotas, base, f"base dataset {base}")
        prompter.say(f"Single dataset: {base} with subdirectories.")
    else:
        for share in shares:
            _ask_quota(prompter, quotas, f'{base}/{share.value}', share.value)
        prompter.say(f"Per-user datasets under {base}/homes.")
    policy = _ask_policy(prompter, SmbPolicy())
    topology = Topology(base, layout, shares, [], mount_root)
    requests = _ask_principals(prompter, topology, quotas)
    topology = topology.with_principals([request.username for request in requests])
    return Plan(topology, policy, requests, quotas, create_base)


def manage_flow(prompter: Prompter, env: ManagedEnvironment, state: PersistedState) -> Plan:
    topology, policy = state
    prompter.say(f"Detected existing NAS install in CT {env.container.ctid}.")
    prompter.say("Management mode: nothing is deleted; disabled shares keep their data.")
    topology = topology.with_shares(_ask_shares(prompter, current=topology.shares))
    policy = _ask_policy(prompter, policy)
    quotas: Dict[str, str] = {}
    if prompter.confirm("Change ZFS quotas now?"):
        for unit in resolve(topology):
            if env.storage.exists(unit.volume):
                current = env.storage.get_quota(unit.volume) or 'none'
                _ask_quota(prompter, quotas, unit.volume, f"{unit.volume} (current: {current})")
    requests = _ask_principals(prompter, topology, quotas)
    topology = topology.with_principals([request.username for request in requests])
    return Plan(topology, policy, requests, quotas, create_base=False)


def _ask_layout(prompter: Prompter) -> LayoutMode:
    prompter.say("Storage layout modes:")
    prompter.say("  1) Single dataset (subdirs: homes, [Shared], [Public], [Guest])")
    prompter.say("  2) Per-user datasets (homes/<user>), [Shared], [Public], [Guest]")
    answer = prompter.ask("Select mode [1/2] (default 1): ", '1')
    if answer == LayoutMode.PER_PRINCIPAL.value:
        return LayoutMode.PER_PRINCIPAL
    return LayoutMode.UNIFIED


def _ask_base(prompter: Prompter, env: ManagedEnvironment, shell: Shell):
    prompter.say("Available ZFS pools:")
    prompter.say(shell.run(['zpool', 'list'], check=False).stdout.decode().rstrip())
    pool = validate_dataset_name(prompter.ask("ZFS pool name: "))
    if not env.storage.pool_exists(pool):
        raise PreconditionError(f"Pool {pool!r} not found")
    prompter.say(f"Existing datasets under pool {pool!r}:")
    prompter.say(shell.run(['zfs', 'list', '-r', pool], check=False).stdout.decode().rstrip())
    name = validate_dataset_name(prompter.ask(f"Base dataset name under {pool} (e.g. nas): "))
    base = f'{pool}/{name}'
    if env.storage.exists(base):
        prompter.say(f"Reusing existing base dataset: {base}")
        return base, False
    if not prompter.confirm(f"Create base dataset {base}?"):
        raise PreconditionError(f"Base dataset {base} does not exist; aborting")
    return base, True


def _ask_shares(prompter: Prompter, current: Sequence[OptionalShare]) -> List[OptionalShare]:
    result = []
    for share in OptionalShare:
        if share in current:
            prompt = f"Enable {share.value} share? (current: enabled)"
        else:
            prompt = f"Create {share.value} share ({_SHARE_DESCRIPTIONS[share]})?"
        if prompter.confirm(prompt, share in current):
            result.append(share)
    return result


def _ask_policy(prompter: Prompter, policy: SmbPolicy) -> SmbPolicy:
    current_subnets = ','.join(policy.allowed_subnets) or 'all'
    allowed_subnets = prompter.ask_valid(
        f"Allowed subnets (comma separated, \"all\" = allow all; current: {current_subnets}): ",
        current_subnets, _validate_subnets_or_all)
    workgroup = prompter.ask_valid(
        f"Samba workgroup (default {policy.workgroup}): ",
        policy.workgroup, validate_workgroup)
    recycle_enabled = prompter.confirm(
        "Enable recycle bin for home directories?", policy.recycle_enabled)
    return SmbPolicy(workgroup, allowed_subnets, recycle_enabled)


def _validate_subnets_or_all(text: str):
    if text.lower() == 'all':
        return ()
    return validate_subnets(text)


def _ask_quota(prompter: Prompter, quotas: Dict[str, str], volume: str, label: str):
    answer = prompter.ask_valid(
        f"Quota for {label} (e.g. 1T, 500G, none; empty = no change): ",
        '', _validate_quota_or_empty)
    if answer is not None:
        quotas[volume] = answer


def _validate_quota_or_empty(text: str) -> Optional[str]:
    if not text:
        return None
    return validate_quota(text)


def _ask_principals(
        prompter: Prompter,
        topology: Topology,
        quotas: Dict[str, str],
        ) -> List[PrincipalRequest]:
    prompter.say("Samba users (for homes, Shared, Public, etc.)")
    requests: Dict[str, PrincipalRequest] = {}
    while prompter.confirm("Add or update a user?"):
        name = prompter.ask_valid("Username: ", '', validate_username)
        if name in topology.principals:
            prompter.say(f"User {name!r} is enrolled already; empty password keeps the current one.")
        password = prompter.ask_secret("Password: ")
        if prompter.ask_secret("Confirm password: ") != password:
            prompter.say(f"Password mismatch; skipping user {name}.")
            continue
        if not password and name not in topology.principals:
            prompter.say(f"Empty password; skipping user {name}.")
            continue
        admin = prompter.confirm(f"Add {name} to nas_admin (Samba admin)?")
        public_write = prompter.confirm(f"Allow {name} write access to Public (nas_public)?")
        if topology.layout == LayoutMode.PER_PRINCIPAL:
            _ask_quota(prompter, quotas, f'{topology.base_volume}/homes/{name}', f"home of {name}")
        requests[name] = PrincipalRequest(name, password or None, admin, public_write)
    return list(requests.values())


def summary(env: ManagedEnvironment, plan: Plan, records: Sequence[ResourceRecord]) -> str:
    topology, policy = plan.topology, plan.policy
    address = env.container.address() or '<container address>'
    lines = [
        "NAS setup complete.",
        "",
        f"Container: {env.container.ctid}",
        f"Container IP: {address}",
        f"Base dataset: {topology.base_volume} (mountpoint: {env.storage.mountpoint(topology.base_volume)})",
        f"Mode: {topology.layout.value}",
        "",
        "Shares:",
        f"  Homes   : \\\\{address}\\<username> (private, not browsable)",
        ]
    for share in topology.shares:
        lines.append(f"  {share.value:<8}: \\\\{address}\\{share.value}")
    lines.extend([
        "",
        "Groups inside CT:",
        "  nas_users  : all NAS users",
        "  nas_public : users allowed to write to Public",
        "  nas_admin  : Samba admins",
        ])
    if plan.principals:
        lines.extend(["", "Created/updated users:"])
        for request in plan.principals:
            lines.append(
                f"  - {request.username}   "
                f"(admin: {'yes' if request.admin else 'no'}, "
                f"public_write: {'yes' if request.public_write else 'no'})")
    lines.extend([
        "",
        "Data paths inside CT:",
        f"  Base mount : {topology.mount_root}",
        f"  Homes      : {topology.homes_root()}/<user> (parent 0711, homes 0700)",
        ])
    for share in topology.shares:
        lines.append(f"  {share.value:<11}: {topology.mount_root}/{share.value}")
    lines.extend([
        "",
        f"Workgroup: {policy.workgroup}",
        f"Allowed subnets: {','.join(policy.allowed_subnets) or 'all'}",
        f"Recycle bin: {'enabled' if policy.recycle_enabled else 'disabled'}",
        f"Resources created in this run: {len(records)}",
        ])
    return '\n'.join(lines)
