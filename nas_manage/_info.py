# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from typing import List

from nas import DEFAULT_SMB_CONF
from nas import LayoutMode
from nas import ManagedEnvironment
from nas import OptionalShare
from nas import PersistedState
from nas import resolve

_LAYOUTS = {
    LayoutMode.UNIFIED: "single dataset with subdirectories",
    LayoutMode.PER_PRINCIPAL: "per-user datasets + optional share datasets",
    }


def info_report(env: ManagedEnvironment, state: PersistedState, smb_conf: str = DEFAULT_SMB_CONF) -> str:
    topology, policy = state
    address = env.container.address() or 'unknown'
    lines = [
        "==================== NAS INFORMATION ====================",
        "",
        "Container:",
        f"  CTID            : {env.container.ctid}",
        f"  IP address      : {address}",
        "",
        "NAS design:",
        f"  Base dataset    : {topology.base_volume}",
        f"  Base mount (CT) : {topology.mount_root}",
        f"  Mode            : {topology.layout.value}",
        f"  Layout          : {_LAYOUTS[topology.layout]}",
        "",
        "Shares:",
        "  Homes           : enabled (always)",
        ]
    for share in OptionalShare:
        status = 'enabled' if share in topology.shares else 'disabled'
        lines.append(f"  {share.value:<16}: {status}")
    lines.extend(["", "Datasets (usage / quota):", f"  {'DATASET':<45} {'USED':<10} {'QUOTA':<10}"])
    for unit in resolve(topology):
        if env.storage.exists(unit.volume):
            used = env.storage.used(unit.volume)
            quota = env.storage.get_quota(unit.volume) or 'none'
        else:
            used = quota = '-'
        lines.append(f"  {unit.volume:<45} {used:<10} {quota:<10}")
    lines.extend(["", "Users (nas_users):"])
    lines.extend(f"  - {name}" for name in topology.principals)
    if not topology.principals:
        lines.append("  (none)")
    lines.extend([
        "",
        "Samba:",
        f"  Workgroup       : {policy.workgroup}",
        f"  Allowed subnets : {','.join(policy.allowed_subnets) or 'all'}",
        f"  Recycle bin     : {'enabled' if policy.recycle_enabled else 'disabled'}",
        "  Active shares   :",
        ])
    lines.extend(f"    {section}" for section in _sections(env, smb_conf) or ["(none)"])
    lines.extend([
        "",
        "Network paths:",
        f"  Homes  : \\\\{address}\\<username>",
        ])
    for share in topology.shares:
        lines.append(f"  {share.value:<7}: \\\\{address}\\{share.value}")
    lines.extend(["", "==================== END OF INFO ===================="])
    return '\n'.join(lines)


def _sections(env: ManagedEnvironment, smb_conf: str) -> List[str]:
    if not env.container_files.exists(smb_conf):
        return []
    text = env.container_files.read_text(smb_conf)
    return [line.strip() for line in text.splitlines() if line.strip().startswith('[')]
