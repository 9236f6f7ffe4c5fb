# Copyright 2018-present Network Optix, Inc. Licensed under MPL 2.0: www.mozilla.org/MPL/2.0/
from nas._config import load_config
from nas._environment import Location
from nas._environment import ManagedEnvironment
from nas._environment import host_shell
from nas._environment import open_environment
from nas._exceptions import CompensationFailure
from nas._exceptions import NasError
from nas._exceptions import PreconditionError
from nas._exceptions import SnapshotMissing
from nas._exceptions import StaleStateError
from nas._exceptions import StepFailure
from nas._exceptions import ValidationError
from nas._ledger import BindMountAdded
from nas._ledger import ConfigFileWritten
from nas._ledger import DirectoryCreated
from nas._ledger import GroupCreated
from nas._ledger import GroupMembershipAdded
from nas._ledger import Ledger
from nas._ledger import LinkCreated
from nas._ledger import PrincipalCreated
from nas._ledger import QuotaChanged
from nas._ledger import ResourceRecord
from nas._ledger import VolumeCreated
from nas._logging import init_logging
from nas._preconditions import check_container
from nas._preconditions import check_host
from nas._provisioning import DEFAULT_SMB_CONF
from nas._provisioning import Plan
from nas._provisioning import PrincipalRequest
from nas._provisioning import Provisioner
from nas._provisioning import plan_steps
from nas._smb_conf import DEFAULT_WORKGROUP
from nas._smb_conf import SmbPolicy
from nas._smb_conf import render_smb_conf
from nas._state import DEFAULT_STATE_FILE
from nas._state import PersistedState
from nas._state import StateStore
from nas._state import enrolled_principals
from nas._topology import ADMIN_GROUP
from nas._topology import DEFAULT_MOUNT_ROOT
from nas._topology import GROUPS
from nas._topology import LayoutMode
from nas._topology import LogicalUnit
from nas._topology import OptionalShare
from nas._topology import Ownership
from nas._topology import PUBLIC_GROUP
from nas._topology import Topology
from nas._topology import USERS_GROUP
from nas._topology import resolve
from nas._validation import validate_backup_name
from nas._validation import validate_ctid
from nas._validation import validate_dataset_name
from nas._validation import validate_mount_root
from nas._validation import validate_quota
from nas._validation import validate_snapshot_tag
from nas._validation import validate_subnets
from nas._validation import validate_username
from nas._validation import validate_volume
from nas._validation import validate_workgroup

__all__ = [
    'ADMIN_GROUP',
    'BindMountAdded',
    'CompensationFailure',
    'ConfigFileWritten',
    'DEFAULT_MOUNT_ROOT',
    'DEFAULT_SMB_CONF',
    'DEFAULT_STATE_FILE',
    'DEFAULT_WORKGROUP',
    'DirectoryCreated',
    'GROUPS',
    'GroupCreated',
    'GroupMembershipAdded',
    'LayoutMode',
    'Ledger',
    'LinkCreated',
    'Location',
    'LogicalUnit',
    'ManagedEnvironment',
    'NasError',
    'OptionalShare',
    'Ownership',
    'PUBLIC_GROUP',
    'PersistedState',
    'Plan',
    'PreconditionError',
    'PrincipalCreated',
    'PrincipalRequest',
    'Provisioner',
    'QuotaChanged',
    'ResourceRecord',
    'SmbPolicy',
    'SnapshotMissing',
    'StaleStateError',
    'StateStore',
    'StepFailure',
    'Topology',
    'USERS_GROUP',
    'ValidationError',
    'VolumeCreated',
    'check_container',
    'check_host',
    'enrolled_principals',
    'host_shell',
    'init_logging',
    'load_config',
    'open_environment',
    'plan_steps',
    'render_smb_conf',
    'resolve',
    'validate_backup_name',
    'validate_ctid',
    'validate_dataset_name',
    'validate_mount_root',
    'validate_quota',
    'validate_snapshot_tag',
    'validate_subnets',
    'validate_username',
    'validate_volume',
    'validate_workgroup',
    ]
