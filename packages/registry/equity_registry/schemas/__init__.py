"""Equity registry schemas.

This package contains the Pydantic models for the registry:
- Base types, reserved identities and conventions
- Membership ring (identity -> next identity)
- Stake ledger (stakes, total and allotted equity)
- Notifications
- Snapshots
- Configuration

Usage:
    from equity_registry.schemas import (
        MembershipRing, StakeLedger, RegistrySnapshot,
        MemberAdded, RegistryCFG, RegistrySetupCFG, SENTINEL
    )
"""

# Base types
from .base import (
    DomainModel,
    MemberId,
    StakeAmount,
    StakePercent,
    ADDRESS_PATTERN,
    NULL_IDENTITY,
    SENTINEL,
    DEFAULT_REGISTRY_ADDRESS,
    check_identity_format,
)

# Ring and ledger
from .ring import MembershipRing
from .ledger import StakeLedger

# Notifications
from .events import (
    RegistryEvent,
    MemberAdded,
    MemberRemoved,
    StakeChanged,
    AnyRegistryEvent,
)

# Snapshots
from .snapshot import (
    MemberStake,
    RegistrySnapshot,
)

# Configuration
from .config import (
    RegistryCFG,
    RegistrySetupCFG,
)

__all__ = [
    # Base types
    "DomainModel",
    "MemberId",
    "StakeAmount",
    "StakePercent",
    "ADDRESS_PATTERN",
    "NULL_IDENTITY",
    "SENTINEL",
    "DEFAULT_REGISTRY_ADDRESS",
    "check_identity_format",
    # Ring and ledger
    "MembershipRing",
    "StakeLedger",
    # Notifications
    "RegistryEvent",
    "MemberAdded",
    "MemberRemoved",
    "StakeChanged",
    "AnyRegistryEvent",
    # Snapshots
    "MemberStake",
    "RegistrySnapshot",
    # Configuration
    "RegistryCFG",
    "RegistrySetupCFG",
]
