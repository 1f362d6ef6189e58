"""Base classes and type system for equity registry models.

This module provides the foundational types, reserved identities, and the
base model used throughout the registry schema system.
"""

import re
from typing import Annotated, Final
from pydantic import BaseModel, Field, ConfigDict

from ..errors import InvalidIdentity

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all registry models.

    Provides common configuration for all Pydantic models in the registry:
    - Validation on assignment for runtime safety
    - Enum value serialization
    """

    model_config = ConfigDict(
        frozen=False,  # Ring and ledger mutate in place
        validate_assignment=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )


# Undo-log marker for a mapping entry that did not exist before a mutation
MISSING: Final[object] = object()


# =============================================================================
# Type Aliases - Identities
# =============================================================================

ADDRESS_PATTERN: Final[str] = r'^0x[0-9a-f]{40}$'

_ADDRESS_RE = re.compile(ADDRESS_PATTERN)

MemberId = Annotated[
    str,
    Field(
        pattern=ADDRESS_PATTERN,
        description="Lowercase hex address identifying a member (e.g., '0x5b38...ddc4')"
    )
]

# Absence marker: an identity with no ring linkage reads back as NULL_IDENTITY
NULL_IDENTITY: Final[str] = "0x0000000000000000000000000000000000000000"

# Ring anchor, never a real member
SENTINEL: Final[str] = "0x0000000000000000000000000000000000000001"

DEFAULT_REGISTRY_ADDRESS: Final[str] = "0xffffffffffffffffffffffffffffffffffffffff"


def check_identity_format(identity: str) -> str:
    """Reject identities that are not lowercase 20-byte hex addresses.

    Raises:
        InvalidIdentity: If identity is not a string matching ADDRESS_PATTERN
    """
    if not isinstance(identity, str) or not _ADDRESS_RE.match(identity):
        raise InvalidIdentity(f"Malformed member identity: {identity!r}")
    return identity


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

StakeAmount = Annotated[
    int,
    Field(ge=0, description="Equity amount in hundredths of a percent (10000 = 100.00%)")
]

StakePercent = Annotated[
    int,
    Field(ge=0, le=10000, description="Percentage with 2 implied decimals (1000 = 10.00%)")
]


# =============================================================================
# Identity Conventions
# =============================================================================
#
# Reserved identities:
#   - 0x000...000 - null, marks "no next member"
#   - 0x000...001 - sentinel, head and tail anchor of the membership ring
#   - registry_address - the registry's own identity (RegistryCFG)
#
# Member identities:
#   - "0x5b38da6a701c568545dcfcb03fcb875f56beddc4"
#   - Always lowercase; "0xAB..." and "0xab..." are not the same member
#
# =============================================================================
