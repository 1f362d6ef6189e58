"""Error taxonomy for the equity registry.

Every failure is synchronous and rejects the attempted operation with no
state change. All errors derive from RegistryError, which is a ValueError so
callers that only care about "bad input" can catch the builtin.
"""


class RegistryError(ValueError):
    """Base class for all rejected registry operations."""
    pass


# =============================================================================
# Membership Errors
# =============================================================================

class InvalidIdentity(RegistryError):
    """Identity is reserved (null, sentinel, or the registry's own address)."""
    pass


class DuplicateMember(RegistryError):
    """Identity is already a live member."""
    pass


class NotFound(RegistryError):
    """Predecessor linkage does not point at the expected member."""
    pass


class AlreadyInitialized(RegistryError):
    """Ring or registry setup was attempted a second time."""
    pass


class BelowMinimum(RegistryError):
    """Removal would drop the member count under the required minimum."""
    pass


# =============================================================================
# Equity Errors
# =============================================================================

class LengthMismatch(RegistryError):
    """Members and stakes lists differ in length (or are empty)."""
    pass


class InvalidStake(RegistryError):
    """Stake amount outside the accepted range."""
    pass


class OverAllotment(RegistryError):
    """Allotted equity would exceed total equity."""
    pass


class InvalidDilutionPercent(RegistryError):
    """Requested dilution percent is not strictly between 0% and 100%."""
    pass


class NoUnallottedEquity(RegistryError):
    """There is no unallotted equity left to sell."""
    pass


class ExcessiveRequest(RegistryError):
    """Requested amount exceeds the unallotted equity."""
    pass


class ArithmeticOverflow(RegistryError):
    """Checked arithmetic left the representable amount range."""
    pass


# =============================================================================
# Authorization
# =============================================================================

class Unauthorized(RegistryError):
    """The authorization collaborator rejected the caller."""
    pass
