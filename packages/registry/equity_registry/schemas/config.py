"""Registry configuration.

RegistryCFG controls how an EquityRegistry instance behaves; RegistrySetupCFG
carries the one-time initialization input. Both are plain data: the checks
that must reject with registry errors (length mismatch, stake ranges) run in
EquityRegistry.setup, not here.
"""

from typing import Iterator, List, Tuple
from pydantic import Field

from .base import DomainModel, StakeAmount, ADDRESS_PATTERN, DEFAULT_REGISTRY_ADDRESS
from ..arithmetic import DEFAULT_AMOUNT_BITS


# =============================================================================
# Registry Configuration
# =============================================================================

class RegistryCFG(DomainModel):
    """Behavioral settings for an EquityRegistry.

    Examples:
        # Defaults: 256-bit amounts, notifications and history on
        RegistryCFG()

        # Registry living at a known address, narrower amounts
        RegistryCFG(
            registry_address="0x9fe46736679d2d9a65f0992f2272de9f3c7fa6e0",
            amount_bits=128,
        )
    """

    registry_address: str = Field(
        default=DEFAULT_REGISTRY_ADDRESS,
        pattern=ADDRESS_PATTERN,
        description="The registry's own identity; reserved, never a member"
    )

    amount_bits: int = Field(
        default=DEFAULT_AMOUNT_BITS,
        gt=0,
        le=4096,
        description="Bit width bounding every equity amount"
    )

    emit_notifications: bool = Field(
        default=True,
        description="Deliver events to subscribed sinks after each commit"
    )

    record_history: bool = Field(
        default=True,
        description="Append emitted events to EquityRegistry.history"
    )


# =============================================================================
# Setup Input
# =============================================================================

class RegistrySetupCFG(DomainModel):
    """Initial members, their stakes and the total equity denominator.

    members[i] receives stakes[i]. Insertion is at the ring head, so the
    registry enumerates members in reverse of this order.

    Example:
        RegistrySetupCFG(
            members=[alice, bob],
            stakes=[3000, 2000],
            total_equity=10000,
        )
    """

    members: List[str] = Field(
        description="Member identities in setup order"
    )

    stakes: List[StakeAmount] = Field(
        description="Initial stake for each member (same length as members)"
    )

    total_equity: StakeAmount = Field(
        description="Total issued equity (10000 = 100.00%)"
    )

    def allotments(self) -> Iterator[Tuple[str, int]]:
        return zip(self.members, self.stakes)
