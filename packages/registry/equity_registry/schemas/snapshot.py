"""Point-in-time registry snapshots.

A RegistrySnapshot is a consistent copy of the ring and ledger taken under
the registry lock. It is what read-side consumers (analysis blocks, reports)
work from, so they never observe a half-applied mutation.
"""

from decimal import Decimal
from typing import List
from pydantic import Field, model_validator

from .base import DomainModel, MemberId, StakeAmount
from ..arithmetic import PERCENT_SCALE


class MemberStake(DomainModel):
    """A member and its stake, in ring order."""

    member: MemberId = Field(
        description="Member identity"
    )

    stake: StakeAmount = Field(
        description="Stake in hundredths of a percent of the original scale"
    )


class RegistrySnapshot(DomainModel):
    """Immutable view of the registry at one moment.

    Usage:
        snapshot = registry.snapshot()
        snapshot.unallotted_equity
        snapshot.stake_percent(alice)          # 3000 -> 30.00%
        snapshot.ownership_percentage(alice)   # Decimal("0.3")
    """

    members: List[MemberStake] = Field(
        default_factory=list,
        description="Live members in ring order (head first)"
    )

    total_equity: StakeAmount = Field(
        default=0,
        description="Total issued equity"
    )

    allotted_equity: StakeAmount = Field(
        default=0,
        description="Sum of member stakes"
    )

    @model_validator(mode='after')
    def validate_allotment(self):
        """Snapshots of a consistent registry never over-allot."""
        if self.allotted_equity > self.total_equity:
            raise ValueError(
                f"allotted_equity {self.allotted_equity} exceeds total_equity {self.total_equity}"
            )
        return self

    @property
    def owner_count(self) -> int:
        return len(self.members)

    @property
    def unallotted_equity(self) -> int:
        return self.total_equity - self.allotted_equity

    @property
    def member_ids(self) -> List[str]:
        return [entry.member for entry in self.members]

    def stake_of(self, member: str) -> int:
        return next((entry.stake for entry in self.members if entry.member == member), 0)

    def stake_percent(self, member: str) -> int:
        """Stake relative to total equity in hundredths of a percent."""
        if self.total_equity == 0:
            return 0
        return self.stake_of(member) * PERCENT_SCALE // self.total_equity

    def ownership_percentage(self, member: str) -> Decimal:
        """Stake relative to total equity as a decimal (0.25 = 25%)."""
        if self.total_equity == 0:
            return Decimal("0")
        return Decimal(self.stake_of(member)) / Decimal(self.total_equity)
