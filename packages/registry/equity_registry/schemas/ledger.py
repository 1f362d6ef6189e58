"""Stake ledger: per-member stakes plus running equity totals.

Amounts are integers with 2 implied decimal digits of percent
(10000 units = 100.00%). The ledger never stores a negative or out-of-range
amount: every update goes through checked arithmetic.

Accounting identity:
    allotted_equity == sum(stakes.values()) <= total_equity
"""

from decimal import Decimal
from typing import Dict, List, Tuple
from pydantic import Field, PrivateAttr

from .base import MISSING, DomainModel, StakeAmount
from ..arithmetic import (
    DEFAULT_AMOUNT_BITS,
    PERCENT_SCALE,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    max_amount,
)
from ..errors import InvalidDilutionPercent, OverAllotment, RegistryError


# (undo log mark, total_equity, allotted_equity)
LedgerCheckpoint = Tuple[int, int, int]


class StakeLedger(DomainModel):
    """Stakes by member with total and allotted equity.

    total_equity is the denominator representing 100% of issued equity and
    only grows through dilution. allotted_equity is the sum of live members'
    stakes; the difference is unallotted equity available for sale.

    Example:
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(alice, 3000)
        ledger.unallotted_equity          # 7000
        ledger.compute_diluted_stake(1000)  # (1111, 11111)
    """

    stakes: Dict[str, StakeAmount] = Field(
        default_factory=dict,
        description="member -> stake; absent members hold 0"
    )

    total_equity: StakeAmount = Field(
        default=0,
        description="Full issued equity (100% denominator)"
    )

    allotted_equity: StakeAmount = Field(
        default=0,
        description="Sum of all live members' stakes"
    )

    amount_bits: int = Field(
        default=DEFAULT_AMOUNT_BITS,
        gt=0,
        description="Bit width bounding every amount (overflow fails closed)"
    )

    _undo: List[Tuple[str, object]] = PrivateAttr(default_factory=list)
    _open_checkpoints: int = PrivateAttr(default=0)

    @property
    def bound(self) -> int:
        return max_amount(self.amount_bits)

    @property
    def unallotted_equity(self) -> int:
        return checked_sub(self.total_equity, self.allotted_equity, self.bound)

    def stake_of(self, member: str) -> int:
        return self.stakes.get(member, 0)

    def stake_percent(self, member: str) -> int:
        """Member stake relative to total equity, in hundredths of a percent.

        Multiplies before dividing so that 3000 of 10000 reads as 3000
        (30.00%) rather than truncating to 0. The intermediate product is not
        bounded: the result always fits in [0, 10000], so a read never fails
        on a committed state.
        """
        if self.total_equity == 0:
            return 0
        return self.stake_of(member) * PERCENT_SCALE // self.total_equity

    def ownership_fraction(self, member: str) -> Decimal:
        """Member stake as a Decimal fraction (0.25 = 25%)."""
        if self.total_equity == 0:
            return Decimal("0")
        return Decimal(self.stake_of(member)) / Decimal(self.total_equity)

    # =========================================================================
    # Dilution
    # =========================================================================

    def compute_diluted_stake(self, stake_percent: int) -> Tuple[int, int]:
        """Size a new stake that owns stake_percent of the enlarged total.

        Args:
            stake_percent: Target share of the post-issuance total, in
                hundredths of a percent (1000 = 10.00%)

        Returns:
            (new_stake_amount, new_total_equity)

        Raises:
            InvalidDilutionPercent: Unless 0 < stake_percent < 10000
            ArithmeticOverflow: If the enlarged total is not representable

        Math:
            new_total = total * 10000 / (10000 - p)
            new_stake = new_total - total

            total=10000, p=1000 (10%): new_total = 100000000 / 9000 = 11111,
            new_stake = 1111, and 1111 / 11111 = 9.999%
        """
        if (
            isinstance(stake_percent, bool)
            or not isinstance(stake_percent, int)
            or not 0 < stake_percent < PERCENT_SCALE
        ):
            raise InvalidDilutionPercent(
                f"Dilution percent must be between 1 and {PERCENT_SCALE - 1}, got {stake_percent}"
            )
        remaining = PERCENT_SCALE - stake_percent
        scaled = checked_mul(self.total_equity, PERCENT_SCALE, self.bound)
        new_total = checked_div(scaled, remaining)
        new_stake = checked_sub(new_total, self.total_equity, self.bound)
        return new_stake, new_total

    # =========================================================================
    # Mutations
    # =========================================================================

    def set_total_equity(self, amount: int) -> None:
        if amount < self.allotted_equity:
            raise OverAllotment(
                f"Total equity {amount} below allotted equity {self.allotted_equity}"
            )
        self.total_equity = checked_add(amount, 0, self.bound)

    def credit(self, member: str, amount: int) -> int:
        """Add amount to member's stake and to allotted equity.

        Returns:
            Member's new stake

        Raises:
            OverAllotment: If allotted equity would exceed total equity
            ArithmeticOverflow: If any sum leaves the amount range
        """
        new_stake = checked_add(self.stake_of(member), amount, self.bound)
        new_allotted = checked_add(self.allotted_equity, amount, self.bound)
        if new_allotted > self.total_equity:
            raise OverAllotment(
                f"Allotted equity {new_allotted} would exceed total equity {self.total_equity}"
            )
        self._write_stake(member, new_stake)
        self.allotted_equity = new_allotted
        return new_stake

    def clear(self, member: str) -> int:
        """Zero member's stake and release it from allotted equity.

        Returns:
            The stake that was released
        """
        released = self.stake_of(member)
        self.allotted_equity = checked_sub(self.allotted_equity, released, self.bound)
        if member in self.stakes:
            self._drop_stake(member)
        return released

    def transfer(self, from_member: str, to_member: str) -> int:
        """Move from_member's whole stake to to_member (allotted unchanged).

        Returns:
            The stake transferred
        """
        if self.stake_of(to_member) != 0:
            raise RegistryError(f"Transfer target {to_member} already holds a stake")
        moved = self._drop_stake(from_member) if from_member in self.stakes else 0
        if moved:
            self._write_stake(to_member, moved)
        return moved

    def check_allotment(self) -> None:
        """Verify allotted_equity matches the stakes and fits total_equity.

        Raises:
            OverAllotment: If allotted equity exceeds total equity
            RegistryError: If allotted equity disagrees with the stakes
        """
        if self.allotted_equity > self.total_equity:
            raise OverAllotment(
                f"Allotted equity {self.allotted_equity} exceeds total equity {self.total_equity}"
            )
        if sum(self.stakes.values()) != self.allotted_equity:
            raise RegistryError(
                f"Allotted equity {self.allotted_equity} != sum of stakes {sum(self.stakes.values())}"
            )

    # =========================================================================
    # Transactions
    # =========================================================================

    # Only the stakes entries a mutation touches are journaled, so opening,
    # committing and rolling back a checkpoint cost O(touched members).

    def _write_stake(self, member: str, amount: int) -> None:
        if self._open_checkpoints:
            self._undo.append((member, self.stakes.get(member, MISSING)))
        self.stakes[member] = amount

    def _drop_stake(self, member: str) -> int:
        if self._open_checkpoints:
            self._undo.append((member, self.stakes[member]))
        return self.stakes.pop(member)

    def checkpoint(self) -> LedgerCheckpoint:
        self._open_checkpoints += 1
        return len(self._undo), self.total_equity, self.allotted_equity

    def commit(self, checkpoint: LedgerCheckpoint) -> None:
        self._open_checkpoints -= 1
        if not self._open_checkpoints:
            self._undo.clear()

    def restore(self, checkpoint: LedgerCheckpoint) -> None:
        mark, total_equity, allotted_equity = checkpoint
        while len(self._undo) > mark:
            member, previous = self._undo.pop()
            if previous is MISSING:
                self.stakes.pop(member, None)
            else:
                self.stakes[member] = previous
        self.total_equity = total_equity
        self.allotted_equity = allotted_equity
        self._open_checkpoints -= 1
