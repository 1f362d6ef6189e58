"""Tests for the stake ledger and checked arithmetic."""

import pytest
from decimal import Decimal

from equity_registry.arithmetic import (
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    max_amount,
)
from equity_registry.errors import (
    ArithmeticOverflow,
    InvalidDilutionPercent,
    OverAllotment,
    RegistryError,
)
from equity_registry.schemas import StakeLedger

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40


# =============================================================================
# Checked Arithmetic
# =============================================================================

class TestCheckedArithmetic:

    def test_add_within_bound(self):
        assert checked_add(2, 3, max_amount(8)) == 5

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_add(255, 1, max_amount(8))

    def test_sub_underflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_sub(1, 2, max_amount(8))

    def test_mul_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            checked_mul(16, 16, max_amount(8))

    def test_div_by_zero(self):
        with pytest.raises(ArithmeticOverflow, match="by zero"):
            checked_div(1, 0)

    def test_max_amount_256(self):
        assert max_amount() == 2**256 - 1


# =============================================================================
# Dilution
# =============================================================================

class TestDilution:

    def test_ten_percent_dilution(self):
        """total 10000, p 1000 -> 10000 * 10000 / 9000 = 11111."""
        ledger = StakeLedger(total_equity=10000)
        assert ledger.compute_diluted_stake(1000) == (1111, 11111)

    def test_half_dilution_doubles_total(self):
        ledger = StakeLedger(total_equity=10000)
        assert ledger.compute_diluted_stake(5000) == (10000, 20000)

    @pytest.mark.parametrize("percent", [0, 10000, 12000, -5, True, 1000.0])
    def test_out_of_range_percent(self, percent):
        ledger = StakeLedger(total_equity=10000)
        with pytest.raises(InvalidDilutionPercent):
            ledger.compute_diluted_stake(percent)

    def test_dilution_overflow_fails_closed(self):
        ledger = StakeLedger(total_equity=max_amount(32), amount_bits=32)
        with pytest.raises(ArithmeticOverflow):
            ledger.compute_diluted_stake(1000)

    def test_dilution_does_not_mutate(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.compute_diluted_stake(2500)
        assert ledger.total_equity == 10000


# =============================================================================
# Credits, clears, transfers
# =============================================================================

class TestLedgerMutations:

    def test_credit_accumulates(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        assert ledger.credit(ALICE, 500) == 3500
        assert ledger.allotted_equity == 3500
        assert ledger.unallotted_equity == 6500

    def test_credit_over_allotment_leaves_state(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 9000)

        with pytest.raises(OverAllotment):
            ledger.credit(BOB, 1001)

        assert ledger.stake_of(BOB) == 0
        assert ledger.allotted_equity == 9000

    def test_clear_releases_actual_stake(self):
        """Removal subtracts the member's real stake, not a flat unit."""
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        ledger.credit(BOB, 2000)

        assert ledger.clear(ALICE) == 3000
        assert ledger.allotted_equity == 2000
        assert ALICE not in ledger.stakes
        ledger.check_allotment()

    def test_transfer_moves_whole_stake(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)

        assert ledger.transfer(ALICE, BOB) == 3000
        assert ledger.stake_of(ALICE) == 0
        assert ledger.stake_of(BOB) == 3000
        assert ledger.allotted_equity == 3000

    def test_transfer_to_holder_fails(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        ledger.credit(BOB, 1000)
        with pytest.raises(RegistryError):
            ledger.transfer(ALICE, BOB)

    def test_set_total_below_allotted_fails(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 6000)
        with pytest.raises(OverAllotment):
            ledger.set_total_equity(5000)


# =============================================================================
# Percentages
# =============================================================================

class TestStakePercent:

    def test_multiply_before_divide(self):
        """3000 of 10000 is 30.00%, not truncated to zero."""
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        assert ledger.stake_percent(ALICE) == 3000

    def test_percent_after_dilution_keeps_two_decimals(self):
        ledger = StakeLedger(total_equity=11111)
        ledger.credit(ALICE, 3000)
        # 3000 / 11111 = 27.0002...%
        assert ledger.stake_percent(ALICE) == 2700

    def test_percent_of_non_member(self):
        ledger = StakeLedger(total_equity=10000)
        assert ledger.stake_percent(BOB) == 0

    def test_percent_with_no_equity(self):
        assert StakeLedger().stake_percent(ALICE) == 0

    def test_ownership_fraction(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 2500)
        assert ledger.ownership_fraction(ALICE) == Decimal("0.25")

    def test_percent_with_narrow_amount_bits(self):
        """The scaled intermediate may exceed the amount bound; the read still succeeds."""
        ledger = StakeLedger(total_equity=10000, amount_bits=24)
        ledger.credit(ALICE, 3000)
        assert ledger.stake_percent(ALICE) == 3000

    def test_percent_of_huge_stake(self):
        ledger = StakeLedger(total_equity=2**255)
        ledger.credit(ALICE, 2**255)
        assert ledger.stake_percent(ALICE) == 10000


# =============================================================================
# Undo log
# =============================================================================

class TestUndoLog:

    def test_restore_reverts_touched_stakes(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        ledger.credit(BOB, 1000)

        checkpoint = ledger.checkpoint()
        ledger.credit(ALICE, 500)
        ledger.clear(BOB)
        ledger.transfer(ALICE, "0x" + "c" * 40)
        ledger.set_total_equity(20000)
        ledger.restore(checkpoint)

        assert ledger.stakes == {ALICE: 3000, BOB: 1000}
        assert ledger.total_equity == 10000
        assert ledger.allotted_equity == 4000
        ledger.check_allotment()

    def test_commit_keeps_changes(self):
        ledger = StakeLedger(total_equity=10000)
        checkpoint = ledger.checkpoint()
        ledger.credit(ALICE, 3000)
        ledger.commit(checkpoint)

        assert ledger.stakes == {ALICE: 3000}
        assert ledger.allotted_equity == 3000

    def test_no_journal_outside_checkpoint(self):
        ledger = StakeLedger(total_equity=10000)
        ledger.credit(ALICE, 3000)
        assert ledger._undo == []
