"""Dilution what-if block.

Prices a list of requested dilution percentages against a RegistrySnapshot
without touching the registry, using the same arithmetic as
EquityRegistry.add_member_with_dilution.
"""

from typing import List, Optional
import pandas as pd

from .base import Block, BlockContext
from ..arithmetic import DEFAULT_AMOUNT_BITS, PERCENT_SCALE
from ..errors import RegistryError
from ..schemas import RegistrySnapshot, StakeLedger


class DilutionBlock(Block):
    """Computes the stake a new member would receive per requested percent.

    Inputs (from context):
        - registry_snapshot: RegistrySnapshot to dilute
        - dilution_requests: List of requested percents (1000 = 10.00%)

    Outputs (to context):
        - dilution_table: DataFrame with one row per request:
            * requested_percent: Requested share of the post-issuance total
            * new_stake: Equity issued to the new member
            * new_total: Total equity after issuance
            * unallotted_after: Unallotted equity once the new stake is
              issued (new_total - allotted_equity - new_stake)
            * achieved_percent: new_stake / new_total in hundredths of a
              percent (floor rounding can land one unit under the request)
            * existing_allotted_pct: Current members' combined share after
              issuance, as a float percentage
            * error: Rejection reason, None when the request is valid

    Example:
        Snapshot total 10000, request 1000:
            new_stake=1111, new_total=11111, achieved_percent=999,
            unallotted_after=10000 - allotted (issuance leaves it unchanged)
    """

    def __init__(
        self,
        snapshot_key: str = "registry_snapshot",
        requests_key: str = "dilution_requests",
        amount_bits: int = DEFAULT_AMOUNT_BITS,
    ):
        self.snapshot_key = snapshot_key
        self.requests_key = requests_key
        self.amount_bits = amount_bits

    def inputs(self) -> List[str]:
        return [self.snapshot_key, self.requests_key]

    def outputs(self) -> List[str]:
        return ["dilution_table"]

    def execute(self, context: BlockContext) -> None:
        snapshot: RegistrySnapshot = context.get(self.snapshot_key)
        requests: List[int] = context.get(self.requests_key)

        ledger = StakeLedger(
            stakes={entry.member: entry.stake for entry in snapshot.members},
            total_equity=snapshot.total_equity,
            allotted_equity=snapshot.allotted_equity,
            amount_bits=self.amount_bits,
        )

        rows = [self._price_request(ledger, requested) for requested in requests]
        context.set("dilution_table", pd.DataFrame(rows, columns=[
            "requested_percent",
            "new_stake",
            "new_total",
            "unallotted_after",
            "achieved_percent",
            "existing_allotted_pct",
            "error",
        ]))

    def _price_request(self, ledger: StakeLedger, requested: int) -> dict:
        new_stake: Optional[int] = None
        new_total: Optional[int] = None
        achieved: Optional[int] = None
        unallotted_after: Optional[int] = None
        existing_pct: Optional[float] = None
        error: Optional[str] = None

        try:
            new_stake, new_total = ledger.compute_diluted_stake(requested)
        except RegistryError as exc:
            error = f"{type(exc).__name__}: {exc}"
        else:
            unallotted_after = new_total - ledger.allotted_equity - new_stake
            if new_total > 0:
                achieved = new_stake * PERCENT_SCALE // new_total
                existing_pct = ledger.allotted_equity / new_total * 100
            if new_stake == 0:
                error = "InvalidStake: dilution issues no equity"

        return {
            "requested_percent": requested,
            "new_stake": new_stake,
            "new_total": new_total,
            "unallotted_after": unallotted_after,
            "achieved_percent": achieved,
            "existing_allotted_pct": existing_pct,
            "error": error,
        }
