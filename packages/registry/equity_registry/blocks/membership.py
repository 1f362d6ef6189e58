"""Membership computation block.

Converts a RegistrySnapshot into DataFrames for reporting or analysis.

Output DataFrames:
- registry_members: Per-member stake breakdown in ring order
- registry_summary: Equity totals and owner count
"""

from typing import List
import pandas as pd

from .base import Block, BlockContext
from ..schemas import RegistrySnapshot


class MembershipBlock(Block):
    """Converts RegistrySnapshot to membership DataFrames.

    Inputs (from context):
        - registry_snapshot: RegistrySnapshot to convert

    Outputs (to context):
        - registry_members: DataFrame with columns:
            * position: Index in ring order (0 = head)
            * member: Member identity
            * stake: Stake amount (hundredths of a percent units)
            * stake_percent: Stake over total equity, hundredths of a percent
            * ownership_pct: Same ratio as a float percentage (30.0 = 30%)

        - registry_summary: DataFrame with single row:
            * owner_count: Number of live members
            * total_equity: Total issued equity
            * allotted_equity: Sum of member stakes
            * unallotted_equity: total_equity - allotted_equity
            * allotted_pct: allotted_equity over total_equity as a float percentage
    """

    def __init__(self, snapshot_key: str = "registry_snapshot"):
        self.snapshot_key = snapshot_key

    def inputs(self) -> List[str]:
        return [self.snapshot_key]

    def outputs(self) -> List[str]:
        return ["registry_members", "registry_summary"]

    def execute(self, context: BlockContext) -> None:
        snapshot: RegistrySnapshot = context.get(self.snapshot_key)
        context.set("registry_members", self._compute_members(snapshot))
        context.set("registry_summary", self._compute_summary(snapshot))

    def _compute_members(self, snapshot: RegistrySnapshot) -> pd.DataFrame:
        columns = ["position", "member", "stake", "stake_percent", "ownership_pct"]
        rows = []
        for position, entry in enumerate(snapshot.members):
            rows.append({
                "position": position,
                "member": entry.member,
                "stake": entry.stake,
                "stake_percent": snapshot.stake_percent(entry.member),
                "ownership_pct": float(snapshot.ownership_percentage(entry.member) * 100),
            })
        return pd.DataFrame(rows, columns=columns)

    def _compute_summary(self, snapshot: RegistrySnapshot) -> pd.DataFrame:
        allotted_pct = (
            snapshot.allotted_equity / snapshot.total_equity * 100
            if snapshot.total_equity > 0
            else 0.0
        )
        return pd.DataFrame([{
            "owner_count": snapshot.owner_count,
            "total_equity": snapshot.total_equity,
            "allotted_equity": snapshot.allotted_equity,
            "unallotted_equity": snapshot.unallotted_equity,
            "allotted_pct": allotted_pct,
        }])
