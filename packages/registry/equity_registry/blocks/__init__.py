"""Analysis blocks for the equity registry.

This package contains the computation layer that turns registry snapshots
into DataFrames for reporting or other consumption.

Architecture:
    EquityRegistry → RegistrySnapshot → Blocks → DataFrames

Available blocks:
- MembershipBlock: Per-member stakes and equity summary
- DilutionBlock: What-if pricing of dilution requests

Usage:
    from equity_registry.blocks import BlockContext, BlockExecutor, MembershipBlock

    context = BlockContext()
    context.set("registry_snapshot", registry.snapshot())
    BlockExecutor([MembershipBlock()]).execute(context)

    members_df = context.get("registry_members")
"""

from .base import Block, BlockExecutor, BlockContext, CircularDependencyError, topological_sort
from .membership import MembershipBlock
from .dilution import DilutionBlock

__all__ = [
    "Block",
    "BlockExecutor",
    "BlockContext",
    "CircularDependencyError",
    "topological_sort",
    "MembershipBlock",
    "DilutionBlock",
]
