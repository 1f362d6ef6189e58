"""Tests for blocks architecture.

Tests cover:
- BlockContext get/set/has operations
- Topological sort and dependency resolution
- BlockExecutor validation and execution
- MembershipBlock and DilutionBlock against real registry snapshots
"""

import pandas as pd
import pytest

from equity_registry import EquityRegistry
from equity_registry.blocks import (
    Block,
    BlockContext,
    BlockExecutor,
    MembershipBlock,
    DilutionBlock,
)
from equity_registry.blocks.base import topological_sort, CircularDependencyError
from equity_registry.schemas import RegistrySnapshot

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40
CAROL = "0x" + "c" * 40


@pytest.fixture
def snapshot():
    registry = EquityRegistry()
    registry.setup([ALICE, BOB], [3000, 2000], 10000)
    return registry.snapshot()


# =============================================================================
# BlockContext Tests
# =============================================================================

def test_block_context_get_set():
    context = BlockContext()
    context.set("key1", "value1")
    assert context.get("key1") == "value1"


def test_block_context_has_and_keys():
    context = BlockContext()
    assert not context.has("key1")
    context.set("key1", "value1")
    context.set("key2", "value2")
    assert context.has("key1")
    assert set(context.keys()) == {"key1", "key2"}


def test_block_context_get_missing_key():
    context = BlockContext()
    with pytest.raises(KeyError, match="Key 'missing' not found"):
        context.get("missing")


# =============================================================================
# Topological Sort Tests
# =============================================================================

class SimpleBlock(Block):
    """Writes '<name>_output' to each declared output."""

    def __init__(self, name, inputs, outputs):
        self.name = name
        self._inputs = inputs
        self._outputs = outputs

    def inputs(self):
        return self._inputs

    def outputs(self):
        return self._outputs

    def execute(self, context):
        for output in self._outputs:
            context.set(output, f"{self.name}_output")

    def __repr__(self):
        return f"SimpleBlock({self.name})"


def test_topological_sort_linear_chain():
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    assert topological_sort([block_c, block_a, block_b]) == [block_a, block_b, block_c]


def test_topological_sort_circular_dependency():
    block_a = SimpleBlock("A", ["data_c"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    with pytest.raises(CircularDependencyError, match="Circular dependency detected"):
        topological_sort([block_a, block_b, block_c])


def test_topological_sort_duplicate_output():
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", [], ["data_a"])

    with pytest.raises(ValueError, match="Multiple blocks produce"):
        topological_sort([block_a, block_b])


def test_topological_sort_external_inputs():
    """Inputs no block produces come from the initial context."""
    block_a = SimpleBlock("A", ["registry_snapshot"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])

    assert topological_sort([block_b, block_a]) == [block_a, block_b]


# =============================================================================
# BlockExecutor Tests
# =============================================================================

def test_block_executor_missing_input():
    executor = BlockExecutor([SimpleBlock("A", ["missing_input"], ["output"])])

    with pytest.raises(KeyError, match="requires input 'missing_input'"):
        executor.execute(BlockContext())


def test_block_executor_missing_output():

    class BadBlock(Block):
        def inputs(self):
            return []

        def outputs(self):
            return ["output"]

        def execute(self, context):
            pass

    with pytest.raises(ValueError, match="declared output 'output' but didn't write"):
        BlockExecutor([BadBlock()]).execute(BlockContext())


# =============================================================================
# MembershipBlock Tests
# =============================================================================

def test_membership_block_basic(snapshot):
    context = BlockContext()
    context.set("registry_snapshot", snapshot)

    MembershipBlock().execute(context)

    members_df = context.get("registry_members")
    assert list(members_df["member"]) == [BOB, ALICE]
    assert list(members_df["position"]) == [0, 1]
    assert list(members_df["stake"]) == [2000, 3000]
    assert list(members_df["stake_percent"]) == [2000, 3000]
    assert members_df.iloc[1]["ownership_pct"] == 30.0

    summary_df = context.get("registry_summary")
    assert summary_df.iloc[0]["owner_count"] == 2
    assert summary_df.iloc[0]["total_equity"] == 10000
    assert summary_df.iloc[0]["unallotted_equity"] == 5000
    assert summary_df.iloc[0]["allotted_pct"] == 50.0


def test_membership_block_empty_snapshot():
    context = BlockContext()
    context.set("registry_snapshot", RegistrySnapshot())

    MembershipBlock().execute(context)

    assert context.get("registry_members").empty
    assert list(context.get("registry_members").columns) == [
        "position", "member", "stake", "stake_percent", "ownership_pct",
    ]
    assert context.get("registry_summary").iloc[0]["allotted_pct"] == 0.0


# =============================================================================
# DilutionBlock Tests
# =============================================================================

def test_dilution_block_prices_requests(snapshot):
    context = BlockContext()
    context.set("registry_snapshot", snapshot)
    context.set("dilution_requests", [1000, 5000])

    DilutionBlock().execute(context)

    table = context.get("dilution_table")
    ten = table.iloc[0]
    assert ten["new_stake"] == 1111
    assert ten["new_total"] == 11111
    assert ten["achieved_percent"] == 999
    assert ten["unallotted_after"] == 5000
    assert pd.isna(ten["error"])

    half = table.iloc[1]
    assert half["new_stake"] == 10000
    assert half["new_total"] == 20000
    assert half["existing_allotted_pct"] == 25.0
    assert half["unallotted_after"] == 5000
    assert list(table.columns) == [
        "requested_percent", "new_stake", "new_total", "unallotted_after",
        "achieved_percent", "existing_allotted_pct", "error",
    ]


def test_dilution_block_reports_invalid_requests(snapshot):
    context = BlockContext()
    context.set("registry_snapshot", snapshot)
    context.set("dilution_requests", [10000])

    DilutionBlock().execute(context)

    row = context.get("dilution_table").iloc[0]
    assert row["error"].startswith("InvalidDilutionPercent")


def test_dilution_block_leaves_registry_alone():
    registry = EquityRegistry()
    registry.setup([ALICE], [4000], 10000)

    context = BlockContext()
    context.set("registry_snapshot", registry.snapshot())
    context.set("dilution_requests", [2000])
    DilutionBlock().execute(context)

    assert registry.total_equity == 10000
    assert registry.get_members() == [ALICE]


def test_executor_runs_both_blocks(snapshot):
    context = BlockContext()
    context.set("registry_snapshot", snapshot)
    context.set("dilution_requests", [2500])

    BlockExecutor([DilutionBlock(), MembershipBlock()]).execute(context)

    assert context.has("registry_members")
    assert context.has("registry_summary")
    assert context.get("dilution_table").iloc[0]["new_stake"] == 3333
