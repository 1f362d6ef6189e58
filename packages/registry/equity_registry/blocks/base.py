"""Base classes for registry analysis blocks.

This module provides the foundation for the blocks architecture:
- Block abstract base class
- BlockContext for passing data between blocks
- BlockExecutor for dependency resolution and execution
- Topological sort so blocks run after the blocks they read from
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Deque, Dict, List, Optional
from dataclasses import dataclass, field


# =============================================================================
# Block Context
# =============================================================================

@dataclass
class BlockContext:
    """Key/value store blocks read inputs from and write outputs to.

    Example:
        context = BlockContext()
        context.set("registry_snapshot", registry.snapshot())

        MembershipBlock().execute(context)
        members_df = context.get("registry_members")
    """

    _data: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Any:
        """Get value from context.

        Raises:
            KeyError: If key not found in context
        """
        if key not in self._data:
            raise KeyError(f"Key '{key}' not found in context. Available keys: {list(self._data.keys())}")
        return self._data[key]

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def keys(self) -> List[str]:
        return list(self._data.keys())


# =============================================================================
# Block Base Class
# =============================================================================

class Block(ABC):
    """Abstract base class for computation blocks.

    A Block declares which context keys it reads (inputs) and writes
    (outputs), and computes in execute(). Blocks never touch a live
    EquityRegistry; they work from a RegistrySnapshot placed in the context.

    Subclass example:
        class OwnerCountBlock(Block):
            def inputs(self) -> List[str]:
                return ["registry_snapshot"]

            def outputs(self) -> List[str]:
                return ["owner_count"]

            def execute(self, context: BlockContext) -> None:
                snapshot = context.get("registry_snapshot")
                context.set("owner_count", snapshot.owner_count)
    """

    @abstractmethod
    def inputs(self) -> List[str]:
        """Context keys this block reads."""
        pass

    @abstractmethod
    def outputs(self) -> List[str]:
        """Context keys this block writes."""
        pass

    @abstractmethod
    def execute(self, context: BlockContext) -> None:
        """Read inputs from context, compute, write outputs to context.

        Raises:
            KeyError: If required inputs not available in context
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(inputs={self.inputs()}, outputs={self.outputs()})"


# =============================================================================
# Dependency Resolution
# =============================================================================

class CircularDependencyError(Exception):
    """Raised when blocks have circular dependencies."""
    pass


def topological_sort(blocks: List[Block]) -> List[Block]:
    """Order blocks so every producer runs before its consumers (Kahn).

    Inputs that no block produces are expected in the initial context.

    Raises:
        ValueError: If two blocks declare the same output
        CircularDependencyError: If blocks depend on each other in a cycle

    Example:
        dilution.inputs() = ["registry_snapshot", "dilution_requests"]
        summary.inputs() = ["registry_members"]

        topological_sort([summary_consumer, membership])
        → [membership, summary_consumer]
    """
    producers: Dict[str, Block] = {}
    for block in blocks:
        for output_key in block.outputs():
            if output_key in producers:
                raise ValueError(
                    f"Multiple blocks produce '{output_key}': "
                    f"{producers[output_key]} and {block}"
                )
            producers[output_key] = block

    in_degree: Dict[Block, int] = {block: 0 for block in blocks}
    dependents: Dict[Block, List[Block]] = {block: [] for block in blocks}
    for block in blocks:
        for input_key in block.inputs():
            if input_key in producers:
                dependents[producers[input_key]].append(block)
                in_degree[block] += 1

    ready: Deque[Block] = deque(block for block in blocks if in_degree[block] == 0)
    ordered: List[Block] = []
    while ready:
        current = ready.popleft()
        ordered.append(current)
        for dependent in dependents[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                ready.append(dependent)

    if len(ordered) != len(blocks):
        remaining = [block for block in blocks if in_degree[block] > 0]
        raise CircularDependencyError(
            f"Circular dependency detected among blocks: {remaining}"
        )

    return ordered


# =============================================================================
# Block Executor
# =============================================================================

class BlockExecutor:
    """Executes blocks in dependency order.

    Example:
        context = BlockContext()
        context.set("registry_snapshot", registry.snapshot())
        context.set("dilution_requests", [500, 1000, 2500])

        executor = BlockExecutor([DilutionBlock(), MembershipBlock()])
        executor.execute(context)

        members_df = context.get("registry_members")
        dilution_df = context.get("dilution_table")
    """

    def __init__(self, blocks: List[Block]):
        self.blocks = blocks
        self._sorted_blocks: Optional[List[Block]] = None

    def execute(self, context: BlockContext) -> BlockContext:
        """Execute all blocks in dependency order.

        Raises:
            CircularDependencyError: If blocks have circular dependencies
            KeyError: If a required input is missing from context
            ValueError: If a block did not write a declared output
        """
        if self._sorted_blocks is None:
            self._sorted_blocks = topological_sort(self.blocks)

        for block in self._sorted_blocks:
            for input_key in block.inputs():
                if not context.has(input_key):
                    raise KeyError(
                        f"Block {block} requires input '{input_key}' but it's not in context. "
                        f"Available keys: {context.keys()}"
                    )

            block.execute(context)

            for output_key in block.outputs():
                if not context.has(output_key):
                    raise ValueError(
                        f"Block {block} declared output '{output_key}' but didn't write it to context"
                    )

        return context
