"""Equity Registry - member registry with percentage-denominated stakes.

This package provides:
- A membership ring: a circular singly-linked set anchored at a sentinel
- A stake ledger with total/allotted equity accounting
- The EquityRegistry engine (setup, dilution, unallotted sales, removal, swap)
- Analysis blocks that turn registry snapshots into DataFrames

The engine is designed to be:
- Transport-agnostic (no persistence, no web dependencies)
- Atomic (every operation fully commits or leaves no trace)
- Pluggable (authorization gate, notification sinks, token issuance hook)
"""

from .schemas import *  # noqa: F403, F401
from .errors import (  # noqa: F401
    RegistryError,
    InvalidIdentity,
    DuplicateMember,
    NotFound,
    LengthMismatch,
    InvalidStake,
    OverAllotment,
    InvalidDilutionPercent,
    NoUnallottedEquity,
    ExcessiveRequest,
    BelowMinimum,
    ArithmeticOverflow,
    AlreadyInitialized,
    Unauthorized,
)
from .authorization import Authorizer, allow_all, registry_self_only  # noqa: F401
from .issuance import TokenIssuer, NullTokenIssuer  # noqa: F401
from .registry import EquityRegistry, NotificationSink  # noqa: F401

__version__ = "0.1.0"
