"""Equity registry engine.

EquityRegistry owns one MembershipRing and one StakeLedger and is the only
thing that mutates them. Every mutating operation:

    1. Asks the injected Authorizer whether the caller may run it
    2. Opens undo logs on ring and ledger
    3. Validates, then applies ring surgery and ledger updates together
    4. Re-checks allotted_equity <= total_equity
    5. On any error replays the undo logs and re-raises
    6. On success releases the lock, then emits notifications and calls the
       token-issuance hook

The undo logs record only the links and stakes an operation touches, so
rollback support adds O(1) work to each ring operation.

A re-entrant lock serializes mutations and makes read queries observe a
consistent ring+ledger pair. Sinks and the issuer run outside it.

Usage:
    registry = EquityRegistry()
    registry.setup([alice, bob], [3000, 2000], 10000)

    registry.get_members()              # [bob, alice]
    registry.get_unallotted_equity()    # 5000

    registry.add_member_with_dilution(carol, 1000)   # carol owns ~10%
    registry.sell_unallotted(dave, 500)
    registry.swap_member(SENTINEL, dave, erin)
    registry.remove_member(None, erin, minimum_required_count=1)
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Type

from .authorization import Authorizer, allow_all
from .errors import (
    AlreadyInitialized,
    BelowMinimum,
    DuplicateMember,
    ExcessiveRequest,
    InvalidIdentity,
    InvalidStake,
    LengthMismatch,
    NoUnallottedEquity,
    OverAllotment,
    RegistryError,
    Unauthorized,
)
from .issuance import NullTokenIssuer, TokenIssuer
from .schemas.base import check_identity_format
from .schemas.config import RegistryCFG, RegistrySetupCFG
from .schemas.events import MemberAdded, MemberRemoved, RegistryEvent, StakeChanged
from .schemas.ledger import StakeLedger
from .schemas.ring import MembershipRing
from .schemas.snapshot import MemberStake, RegistrySnapshot

logger = logging.getLogger(__name__)

NotificationSink = Callable[[RegistryEvent], None]


class EquityRegistry:
    """Member registry with percentage-denominated equity stakes.

    Args:
        cfg: Registry settings (own address, amount width, notifications)
        authorizer: Gate consulted before every mutation (default: allow_all)
        token_issuer: Hook called for every newly added member

    Attributes:
        ring: Membership ring (identity -> next identity)
        ledger: Stakes and equity totals
        history: Emitted events, oldest first (if cfg.record_history)
    """

    def __init__(
        self,
        cfg: Optional[RegistryCFG] = None,
        authorizer: Authorizer = allow_all,
        token_issuer: Optional[TokenIssuer] = None,
    ):
        self.cfg = cfg or RegistryCFG()
        self.authorizer = authorizer
        self.token_issuer = token_issuer or NullTokenIssuer()
        self.ring = MembershipRing(registry_address=self.cfg.registry_address)
        self.ledger = StakeLedger(amount_bits=self.cfg.amount_bits)
        self.history: List[RegistryEvent] = []
        self._sinks: List[NotificationSink] = []
        self._lock = threading.RLock()
        self._sequence = 0
        self._pending_events: List[Tuple[Type[RegistryEvent], dict]] = []
        self._pending_issues: List[Tuple[str, int]] = []

    @classmethod
    def from_config(
        cls,
        setup_cfg: RegistrySetupCFG,
        cfg: Optional[RegistryCFG] = None,
        caller: Optional[str] = None,
        **kwargs,
    ) -> "EquityRegistry":
        """Create a registry and run setup from a RegistrySetupCFG."""
        registry = cls(cfg, **kwargs)
        registry.setup(setup_cfg.members, setup_cfg.stakes, setup_cfg.total_equity, caller=caller)
        return registry

    # =========================================================================
    # Notifications
    # =========================================================================

    def subscribe(self, sink: NotificationSink) -> None:
        """Register a callable that receives every event after commit."""
        self._sinks.append(sink)

    def unsubscribe(self, sink: NotificationSink) -> None:
        self._sinks.remove(sink)

    def _emit(self, event_cls: Type[RegistryEvent], **fields) -> None:
        self._pending_events.append((event_cls, fields))

    def _member_added(self, member: str, stake: int) -> None:
        self._emit(MemberAdded, member=member)
        self._emit(StakeChanged, member=member, new_stake=stake)
        self._pending_issues.append((member, stake))

    def _record(self, pending: List[Tuple[Type[RegistryEvent], dict]]) -> List[RegistryEvent]:
        """Number committed events and append them to history (lock held)."""
        if not (self.cfg.emit_notifications or self.cfg.record_history):
            return []
        events = []
        for event_cls, fields in pending:
            event = event_cls(sequence=self._sequence, **fields)
            self._sequence += 1
            if self.cfg.record_history:
                self.history.append(event)
            events.append(event)
        return events

    def _deliver(self, events: List[RegistryEvent], issues: List[Tuple[str, int]]) -> None:
        """Call the token issuer and sinks after the lock is released."""
        for member, stake in issues:
            try:
                self.token_issuer.issue(member, stake)
            except Exception:
                logger.exception("Token issuer failed for %s", member)

        if not self.cfg.emit_notifications:
            return

        for event in events:
            for sink in list(self._sinks):
                try:
                    sink(event)
                except Exception:
                    logger.exception("Notification sink %r failed on %s", sink, event.event_type)

    # =========================================================================
    # Transactions
    # =========================================================================

    @contextmanager
    def _transaction(self, operation: str, caller: Optional[str]) -> Iterator[None]:
        """Run one mutation atomically: authorize, apply, verify or roll back.

        Sinks and the token issuer run after the lock is released, so they
        may call back into the registry from any thread.
        """
        with self._lock:
            if not self.authorizer(caller, operation):
                logger.debug("Rejected %s: caller %s not authorized", operation, caller)
                raise Unauthorized(f"Caller {caller} may not {operation}")

            ring_checkpoint = self.ring.checkpoint()
            ledger_checkpoint = self.ledger.checkpoint()
            self._pending_events = []
            self._pending_issues = []
            try:
                yield
                if self.ledger.allotted_equity > self.ledger.total_equity:
                    raise OverAllotment(
                        f"Allotted equity {self.ledger.allotted_equity} exceeds "
                        f"total equity {self.ledger.total_equity}"
                    )
            except Exception as exc:
                self.ring.restore(ring_checkpoint)
                self.ledger.restore(ledger_checkpoint)
                self._pending_events = []
                self._pending_issues = []
                logger.debug("Rejected %s: %s: %s", operation, type(exc).__name__, exc)
                raise

            self.ring.commit(ring_checkpoint)
            self.ledger.commit(ledger_checkpoint)
            events = self._record(self._pending_events)
            issues = self._pending_issues
            self._pending_events = []
            self._pending_issues = []
            logger.info(
                "Committed %s: owners=%d total=%d allotted=%d",
                operation,
                self.ring.owner_count,
                self.ledger.total_equity,
                self.ledger.allotted_equity,
            )

        self._deliver(events, issues)

    def _resolve_predecessor(self, predecessor: Optional[str], member: str) -> str:
        if predecessor is not None:
            return predecessor
        check_identity_format(member)
        if self.ring.is_reserved(member):
            raise InvalidIdentity(f"Reserved identity is not a removable member: {member}")
        return self.ring.find_predecessor(member)

    @staticmethod
    def _check_amount(value: int, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidStake(f"{name} must be a non-negative integer, got {value!r}")
        return value

    # =========================================================================
    # Mutations
    # =========================================================================

    def setup(
        self,
        members: Sequence[str],
        stakes: Sequence[int],
        total_equity: int,
        caller: Optional[str] = None,
    ) -> None:
        """Initialize the registry with its founding members. Runs once.

        Args:
            members: Member identities in setup order
            stakes: Stake for each member (10000 = 100.00%)
            total_equity: Total issued equity denominator
            caller: Identity presented to the authorizer

        Raises:
            AlreadyInitialized: If setup already ran
            LengthMismatch: If members and stakes differ in length or are empty
            InvalidStake: If total_equity is 0, the first stake is outside
                (0, total_equity], or a later stake is outside (0, total_equity)
            InvalidIdentity: If a member is malformed or reserved
            DuplicateMember: If a member repeats
            OverAllotment: If stakes sum past total_equity

        Note:
            Members are inserted at the ring head, so get_members() returns
            them in reverse setup order.
        """
        with self._transaction("setup", caller):
            if self.ring.is_initialized:
                raise AlreadyInitialized("Registry setup already ran")
            if len(members) != len(stakes):
                raise LengthMismatch(
                    f"Got {len(members)} members but {len(stakes)} stakes"
                )
            if not members:
                raise LengthMismatch("Setup requires at least one member")
            self._check_amount(total_equity, "total_equity")
            if total_equity == 0:
                raise InvalidStake("total_equity must be positive")

            self.ledger.set_total_equity(total_equity)

            first_stake = self._check_amount(stakes[0], "stake")
            if not 0 < first_stake <= total_equity:
                raise InvalidStake(
                    f"First stake must be in (0, {total_equity}], got {first_stake}"
                )
            self.ring.initialize(members[0])
            self.ledger.credit(members[0], first_stake)
            self._member_added(members[0], first_stake)

            previous = members[0]
            for member, stake in zip(members[1:], stakes[1:]):
                if member == previous:
                    raise DuplicateMember(f"Member {member} repeated in setup")
                self.ring.check_new_member(member)
                self._check_amount(stake, "stake")
                if not 0 < stake < total_equity:
                    raise InvalidStake(
                        f"Stake for {member} must be in (0, {total_equity}), got {stake}"
                    )
                self.ring.insert_at_head(member)
                self.ledger.credit(member, stake)
                self._member_added(member, stake)
                previous = member

    def add_member_with_dilution(
        self,
        member: str,
        stake_percent: int,
        caller: Optional[str] = None,
    ) -> int:
        """Add member with a freshly issued stake worth stake_percent of the new total.

        Args:
            member: Identity to add
            stake_percent: Share of the post-issuance total (1000 = 10.00%)
            caller: Identity presented to the authorizer

        Returns:
            Stake amount issued to the new member

        Raises:
            InvalidIdentity / DuplicateMember: If member cannot be added
            InvalidDilutionPercent: Unless 0 < stake_percent < 10000
            InvalidStake: If the computed stake rounds to zero
        """
        with self._transaction("add_member_with_dilution", caller):
            self.ring.check_new_member(member)
            new_stake, new_total = self.ledger.compute_diluted_stake(stake_percent)
            if new_stake == 0:
                raise InvalidStake(
                    f"Dilution of {stake_percent} on total {self.ledger.total_equity} issues no equity"
                )
            self.ledger.set_total_equity(new_total)
            self.ring.insert_at_head(member)
            self.ledger.credit(member, new_stake)
            self._member_added(member, new_stake)
        return new_stake

    def sell_unallotted(
        self,
        member: str,
        amount: int,
        caller: Optional[str] = None,
    ) -> int:
        """Assign amount of unallotted equity to member (new or existing).

        total_equity is unchanged; allotted_equity grows by amount.

        Returns:
            Member's stake after the sale

        Raises:
            NoUnallottedEquity: If nothing is unallotted
            ExcessiveRequest: If amount exceeds the unallotted equity
            InvalidStake: If amount is zero or not an integer
            InvalidIdentity: If a new member is malformed or reserved
        """
        with self._transaction("sell_unallotted", caller):
            self._check_amount(amount, "amount")
            unallotted = self.ledger.unallotted_equity
            if unallotted == 0:
                raise NoUnallottedEquity("No unallotted equity left to sell")
            if amount > unallotted:
                raise ExcessiveRequest(
                    f"Requested {amount} but only {unallotted} is unallotted"
                )
            if amount == 0:
                raise InvalidStake("Sale amount must be positive")

            if self.ring.contains(member):
                new_stake = self.ledger.credit(member, amount)
                self._emit(StakeChanged, member=member, new_stake=new_stake)
            else:
                self.ring.insert_at_head(member)
                new_stake = self.ledger.credit(member, amount)
                self._member_added(member, new_stake)
        return new_stake

    def remove_member(
        self,
        predecessor: Optional[str],
        member: str,
        minimum_required_count: int,
        caller: Optional[str] = None,
    ) -> int:
        """Remove member and release its stake back to unallotted equity.

        Args:
            predecessor: Identity linking to member (None = look it up, O(n))
            member: Member to remove
            minimum_required_count: Fewest members allowed to remain
            caller: Identity presented to the authorizer

        Returns:
            The stake released

        Raises:
            BelowMinimum: If owner_count - 1 < minimum_required_count
            InvalidIdentity: If member is reserved
            NotFound: If predecessor does not link to member
        """
        with self._transaction("remove_member", caller):
            if self.ring.owner_count - 1 < minimum_required_count:
                raise BelowMinimum(
                    f"Removing would leave {self.ring.owner_count - 1} members, "
                    f"minimum is {minimum_required_count}"
                )
            predecessor = self._resolve_predecessor(predecessor, member)
            self.ring.remove(predecessor, member)
            released = self.ledger.clear(member)
            self._emit(MemberRemoved, member=member)
            self._emit(StakeChanged, member=member, new_stake=0)
        return released

    def swap_member(
        self,
        predecessor: Optional[str],
        old_member: str,
        new_member: str,
        caller: Optional[str] = None,
    ) -> int:
        """Replace old_member with new_member, moving the whole stake across.

        Returns:
            The stake transferred

        Raises:
            InvalidIdentity / DuplicateMember: If new_member cannot be added
            NotFound: If predecessor does not link to old_member
        """
        with self._transaction("swap_member", caller):
            predecessor = self._resolve_predecessor(predecessor, old_member)
            self.ring.swap(predecessor, old_member, new_member)
            moved = self.ledger.transfer(old_member, new_member)
            self._emit(MemberRemoved, member=old_member)
            self._emit(MemberAdded, member=new_member)
            self._emit(StakeChanged, member=old_member, new_stake=0)
            self._emit(StakeChanged, member=new_member, new_stake=moved)
            self._pending_issues.append((new_member, moved))
        return moved

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def owner_count(self) -> int:
        return self.ring.owner_count

    @property
    def total_equity(self) -> int:
        return self.ledger.total_equity

    @property
    def allotted_equity(self) -> int:
        return self.ledger.allotted_equity

    def get_members(self) -> List[str]:
        """Live members in ring order (most recently inserted first)."""
        with self._lock:
            return self.ring.enumerate()

    def is_member(self, identity: str) -> bool:
        with self._lock:
            return self.ring.contains(identity)

    def get_stake(self, member: str) -> int:
        with self._lock:
            return self.ledger.stake_of(member)

    def get_stake_percent(self, member: str) -> int:
        """Member stake over total equity, hundredths of a percent (3000 = 30.00%)."""
        with self._lock:
            return self.ledger.stake_percent(member)

    def get_unallotted_equity(self) -> int:
        with self._lock:
            return self.ledger.unallotted_equity

    def compute_diluted_stake(self, stake_percent: int) -> Tuple[int, int]:
        """Preview (new_stake, new_total) for a dilution without applying it."""
        with self._lock:
            return self.ledger.compute_diluted_stake(stake_percent)

    def snapshot(self) -> RegistrySnapshot:
        """Consistent copy of members, stakes and totals."""
        with self._lock:
            return RegistrySnapshot(
                members=[
                    MemberStake(member=member, stake=self.ledger.stake_of(member))
                    for member in self.ring.enumerate()
                ],
                total_equity=self.ledger.total_equity,
                allotted_equity=self.ledger.allotted_equity,
            )

    def check_invariants(self) -> None:
        """Verify ring cycle, ledger sums, and ring/ledger agreement.

        Raises:
            RegistryError: On any violated invariant
        """
        with self._lock:
            self.ring.check_cycle()
            self.ledger.check_allotment()
            orphans = [m for m in self.ledger.stakes if not self.ring.contains(m)]
            if orphans:
                raise RegistryError(f"Stakes recorded for non-members: {sorted(orphans)}")
