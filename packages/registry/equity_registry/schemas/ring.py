"""Membership ring: a circular singly-linked set realized as a mapping.

The ring maps each member identity to the next member identity. It is
anchored at SENTINEL, so a registry with members A, B, C looks like:

    SENTINEL -> C -> B -> A -> SENTINEL

Insertion happens at the head (right after SENTINEL), so enumeration yields
members in reverse insertion order.

The map owns every link uniformly; there are no node objects. An identity
without an entry reads back as NULL_IDENTITY, which is how membership is
tested.
"""

from typing import Dict, List, Tuple
from pydantic import Field, PrivateAttr

from .base import MISSING, DomainModel, NULL_IDENTITY, SENTINEL, DEFAULT_REGISTRY_ADDRESS, check_identity_format
from ..errors import (
    AlreadyInitialized,
    DuplicateMember,
    InvalidIdentity,
    NotFound,
    RegistryError,
)


# (undo log mark, owner_count)
RingCheckpoint = Tuple[int, int]


class MembershipRing(DomainModel):
    """Cycle of member identities through the SENTINEL anchor.

    Invariants:
        - Walking from SENTINEL visits each live member exactly once and
          returns to SENTINEL after exactly owner_count steps
        - No identity other than SENTINEL maps to itself
        - No identity appears twice as a link target

    Complexity:
        - insert_at_head: O(1)
        - remove / swap: O(1) given the correct predecessor
        - find_predecessor / enumerate: O(n)

    Example:
        ring = MembershipRing(registry_address=registry)
        ring.initialize(alice)
        ring.insert_at_head(bob)
        ring.enumerate()        # [bob, alice]
        ring.remove(SENTINEL, bob)
        ring.enumerate()        # [alice]
    """

    registry_address: str = Field(
        default=DEFAULT_REGISTRY_ADDRESS,
        description="The registry's own identity, which may never become a member"
    )

    links: Dict[str, str] = Field(
        default_factory=dict,
        description="identity -> next identity (SENTINEL entry points at the head)"
    )

    owner_count: int = Field(
        default=0,
        ge=0,
        description="Number of live members (cycle length excluding SENTINEL)"
    )

    _undo: List[Tuple[str, object]] = PrivateAttr(default_factory=list)
    _open_checkpoints: int = PrivateAttr(default=0)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_initialized(self) -> bool:
        return SENTINEL in self.links

    @property
    def head(self) -> str:
        """First member after SENTINEL (SENTINEL itself when empty)."""
        return self.links.get(SENTINEL, SENTINEL)

    def next_of(self, identity: str) -> str:
        return self.links.get(identity, NULL_IDENTITY)

    def is_reserved(self, identity: str) -> bool:
        return identity in (NULL_IDENTITY, SENTINEL, self.registry_address)

    def contains(self, identity: str) -> bool:
        """True iff identity is a live member (not SENTINEL, has a next-pointer)."""
        return identity != SENTINEL and self.next_of(identity) != NULL_IDENTITY

    def enumerate(self) -> List[str]:
        """Walk the ring from SENTINEL and return live members in order.

        Returns:
            List of exactly owner_count members, head first

        Raises:
            RegistryError: If the walk does not close back at SENTINEL
        """
        members: List[str] = []
        current = self.head
        while current != SENTINEL:
            if len(members) >= self.owner_count or current == NULL_IDENTITY:
                raise RegistryError(
                    f"Ring does not close at SENTINEL after {self.owner_count} steps"
                )
            members.append(current)
            current = self.next_of(current)
        return members

    def find_predecessor(self, member: str) -> str:
        """Locate the identity whose link targets member (O(n)).

        Raises:
            NotFound: If member is not in the ring
        """
        if not self.contains(member):
            raise NotFound(f"Member {member} is not in the ring")
        previous = SENTINEL
        for current in self.enumerate():
            if current == member:
                return previous
            previous = current
        raise NotFound(f"Member {member} is not reachable from SENTINEL")

    def cycle_length(self) -> int:
        return len(self.enumerate())

    def check_cycle(self) -> None:
        """Verify the cycle invariant and uniqueness of link targets.

        Raises:
            RegistryError: If any ring invariant is violated
        """
        members = self.enumerate()
        if len(members) != self.owner_count:
            raise RegistryError(
                f"Cycle length {len(members)} != owner_count {self.owner_count}"
            )
        if len(set(members)) != len(members):
            raise RegistryError("Ring visits a member more than once")
        dangling = set(self.links) - set(members) - {SENTINEL}
        if dangling:
            raise RegistryError(f"Links outside the cycle: {sorted(dangling)}")
        for identity, target in self.links.items():
            if identity != SENTINEL and identity == target:
                raise RegistryError(f"Identity {identity} links to itself")

    # =========================================================================
    # Mutations
    # =========================================================================

    def check_new_member(self, member: str) -> None:
        """Validate that member may be added to the ring.

        Raises:
            InvalidIdentity: If member is malformed or reserved
            DuplicateMember: If member is already in the ring
        """
        check_identity_format(member)
        if self.is_reserved(member):
            raise InvalidIdentity(f"Reserved identity cannot be a member: {member}")
        if self.next_of(member) != NULL_IDENTITY:
            raise DuplicateMember(f"Member {member} is already in the ring")

    def check_linkage(self, predecessor: str, member: str) -> None:
        """Validate that predecessor currently links to a removable member.

        Raises:
            InvalidIdentity: If member is malformed or reserved
            NotFound: If predecessor does not link to member
        """
        check_identity_format(member)
        if self.is_reserved(member):
            raise InvalidIdentity(f"Reserved identity is not a removable member: {member}")
        if self.next_of(predecessor) != member:
            raise NotFound(f"{predecessor} does not link to {member}")

    def initialize(self, first_member: str) -> None:
        """Establish the cycle SENTINEL -> first_member -> SENTINEL.

        Raises:
            AlreadyInitialized: If the ring already has a head
        """
        if self.is_initialized:
            raise AlreadyInitialized("Membership ring is already initialized")
        self.insert_at_head(first_member)

    def insert_at_head(self, member: str) -> None:
        self.check_new_member(member)
        self._write_link(member, self.head)
        self._write_link(SENTINEL, member)
        self.owner_count += 1

    def remove(self, predecessor: str, member: str) -> None:
        """Unlink member given its predecessor; clears member's link."""
        self.check_linkage(predecessor, member)
        self._write_link(predecessor, self._drop_link(member))
        self.owner_count -= 1

    def swap(self, predecessor: str, old_member: str, new_member: str) -> None:
        """Replace old_member with new_member in place."""
        self.check_new_member(new_member)
        self.check_linkage(predecessor, old_member)
        self._write_link(new_member, self._drop_link(old_member))
        self._write_link(predecessor, new_member)

    # =========================================================================
    # Transactions
    # =========================================================================

    # Only the links a mutation touches are journaled, so a checkpoint costs
    # O(1) per ring operation regardless of membership size.

    def _write_link(self, identity: str, target: str) -> None:
        if self._open_checkpoints:
            self._undo.append((identity, self.links.get(identity, MISSING)))
        self.links[identity] = target

    def _drop_link(self, identity: str) -> str:
        if self._open_checkpoints:
            self._undo.append((identity, self.links[identity]))
        return self.links.pop(identity)

    def checkpoint(self) -> RingCheckpoint:
        self._open_checkpoints += 1
        return len(self._undo), self.owner_count

    def commit(self, checkpoint: RingCheckpoint) -> None:
        self._open_checkpoints -= 1
        if not self._open_checkpoints:
            self._undo.clear()

    def restore(self, checkpoint: RingCheckpoint) -> None:
        mark, owner_count = checkpoint
        while len(self._undo) > mark:
            identity, previous = self._undo.pop()
            if previous is MISSING:
                self.links.pop(identity, None)
            else:
                self.links[identity] = previous
        self.owner_count = owner_count
        self._open_checkpoints -= 1
