"""Registry notifications.

Events are immutable records emitted after a mutation commits. They are
fire-and-forget: the registry does not wait for, or depend on, any sink.

Event kinds:
    - MemberAdded: identity joined the ring
    - MemberRemoved: identity left the ring
    - StakeChanged: identity's stake now equals new_stake

A swap emits MemberRemoved(old), MemberAdded(new), then StakeChanged for both.
"""

from typing import Annotated, Literal, Union
from pydantic import ConfigDict, Field

from .base import DomainModel, MemberId, StakeAmount


# =============================================================================
# Event Base Class
# =============================================================================

class RegistryEvent(DomainModel):
    """Base class for all registry notifications.

    sequence increases by one per emitted event within a registry, so sinks
    can detect gaps or reorder deliveries.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    sequence: int = Field(
        ge=0,
        description="Position of this event in the registry's emission order"
    )

    member: MemberId = Field(
        description="Identity the event is about"
    )


class MemberAdded(RegistryEvent):
    """An identity was linked into the membership ring."""

    event_type: Literal["member_added"] = "member_added"


class MemberRemoved(RegistryEvent):
    """An identity was unlinked from the membership ring."""

    event_type: Literal["member_removed"] = "member_removed"


class StakeChanged(RegistryEvent):
    """An identity's recorded stake changed."""

    event_type: Literal["stake_changed"] = "stake_changed"

    new_stake: StakeAmount = Field(
        description="Stake after the change (0 once removed)"
    )


AnyRegistryEvent = Annotated[
    Union[MemberAdded, MemberRemoved, StakeChanged],
    Field(discriminator="event_type")
]
