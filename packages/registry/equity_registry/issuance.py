"""Token-issuance hook.

A registry may mint a representational token for each member it adds. Minting
is out of scope here: the registry calls the hook after commit and ignores
its result.
"""

from typing import Any, Protocol


class TokenIssuer(Protocol):
    """Anything with an ``issue(member, stake)`` method."""

    def issue(self, member: str, stake: int) -> Any:
        ...


class NullTokenIssuer:
    """Issuer that does nothing (default)."""

    def issue(self, member: str, stake: int) -> None:
        return None
