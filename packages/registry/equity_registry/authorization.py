"""Authorization gate consumed by the registry.

The registry does not authenticate anyone. It asks an injected Authorizer
whether ``caller`` may run ``operation`` and rejects with Unauthorized when
the answer is no. Quorum and signature schemes live outside this package.
"""

from typing import Callable, Optional

# (caller, operation name) -> allowed?
Authorizer = Callable[[Optional[str], str], bool]


def allow_all(caller: Optional[str], operation: str) -> bool:
    """Default gate: the caller has already been authorized upstream."""
    return True


def registry_self_only(registry_address: str) -> Authorizer:
    """Gate that only lets the registry's own identity mutate it.

    Mirrors the self-call pattern where mutations are routed through the
    registry's own transaction executor after it has collected approvals.

    Example:
        registry = EquityRegistry(
            cfg,
            authorizer=registry_self_only(cfg.registry_address),
        )
        registry.sell_unallotted(alice, 500, caller=cfg.registry_address)
    """
    def authorize(caller: Optional[str], operation: str) -> bool:
        return caller == registry_address

    return authorize
