"""The calling principal, as handed over by the authentication layer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Subject:
    """
    Immutable per-request identity.

    The engine never authenticates; whatever builds this value (token
    validation, a session lookup, a test) is trusted.
    """

    name: str
    """Principal name; compared against resource owners."""

    is_admin: bool = False
    is_bot: bool = False

    roles: tuple[str, ...] = ()
    """Role names in membership order. Evaluation walks them in this order."""

    teams: frozenset[str] = field(default_factory=frozenset)
    """Teams the subject belongs to; a team can own a resource."""

    domains: frozenset[str] = field(default_factory=frozenset)

    def owns(self, owner: str | None) -> bool:
        if not owner:
            return False
        return owner == self.name or owner in self.teams

