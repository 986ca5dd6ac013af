"""
Request identity and role checks.

Identity arrives in headers set by the upstream gateway:
``X-User-Id``, ``X-User-Roles`` (comma separated) and ``X-Tenant-Id``.
"""

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional

from fastapi import Depends, Header

from shared.errors import AuthenticationError, AuthorizationError
from shared.logging import set_user_context

ADMIN = "admin"
CARRIER = "carrier"
AGENT = "agent"


@dataclass(frozen=True)
class Actor:
    """Caller identity for a request."""
    user_id: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)
    tenant_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))


def parse_roles(header: Optional[str]) -> FrozenSet[str]:
    if not header:
        return frozenset()
    return frozenset(role.strip().lower() for role in header.split(",") if role.strip())


async def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_roles: Optional[str] = Header(None),
    x_tenant_id: Optional[str] = Header(None),
) -> Actor:
    """Build the caller identity from request headers."""
    actor = Actor(
        user_id=x_user_id.strip() if x_user_id and x_user_id.strip() else None,
        roles=parse_roles(x_user_roles),
        tenant_id=x_tenant_id or None,
    )
    if actor.is_authenticated:
        set_user_context(actor.user_id, actor.tenant_id)
    return actor


def authorize(actor: Actor, *roles: str) -> Actor:
    """Raise unless the actor is authenticated and holds one of ``roles``.

    With no roles given any authenticated actor passes.
    """
    if not actor.is_authenticated:
        raise AuthenticationError("Missing user identity")
    if roles and not actor.has_any_role(*roles):
        raise AuthorizationError(
            "Insufficient role",
            {"required": sorted(roles), "actual": sorted(actor.roles)}
        )
    return actor


def require_roles(*roles: str) -> Callable:
    """FastAPI dependency enforcing :func:`authorize`."""
    async def dependency(actor: Actor = Depends(get_actor)) -> Actor:
        return authorize(actor, *roles)

    return dependency
