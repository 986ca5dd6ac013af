"""
Unit tests for request identity and role checks.
"""

import pytest

from shared.errors import AuthenticationError, AuthorizationError
from shared.logging import clear_context, user_id_var
from service_appetite.app.auth import Actor, authorize, get_actor, parse_roles, require_roles


class TestAuth:
    """Test cases for header-based identity."""

    def test_parse_roles(self):
        assert parse_roles(" Admin, carrier ,,") == frozenset({"admin", "carrier"})
        assert parse_roles(None) == frozenset()

    @pytest.mark.asyncio
    async def test_get_actor_sets_user_context(self):
        clear_context()
        actor = await get_actor("usr-002", "carrier", "tenant-1")

        assert actor.user_id == "usr-002"
        assert actor.roles == frozenset({"carrier"})
        assert actor.tenant_id == "tenant-1"
        assert user_id_var.get() == "usr-002"
        clear_context()

    @pytest.mark.asyncio
    async def test_blank_user_id_is_anonymous(self):
        actor = await get_actor("  ", "admin", None)
        assert actor.is_authenticated is False

    def test_authorize_requires_identity(self):
        with pytest.raises(AuthenticationError):
            authorize(Actor(roles=frozenset({"admin"})))

    def test_authorize_any_authenticated_actor(self):
        actor = Actor(user_id="usr-003", roles=frozenset({"agent"}))
        assert authorize(actor) is actor

    def test_authorize_checks_roles(self):
        actor = Actor(user_id="usr-003", roles=frozenset({"agent"}))

        with pytest.raises(AuthorizationError) as exc_info:
            authorize(actor, "admin", "carrier")

        assert exc_info.value.details["required"] == ["admin", "carrier"]

    @pytest.mark.asyncio
    async def test_require_roles_dependency(self):
        dependency = require_roles("admin")
        actor = Actor(user_id="usr-001", roles=frozenset({"admin"}))

        assert await dependency(actor) is actor
