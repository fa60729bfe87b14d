"""
Unit tests for the identity provider.
"""

import asyncio
import json

import pytest

from academy.auth.identity import IdentityProvider
from academy.core.errors import AuthError


class TestSignIn:
    """Anonymous and token sign-in."""

    def test_anonymous_identity_is_remembered(self, tmp_path):
        identity_file = tmp_path / "nested" / "identity.json"

        first = IdentityProvider(identity_file).sign_in_anonymously()
        second = IdentityProvider(identity_file).sign_in_anonymously()

        assert first.is_anonymous
        assert first.uid == second.uid
        assert json.loads(identity_file.read_text()) == {"uid": first.uid}

    def test_anonymous_without_file_is_fresh(self):
        assert IdentityProvider().sign_in_anonymously().uid != IdentityProvider().sign_in_anonymously().uid

    def test_token_uid_is_stable(self):
        first = IdentityProvider().sign_in_with_token("token-abc")
        second = IdentityProvider().sign_in(token="token-abc")

        assert first.uid == second.uid
        assert not first.is_anonymous

    @pytest.mark.parametrize("token", ["", "   "])
    def test_empty_token_rejected(self, token):
        with pytest.raises(AuthError):
            IdentityProvider().sign_in_with_token(token)

    def test_unreadable_identity_file(self, tmp_path):
        identity_file = tmp_path / "identity.json"
        identity_file.write_text("{not json")

        with pytest.raises(AuthError, match="unreadable identity file"):
            IdentityProvider(identity_file).sign_in_anonymously()


class TestAuthState:
    """Auth-state listeners and waiting for the first user."""

    def test_listener_called_immediately_and_on_change(self):
        provider = IdentityProvider()
        seen = []

        subscription = provider.on_auth_state_changed(seen.append)
        user = provider.sign_in_anonymously()
        provider.sign_out()
        subscription.close()
        provider.sign_in_anonymously()

        assert seen == [None, user, None]

    @pytest.mark.asyncio
    async def test_wait_for_user(self):
        provider = IdentityProvider()
        waiter = asyncio.create_task(provider.wait_for_user())
        await asyncio.sleep(0)
        assert not waiter.done()

        user = provider.sign_in_with_token("abc")

        assert await asyncio.wait_for(waiter, 1.0) == user

    @pytest.mark.asyncio
    async def test_wait_returns_current_user(self):
        provider = IdentityProvider()
        user = provider.sign_in_anonymously()

        assert await provider.wait_for_user() is user
