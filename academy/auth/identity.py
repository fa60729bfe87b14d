"""
Identity provider.

Signs the learner in (anonymously or with a token) and publishes auth-state
changes. Module operations wait for the first user id before touching the store.

Anonymous identities are remembered in ``identity_file`` so a learner resumes
their modules on the next run.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from academy.core.errors import AuthError
from academy.sync.subscription import Subscription

TOKEN_NAMESPACE = uuid.UUID("7f0c5a8e-3d1b-4c55-9a51-6f2f0e6c1d2a")

AuthListener = Callable[["User | None"], None]


@dataclass(frozen=True)
class User:
    """Signed-in learner."""

    uid: str
    is_anonymous: bool


class IdentityProvider:
    """Sign-in plus an auth-state notification stream."""

    def __init__(self, identity_file: Path | None = None):
        self.identity_file = identity_file
        self._user: User | None = None
        self._listeners: list[AuthListener] = []
        self._ready: asyncio.Event | None = None

    @property
    def current_user(self) -> User | None:
        return self._user

    # -------------------------------------------------------------------------
    # Sign-in
    # -------------------------------------------------------------------------

    def sign_in_anonymously(self) -> User:
        """Sign in as the remembered anonymous learner, creating one if needed."""
        uid = self._load_anonymous_uid() or uuid.uuid4().hex
        self._save_anonymous_uid(uid)
        return self._set_user(User(uid=uid, is_anonymous=True))

    def sign_in_with_token(self, token: str) -> User:
        """Sign in with an externally issued token; the uid is stable per token."""
        if not token or not token.strip():
            raise AuthError("Failed to authenticate: empty sign-in token")
        uid = uuid.uuid5(TOKEN_NAMESPACE, token.strip()).hex
        return self._set_user(User(uid=uid, is_anonymous=False))

    def sign_in(self, token: str | None = None) -> User:
        """Token sign-in when a token is supplied, anonymous otherwise."""
        if token:
            return self.sign_in_with_token(token)
        return self.sign_in_anonymously()

    def sign_out(self) -> None:
        self._user = None
        if self._ready is not None:
            self._ready.clear()
        self._emit()

    # -------------------------------------------------------------------------
    # Auth state
    # -------------------------------------------------------------------------

    def on_auth_state_changed(self, listener: AuthListener) -> Subscription:
        """Register a listener; it is called immediately with the current state."""
        self._listeners.append(listener)
        listener(self._user)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(on_close=_remove)

    async def wait_for_user(self) -> User:
        """Wait until a user is signed in."""
        if self._user is not None:
            return self._user
        if self._ready is None:
            self._ready = asyncio.Event()
        await self._ready.wait()
        if self._user is None:
            raise AuthError("Signed out while waiting for authentication")
        return self._user

    def _set_user(self, user: User) -> User:
        self._user = user
        logger.info(f"Authenticated as: {user.uid}")
        if self._ready is not None:
            self._ready.set()
        self._emit()
        return user

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)

    # -------------------------------------------------------------------------
    # Anonymous identity file
    # -------------------------------------------------------------------------

    def _load_anonymous_uid(self) -> str | None:
        if self.identity_file is None or not self.identity_file.exists():
            return None
        try:
            data = json.loads(self.identity_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise AuthError(f"Failed to authenticate: unreadable identity file {self.identity_file}") from e
        uid = data.get("uid") if isinstance(data, dict) else None
        if not uid:
            raise AuthError(f"Failed to authenticate: no uid in {self.identity_file}")
        return str(uid)

    def _save_anonymous_uid(self, uid: str) -> None:
        if self.identity_file is None:
            return
        try:
            self.identity_file.parent.mkdir(parents=True, exist_ok=True)
            self.identity_file.write_text(json.dumps({"uid": uid}), encoding="utf-8")
        except OSError as e:
            raise AuthError(f"Failed to authenticate: cannot store identity ({e})") from e
