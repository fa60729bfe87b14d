"""Learner identity."""

from .identity import IdentityProvider, User

__all__ = ["IdentityProvider", "User"]
