# src/quorum/services/__init__.py
"""Business logic services for the Quorum application."""

from .identity import AuthResult, IdentityResolver, ResolutionOutcome
from .providers import AppleVerifier, GoogleVerifier, ProviderIdentity, ProviderVerifier
from .usernames import UsernameAllocator, derive_candidate
from .votes import TargetKind, VoteLedger, VoteOutcome, VoteTally, VoteTarget

__all__ = [
    "AuthResult", "IdentityResolver", "ResolutionOutcome",
    "AppleVerifier", "GoogleVerifier", "ProviderIdentity", "ProviderVerifier",
    "UsernameAllocator", "derive_candidate",
    "TargetKind", "VoteLedger", "VoteOutcome", "VoteTally", "VoteTarget",
]
