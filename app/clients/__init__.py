"""Expose constructed client wrappers."""

from .connect_rpc import AuthServiceClient, FailureClass, RPCError
from .github_oauth import GitHubOAuthClient
from .platform_auth import PlatformAuthClient, TokenRefreshError
from .state_codec import StateEnvelopeCodec, StateSignatureError

__all__ = [
    "AuthServiceClient",
    "FailureClass",
    "GitHubOAuthClient",
    "PlatformAuthClient",
    "RPCError",
    "StateEnvelopeCodec",
    "StateSignatureError",
    "TokenRefreshError",
]
