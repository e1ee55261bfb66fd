"""Public schema exports."""

from .auth import (
    ConnectGitHubResponse,
    GitHubTokenResponse,
    GitHubUserResponse,
    OAuthCallbackParams,
    PlatformTokenResponse,
)

__all__ = [
    "ConnectGitHubResponse",
    "GitHubTokenResponse",
    "GitHubUserResponse",
    "OAuthCallbackParams",
    "PlatformTokenResponse",
]
