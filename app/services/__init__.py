"""Service layer exports."""

from .callback_pipeline import GitHubCallbackPipeline
from .connector_dispatch import ConnectionDeclinedError, ConnectorDispatcher
from .outcomes import Outcome, OutcomeClassifier, OutcomeKind, OutcomeReason
from .session_credentials import LoginRequiredError, SessionCredentialManager
from .session_store import CookieSessionStore, SessionData, SessionHandle, SessionStore
from .token_cipher import TokenCipherService

__all__ = [
    "ConnectionDeclinedError",
    "ConnectorDispatcher",
    "CookieSessionStore",
    "GitHubCallbackPipeline",
    "LoginRequiredError",
    "Outcome",
    "OutcomeClassifier",
    "OutcomeKind",
    "OutcomeReason",
    "SessionCredentialManager",
    "SessionData",
    "SessionHandle",
    "SessionStore",
    "TokenCipherService",
]
