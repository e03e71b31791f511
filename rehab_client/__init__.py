"""
Rehab Platform Python SDK

Client for the Rehab Platform API: authentication, users, clients (patients)
and rehabilitation programs, with sync and async clients, typed errors and
automatic retry with backoff.
"""

from ._version import __version__
from .cancellation import CancellationToken
from .client import (
    RehabAsyncClient,
    RehabClient,
    create_async_rehab_client,
    create_rehab_client,
)
from .config import BASE_URLS, Environment, RehabConfig, create_config
from .errors import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RehabError,
    RequestCancelledError,
    ServerError,
    TokenRefreshError,
    UnknownError,
    ValidationError,
    error_for_kind,
    is_rehab_error,
    is_retryable_error,
)
from .mapper import map_response
from .models import (
    AuthResult,
    Client,
    ClientCreateData,
    ClientUpdateData,
    LoginCredentials,
    PasswordChangeData,
    Program,
    ProgramDraft,
    ProgramExercise,
    ProgramUpdateData,
    RegisterData,
    TokenResult,
    User,
    UserCreateData,
    UserUpdateData,
    build_program,
)
from .monitor import Poller
from .pipeline import AsyncRequestPipeline, RequestPipeline
from .resources import aiter_pages, iter_pages
from .retry import RetryPolicy
from .storage import FileStorage, MemoryStorage
from .types import (
    Envelope,
    ErrorInfo,
    PageInfo,
    RateLimitInfo,
    RequestSpec,
    RetryDecision,
    TokenStorage,
)

__all__ = [
    "__version__",
    # Clients
    "RehabClient",
    "RehabAsyncClient",
    "create_rehab_client",
    "create_async_rehab_client",
    # Configuration
    "RehabConfig",
    "Environment",
    "BASE_URLS",
    "create_config",
    # Pipeline
    "RequestPipeline",
    "AsyncRequestPipeline",
    "RetryPolicy",
    "map_response",
    "CancellationToken",
    "Poller",
    "iter_pages",
    "aiter_pages",
    # Types
    "Envelope",
    "ErrorInfo",
    "PageInfo",
    "RateLimitInfo",
    "RequestSpec",
    "RetryDecision",
    "TokenStorage",
    # Models
    "User",
    "UserCreateData",
    "UserUpdateData",
    "Client",
    "ClientCreateData",
    "ClientUpdateData",
    "Program",
    "ProgramDraft",
    "ProgramExercise",
    "ProgramUpdateData",
    "build_program",
    "AuthResult",
    "TokenResult",
    "LoginCredentials",
    "RegisterData",
    "PasswordChangeData",
    # Errors
    "ErrorKind",
    "RehabError",
    "NetworkError",
    "RequestCancelledError",
    "ValidationError",
    "AuthenticationError",
    "TokenRefreshError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "UnknownError",
    "ConfigurationError",
    "error_for_kind",
    "is_rehab_error",
    "is_retryable_error",
    # Storage
    "MemoryStorage",
    "FileStorage",
]
