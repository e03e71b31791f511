"""
Rehab Platform SDK Resource Facades

Each facade turns method arguments into a RequestSpec and hands it to the
owning client's pipeline. Route building lives in the ``_*Routes`` bases and
is shared by the sync and async facades.
"""

from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
)

from .cancellation import CancellationToken
from .errors import ValidationError
from .models import (
    PROGRAM_STATUSES,
    AuthResult,
    Client,
    ClientCreateData,
    ClientUpdateData,
    LoginCredentials,
    PasswordChangeData,
    Program,
    ProgramDraft,
    ProgramUpdateData,
    RegisterData,
    User,
    UserCreateData,
    UserUpdateData,
)
from .types import Envelope, QueryValue, RequestSpec, list_of

if TYPE_CHECKING:
    from .client import RehabAsyncClient, RehabClient


MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20


def page_query(page: int, limit: int, **filters: QueryValue) -> Dict[str, QueryValue]:
    """Validate paging arguments and merge them with filters."""
    problems: Dict[str, List[str]] = {}
    if page < 1:
        problems["page"] = ["Page must be at least 1"]
    if not 1 <= limit <= MAX_PAGE_SIZE:
        problems["limit"] = [f"Limit must be between 1 and {MAX_PAGE_SIZE}"]
    if problems:
        raise ValidationError("Invalid pagination parameters", details=problems)
    return {"page": page, "limit": limit, **filters}


def _require_id(name: str, value: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{name} is required", details={name: ["Required"]})
    return str(value)


# =============================================================================
# Route builders
# =============================================================================

class _AuthRoutes:
    def _login_spec(self, credentials: LoginCredentials) -> RequestSpec:
        return RequestSpec(
            "POST", "/auth/login", body=credentials,
            parser=AuthResult.from_dict, skip_auto_refresh=True,
        )

    def _register_spec(self, data: RegisterData) -> RequestSpec:
        return RequestSpec(
            "POST", "/auth/register", body=data,
            parser=AuthResult.from_dict, skip_auto_refresh=True,
        )

    def _refresh_spec(self, refresh_token: str) -> RequestSpec:
        return RequestSpec(
            "POST", "/auth/refresh", body={"refreshToken": refresh_token},
            parser=AuthResult.from_dict, skip_auto_refresh=True,
        )

    def _logout_spec(self) -> RequestSpec:
        return RequestSpec("POST", "/auth/logout", skip_auto_refresh=True)

    def _me_spec(self, cancellation: Optional[CancellationToken]) -> RequestSpec:
        return RequestSpec("GET", "/auth/me", parser=User.from_dict, cancellation=cancellation)

    def _change_password_spec(self, data: PasswordChangeData) -> RequestSpec:
        return RequestSpec("POST", "/auth/change-password", body=data)

    def _forgot_password_spec(self, email: str) -> RequestSpec:
        return RequestSpec(
            "POST", "/auth/forgot-password", body={"email": email}, skip_auto_refresh=True,
        )

    def _reset_password_spec(self, token: str, new_password: str) -> RequestSpec:
        return RequestSpec(
            "POST", "/auth/reset-password",
            body={"token": token, "newPassword": new_password},
            skip_auto_refresh=True,
        )


class _UsersRoutes:
    def _list_spec(
        self, page: int, limit: int, search: Optional[str], role: Optional[str],
        cancellation: Optional[CancellationToken],
    ) -> RequestSpec:
        return RequestSpec(
            "GET", "/users",
            query=page_query(page, limit, search=search, role=role),
            parser=list_of(User.from_dict), cancellation=cancellation,
        )

    def _get_spec(self, user_id: str, cancellation: Optional[CancellationToken]) -> RequestSpec:
        return RequestSpec(
            "GET", f"/users/{_require_id('user_id', user_id)}",
            parser=User.from_dict, cancellation=cancellation,
        )

    def _create_spec(self, data: UserCreateData) -> RequestSpec:
        return RequestSpec("POST", "/users", body=data, parser=User.from_dict)

    def _update_spec(self, user_id: str, data: UserUpdateData) -> RequestSpec:
        return RequestSpec(
            "PUT", f"/users/{_require_id('user_id', user_id)}", body=data, parser=User.from_dict,
        )

    def _delete_spec(self, user_id: str) -> RequestSpec:
        return RequestSpec("DELETE", f"/users/{_require_id('user_id', user_id)}")


class _ClientsRoutes:
    def _list_spec(
        self, page: int, limit: int, search: Optional[str], status: Optional[str],
        therapist_id: Optional[str], cancellation: Optional[CancellationToken],
    ) -> RequestSpec:
        return RequestSpec(
            "GET", "/clients",
            query=page_query(page, limit, search=search, status=status, therapistId=therapist_id),
            parser=list_of(Client.from_dict), cancellation=cancellation,
        )

    def _get_spec(self, client_id: str, cancellation: Optional[CancellationToken]) -> RequestSpec:
        return RequestSpec(
            "GET", f"/clients/{_require_id('client_id', client_id)}",
            parser=Client.from_dict, cancellation=cancellation,
        )

    def _create_spec(self, data: ClientCreateData) -> RequestSpec:
        return RequestSpec("POST", "/clients", body=data, parser=Client.from_dict)

    def _update_spec(self, client_id: str, data: ClientUpdateData) -> RequestSpec:
        return RequestSpec(
            "PUT", f"/clients/{_require_id('client_id', client_id)}",
            body=data, parser=Client.from_dict,
        )

    def _delete_spec(self, client_id: str) -> RequestSpec:
        return RequestSpec("DELETE", f"/clients/{_require_id('client_id', client_id)}")

    def _programs_spec(
        self, client_id: str, page: int, limit: int, cancellation: Optional[CancellationToken],
    ) -> RequestSpec:
        return RequestSpec(
            "GET", f"/clients/{_require_id('client_id', client_id)}/programs",
            query=page_query(page, limit),
            parser=list_of(Program.from_dict), cancellation=cancellation,
        )


class _ProgramsRoutes:
    def _list_spec(
        self, page: int, limit: int, client_id: Optional[str], status: Optional[str],
        cancellation: Optional[CancellationToken],
    ) -> RequestSpec:
        return RequestSpec(
            "GET", "/programs",
            query=page_query(page, limit, clientId=client_id, status=status),
            parser=list_of(Program.from_dict), cancellation=cancellation,
        )

    def _get_spec(self, program_id: str, cancellation: Optional[CancellationToken]) -> RequestSpec:
        return RequestSpec(
            "GET", f"/programs/{_require_id('program_id', program_id)}",
            parser=Program.from_dict, cancellation=cancellation,
        )

    def _create_spec(self, draft: ProgramDraft) -> RequestSpec:
        return RequestSpec("POST", "/programs", body=draft, parser=Program.from_dict)

    def _update_spec(self, program_id: str, data: ProgramUpdateData) -> RequestSpec:
        return RequestSpec(
            "PUT", f"/programs/{_require_id('program_id', program_id)}",
            body=data, parser=Program.from_dict,
        )

    def _delete_spec(self, program_id: str) -> RequestSpec:
        return RequestSpec("DELETE", f"/programs/{_require_id('program_id', program_id)}")

    def _assign_spec(self, program_id: str, client_id: str) -> RequestSpec:
        return RequestSpec(
            "POST", f"/programs/{_require_id('program_id', program_id)}/assign",
            body={"clientId": _require_id("client_id", client_id)},
            parser=Program.from_dict,
        )

    def _status_spec(self, program_id: str, status: str) -> RequestSpec:
        if status not in PROGRAM_STATUSES:
            raise ValidationError(
                f"Unknown program status {status!r}",
                details={"status": [f"Must be one of: {', '.join(PROGRAM_STATUSES)}"]},
            )
        return RequestSpec(
            "PATCH", f"/programs/{_require_id('program_id', program_id)}/status",
            body={"status": status}, parser=Program.from_dict,
        )


# =============================================================================
# Sync facades
# =============================================================================

class AuthResource(_AuthRoutes):
    """Authentication operations. Successful login/register/refresh store the session."""

    def __init__(self, client: "RehabClient") -> None:
        self._client = client

    def login(self, credentials: LoginCredentials) -> Envelope[AuthResult]:
        envelope = self._client._send(self._login_spec(credentials))
        self._client._store_tokens(envelope.data.tokens)
        return envelope

    def register(self, data: RegisterData) -> Envelope[AuthResult]:
        envelope = self._client._send(self._register_spec(data))
        self._client._store_tokens(envelope.data.tokens)
        return envelope

    def logout(self) -> Envelope[Any]:
        """End the session server-side; local tokens are cleared either way."""
        try:
            return self._client._send(self._logout_spec())
        finally:
            self._client._clear_session()

    def refresh(self) -> Envelope[AuthResult]:
        return self._client.refresh_token()

    def me(self, cancellation: Optional[CancellationToken] = None) -> Envelope[User]:
        return self._client._send(self._me_spec(cancellation))

    def change_password(self, data: PasswordChangeData) -> Envelope[Any]:
        return self._client._send(self._change_password_spec(data))

    def forgot_password(self, email: str) -> Envelope[Any]:
        return self._client._send(self._forgot_password_spec(email))

    def reset_password(self, token: str, new_password: str) -> Envelope[Any]:
        return self._client._send(self._reset_password_spec(token, new_password))


class UsersResource(_UsersRoutes):
    """User management."""

    def __init__(self, client: "RehabClient") -> None:
        self._client = client

    def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        role: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[User]]:
        return self._client._send(self._list_spec(page, limit, search, role, cancellation))

    def get(self, user_id: str, cancellation: Optional[CancellationToken] = None) -> Envelope[User]:
        return self._client._send(self._get_spec(user_id, cancellation))

    def create(self, data: UserCreateData) -> Envelope[User]:
        return self._client._send(self._create_spec(data))

    def update(self, user_id: str, data: UserUpdateData) -> Envelope[User]:
        return self._client._send(self._update_spec(user_id, data))

    def delete(self, user_id: str) -> Envelope[Any]:
        return self._client._send(self._delete_spec(user_id))


class ClientsResource(_ClientsRoutes):
    """Client (patient) records."""

    def __init__(self, client: "RehabClient") -> None:
        self._client = client

    def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        status: Optional[str] = None,
        therapist_id: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Client]]:
        return self._client._send(
            self._list_spec(page, limit, search, status, therapist_id, cancellation)
        )

    def get(self, client_id: str, cancellation: Optional[CancellationToken] = None) -> Envelope[Client]:
        return self._client._send(self._get_spec(client_id, cancellation))

    def create(self, data: ClientCreateData) -> Envelope[Client]:
        return self._client._send(self._create_spec(data))

    def update(self, client_id: str, data: ClientUpdateData) -> Envelope[Client]:
        return self._client._send(self._update_spec(client_id, data))

    def delete(self, client_id: str) -> Envelope[Any]:
        return self._client._send(self._delete_spec(client_id))

    def programs(
        self,
        client_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Program]]:
        return self._client._send(self._programs_spec(client_id, page, limit, cancellation))


class ProgramsResource(_ProgramsRoutes):
    """Rehabilitation programs."""

    def __init__(self, client: "RehabClient") -> None:
        self._client = client

    def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Program]]:
        return self._client._send(self._list_spec(page, limit, client_id, status, cancellation))

    def get(self, program_id: str, cancellation: Optional[CancellationToken] = None) -> Envelope[Program]:
        return self._client._send(self._get_spec(program_id, cancellation))

    def create(self, draft: ProgramDraft) -> Envelope[Program]:
        return self._client._send(self._create_spec(draft))

    def update(self, program_id: str, data: ProgramUpdateData) -> Envelope[Program]:
        return self._client._send(self._update_spec(program_id, data))

    def delete(self, program_id: str) -> Envelope[Any]:
        return self._client._send(self._delete_spec(program_id))

    def assign(self, program_id: str, client_id: str) -> Envelope[Program]:
        return self._client._send(self._assign_spec(program_id, client_id))

    def set_status(self, program_id: str, status: str) -> Envelope[Program]:
        return self._client._send(self._status_spec(program_id, status))


# =============================================================================
# Async facades
# =============================================================================

class AsyncAuthResource(_AuthRoutes):
    """Authentication operations for the async client."""

    def __init__(self, client: "RehabAsyncClient") -> None:
        self._client = client

    async def login(self, credentials: LoginCredentials) -> Envelope[AuthResult]:
        envelope = await self._client._send(self._login_spec(credentials))
        self._client._store_tokens(envelope.data.tokens)
        return envelope

    async def register(self, data: RegisterData) -> Envelope[AuthResult]:
        envelope = await self._client._send(self._register_spec(data))
        self._client._store_tokens(envelope.data.tokens)
        return envelope

    async def logout(self) -> Envelope[Any]:
        try:
            return await self._client._send(self._logout_spec())
        finally:
            self._client._clear_session()

    async def refresh(self) -> Envelope[AuthResult]:
        return await self._client.refresh_token()

    async def me(self, cancellation: Optional[CancellationToken] = None) -> Envelope[User]:
        return await self._client._send(self._me_spec(cancellation))

    async def change_password(self, data: PasswordChangeData) -> Envelope[Any]:
        return await self._client._send(self._change_password_spec(data))

    async def forgot_password(self, email: str) -> Envelope[Any]:
        return await self._client._send(self._forgot_password_spec(email))

    async def reset_password(self, token: str, new_password: str) -> Envelope[Any]:
        return await self._client._send(self._reset_password_spec(token, new_password))


class AsyncUsersResource(_UsersRoutes):
    def __init__(self, client: "RehabAsyncClient") -> None:
        self._client = client

    async def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        role: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[User]]:
        return await self._client._send(self._list_spec(page, limit, search, role, cancellation))

    async def get(self, user_id: str, cancellation: Optional[CancellationToken] = None) -> Envelope[User]:
        return await self._client._send(self._get_spec(user_id, cancellation))

    async def create(self, data: UserCreateData) -> Envelope[User]:
        return await self._client._send(self._create_spec(data))

    async def update(self, user_id: str, data: UserUpdateData) -> Envelope[User]:
        return await self._client._send(self._update_spec(user_id, data))

    async def delete(self, user_id: str) -> Envelope[Any]:
        return await self._client._send(self._delete_spec(user_id))


class AsyncClientsResource(_ClientsRoutes):
    def __init__(self, client: "RehabAsyncClient") -> None:
        self._client = client

    async def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
        status: Optional[str] = None,
        therapist_id: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Client]]:
        return await self._client._send(
            self._list_spec(page, limit, search, status, therapist_id, cancellation)
        )

    async def get(
        self, client_id: str, cancellation: Optional[CancellationToken] = None
    ) -> Envelope[Client]:
        return await self._client._send(self._get_spec(client_id, cancellation))

    async def create(self, data: ClientCreateData) -> Envelope[Client]:
        return await self._client._send(self._create_spec(data))

    async def update(self, client_id: str, data: ClientUpdateData) -> Envelope[Client]:
        return await self._client._send(self._update_spec(client_id, data))

    async def delete(self, client_id: str) -> Envelope[Any]:
        return await self._client._send(self._delete_spec(client_id))

    async def programs(
        self,
        client_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Program]]:
        return await self._client._send(self._programs_spec(client_id, page, limit, cancellation))


class AsyncProgramsResource(_ProgramsRoutes):
    def __init__(self, client: "RehabAsyncClient") -> None:
        self._client = client

    async def list(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        client_id: Optional[str] = None,
        status: Optional[str] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> Envelope[List[Program]]:
        return await self._client._send(
            self._list_spec(page, limit, client_id, status, cancellation)
        )

    async def get(
        self, program_id: str, cancellation: Optional[CancellationToken] = None
    ) -> Envelope[Program]:
        return await self._client._send(self._get_spec(program_id, cancellation))

    async def create(self, draft: ProgramDraft) -> Envelope[Program]:
        return await self._client._send(self._create_spec(draft))

    async def update(self, program_id: str, data: ProgramUpdateData) -> Envelope[Program]:
        return await self._client._send(self._update_spec(program_id, data))

    async def delete(self, program_id: str) -> Envelope[Any]:
        return await self._client._send(self._delete_spec(program_id))

    async def assign(self, program_id: str, client_id: str) -> Envelope[Program]:
        return await self._client._send(self._assign_spec(program_id, client_id))

    async def set_status(self, program_id: str, status: str) -> Envelope[Program]:
        return await self._client._send(self._status_spec(program_id, status))


# =============================================================================
# Pagination helpers
# =============================================================================

def iter_pages(
    list_method: Callable[..., Envelope[List[Any]]],
    limit: int = DEFAULT_PAGE_SIZE,
    **filters: Any,
) -> Iterator[Envelope[List[Any]]]:
    """
    Yield successive pages of a list endpoint while the server reports more.

    Example:
        for page in iter_pages(client.clients.list, status="active"):
            for record in page.data:
                ...
    """
    page = 1
    while True:
        envelope = list_method(page=page, limit=limit, **filters)
        yield envelope
        if not envelope.has_more:
            return
        page += 1


async def aiter_pages(
    list_method: Callable[..., Awaitable[Envelope[List[Any]]]],
    limit: int = DEFAULT_PAGE_SIZE,
    **filters: Any,
) -> AsyncIterator[Envelope[List[Any]]]:
    """Async counterpart of ``iter_pages``."""
    page = 1
    while True:
        envelope = await list_method(page=page, limit=limit, **filters)
        yield envelope
        if not envelope.has_more:
            return
        page += 1
