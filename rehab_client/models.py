"""
Rehab Platform SDK Resource Models

Users, clients (patients), programs and authentication payloads. The API
speaks camelCase JSON; ``from_dict`` also accepts snake_case keys and
``to_dict`` omits unset fields.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Literal, Optional, Sequence

from .errors import ValidationError
from .types import pick


UserRole = Literal["admin", "therapist", "assistant", "viewer"]
ClientStatus = Literal["active", "inactive", "discharged"]
ProgramStatus = Literal["draft", "active", "paused", "completed", "archived"]

PROGRAM_STATUSES = ("draft", "active", "paused", "completed", "archived")


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


# =============================================================================
# Users
# =============================================================================

@dataclass
class User:
    """Platform user (therapist, admin, ...)."""

    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str = "therapist"
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            first_name=pick(data, "firstName", "first_name", default=""),
            last_name=pick(data, "lastName", "last_name", default=""),
            role=pick(data, "role", default="therapist"),
            is_active=pick(data, "isActive", "is_active", default=True),
            created_at=pick(data, "createdAt", "created_at"),
            updated_at=pick(data, "updatedAt", "updated_at"),
        )


@dataclass
class UserCreateData:
    """Payload for creating a user."""

    email: str
    password: str
    first_name: str
    last_name: str
    role: UserRole = "therapist"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "password": self.password,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
        }


@dataclass
class UserUpdateData:
    """Partial user update; only set fields are sent."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "isActive": self.is_active,
        })


# =============================================================================
# Clients
# =============================================================================

@dataclass
class Client:
    """A patient receiving rehabilitation programs."""

    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    diagnosis: Optional[str] = None
    therapist_id: Optional[str] = None
    status: str = "active"
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Client":
        return cls(
            id=str(data["id"]),
            first_name=pick(data, "firstName", "first_name", default=""),
            last_name=pick(data, "lastName", "last_name", default=""),
            email=data.get("email"),
            phone=data.get("phone"),
            date_of_birth=pick(data, "dateOfBirth", "date_of_birth"),
            diagnosis=data.get("diagnosis"),
            therapist_id=pick(data, "therapistId", "therapist_id"),
            status=data.get("status", "active"),
            notes=data.get("notes"),
            created_at=pick(data, "createdAt", "created_at"),
            updated_at=pick(data, "updatedAt", "updated_at"),
        )


@dataclass
class ClientCreateData:
    """Payload for registering a client."""

    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None
    diagnosis: Optional[str] = None
    therapist_id: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "dateOfBirth": self.date_of_birth,
            "diagnosis": self.diagnosis,
            "therapistId": self.therapist_id,
            "notes": self.notes,
        })


@dataclass
class ClientUpdateData:
    """Partial client update."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    diagnosis: Optional[str] = None
    therapist_id: Optional[str] = None
    status: Optional[ClientStatus] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "diagnosis": self.diagnosis,
            "therapistId": self.therapist_id,
            "status": self.status,
            "notes": self.notes,
        })


# =============================================================================
# Programs
# =============================================================================

@dataclass(frozen=True)
class ProgramExercise:
    """One exercise prescription within a program."""

    name: str
    sets: int = 1
    reps: Optional[int] = None
    duration_seconds: Optional[int] = None
    rest_seconds: Optional[int] = None
    exercise_id: Optional[str] = None
    instructions: Optional[str] = None
    order: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramExercise":
        return cls(
            name=data.get("name", ""),
            sets=int(data.get("sets", 1)),
            reps=data.get("reps"),
            duration_seconds=pick(data, "durationSeconds", "duration_seconds"),
            rest_seconds=pick(data, "restSeconds", "rest_seconds"),
            exercise_id=pick(data, "exerciseId", "exercise_id"),
            instructions=data.get("instructions"),
            order=int(data.get("order", 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "exerciseId": self.exercise_id,
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "durationSeconds": self.duration_seconds,
            "restSeconds": self.rest_seconds,
            "instructions": self.instructions,
            "order": self.order,
        })


@dataclass
class Program:
    """A rehabilitation program assigned to a client."""

    id: str
    name: str
    description: Optional[str] = None
    client_id: Optional[str] = None
    therapist_id: Optional[str] = None
    status: str = "draft"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sessions_per_week: Optional[int] = None
    exercises: List[ProgramExercise] = field(default_factory=list)
    progress: Optional[float] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Program":
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            description=data.get("description"),
            client_id=pick(data, "clientId", "client_id"),
            therapist_id=pick(data, "therapistId", "therapist_id"),
            status=data.get("status", "draft"),
            start_date=pick(data, "startDate", "start_date"),
            end_date=pick(data, "endDate", "end_date"),
            sessions_per_week=pick(data, "sessionsPerWeek", "sessions_per_week"),
            exercises=[ProgramExercise.from_dict(e) for e in data.get("exercises", [])],
            progress=data.get("progress"),
            created_at=pick(data, "createdAt", "created_at"),
            updated_at=pick(data, "updatedAt", "updated_at"),
        )


@dataclass(frozen=True)
class ProgramDraft:
    """Immutable definition of a new program. Build with ``build_program``."""

    name: str
    client_id: Optional[str] = None
    description: Optional[str] = None
    therapist_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sessions_per_week: Optional[int] = None
    exercises: Sequence[ProgramExercise] = ()

    def to_dict(self) -> Dict[str, Any]:
        result = _compact({
            "name": self.name,
            "clientId": self.client_id,
            "description": self.description,
            "therapistId": self.therapist_id,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "sessionsPerWeek": self.sessions_per_week,
        })
        result["exercises"] = [e.to_dict() for e in self.exercises]
        return result


def build_program(
    name: str,
    client_id: Optional[str] = None,
    exercises: Sequence[ProgramExercise] = (),
    description: Optional[str] = None,
    therapist_id: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sessions_per_week: Optional[int] = None,
) -> ProgramDraft:
    """
    Assemble and validate a program definition.

    Exercises without an explicit order are numbered in the given sequence.
    Dates are ISO-8601 strings (YYYY-MM-DD).

    Raises:
        ValidationError: with field-level details when a value is invalid
    """
    problems: Dict[str, List[str]] = {}
    if not name or not name.strip():
        problems.setdefault("name", []).append("Name is required")
    if sessions_per_week is not None and not 1 <= sessions_per_week <= 14:
        problems.setdefault("sessionsPerWeek", []).append("Must be between 1 and 14")
    if start_date and end_date and end_date < start_date:
        problems.setdefault("endDate", []).append("End date must not precede start date")

    ordered: List[ProgramExercise] = []
    for index, exercise in enumerate(exercises):
        key = f"exercises[{index}]"
        if not exercise.name.strip():
            problems.setdefault(key, []).append("Exercise name is required")
        if exercise.sets < 1:
            problems.setdefault(key, []).append("Sets must be positive")
        if exercise.reps is not None and exercise.reps < 1:
            problems.setdefault(key, []).append("Reps must be positive")
        if exercise.reps is None and exercise.duration_seconds is None:
            problems.setdefault(key, []).append("Either reps or duration is required")
        if exercise.order:
            ordered.append(exercise)
        else:
            ordered.append(replace(exercise, order=index + 1))

    if problems:
        raise ValidationError("Invalid program definition", details=problems)

    return ProgramDraft(
        name=name.strip(),
        client_id=client_id,
        description=description,
        therapist_id=therapist_id,
        start_date=start_date,
        end_date=end_date,
        sessions_per_week=sessions_per_week,
        exercises=tuple(ordered),
    )


@dataclass
class ProgramUpdateData:
    """Partial program update."""

    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    sessions_per_week: Optional[int] = None
    exercises: Optional[Sequence[ProgramExercise]] = None

    def to_dict(self) -> Dict[str, Any]:
        result = _compact({
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "sessionsPerWeek": self.sessions_per_week,
        })
        if self.exercises is not None:
            result["exercises"] = [e.to_dict() for e in self.exercises]
        return result


# =============================================================================
# Authentication
# =============================================================================

@dataclass
class TokenResult:
    """Token pair issued by login, register and refresh."""

    access_token: str
    refresh_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenResult":
        tokens = data.get("tokens", data)
        return cls(
            access_token=pick(tokens, "accessToken", "access_token", default=""),
            refresh_token=pick(tokens, "refreshToken", "refresh_token", default=""),
            expires_in=int(pick(tokens, "expiresIn", "expires_in", default=3600)),
            token_type=pick(tokens, "tokenType", "token_type", default="Bearer"),
        )


@dataclass
class AuthResult:
    """Authenticated session: tokens plus the signed-in user."""

    tokens: TokenResult
    user: Optional[User] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthResult":
        user_data = data.get("user")
        return cls(
            tokens=TokenResult.from_dict(data),
            user=User.from_dict(user_data) if user_data else None,
        )


@dataclass
class LoginCredentials:
    email: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password}


@dataclass
class RegisterData:
    email: str
    password: str
    first_name: str
    last_name: str
    organization: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "email": self.email,
            "password": self.password,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "organization": self.organization,
        })


@dataclass
class PasswordChangeData:
    current_password: str
    new_password: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentPassword": self.current_password,
            "newPassword": self.new_password,
        }
