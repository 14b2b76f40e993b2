"""Request and response models exposed by the HTTP API."""

from riskr_backend.api.models.games import (
    CamelModel,
    CancelGameRequest,
    CancelGameResponse,
    CreateGameRequest,
    CreateGameResponse,
    ErrorResponse,
    JoinGameRequest,
    JoinGameResponse,
    PayoutResponse,
    RoomResponse,
)
from riskr_backend.api.models.users import (
    ProfileResponse,
    UpdateUsernameRequest,
    UpdateUsernameResponse,
)

__all__ = [
    "CamelModel",
    "CancelGameRequest",
    "CancelGameResponse",
    "CreateGameRequest",
    "CreateGameResponse",
    "ErrorResponse",
    "JoinGameRequest",
    "JoinGameResponse",
    "PayoutResponse",
    "ProfileResponse",
    "RoomResponse",
    "UpdateUsernameRequest",
    "UpdateUsernameResponse",
]
