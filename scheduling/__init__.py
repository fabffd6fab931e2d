from .errors import (
    AuthorizationError,
    ConflictError,
    InternalError,
    InvalidTransitionError,
    NotFoundError,
    SchedulingError,
    ValidationError,
)
from .engine import EngineSettings, SchedulingEngine
from .repository import BookingFilter, SchedulingRepository
