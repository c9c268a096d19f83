from .controller import Action, Confirmed, MenuController
from .jobs import AsyncioJobRunner
from .memory import SessionMemory
from .models import ChangeKind, Mode, Record, Review, Section, StatusSnapshot
from .review_cache import ReviewCache

__all__ = [
    "Action",
    "AsyncioJobRunner",
    "ChangeKind",
    "Confirmed",
    "MenuController",
    "Mode",
    "Record",
    "Review",
    "ReviewCache",
    "Section",
    "SessionMemory",
    "StatusSnapshot",
]
