from __future__ import annotations

from dataclasses import dataclass, field

from .models import Mode
from .review_cache import ReviewCache


@dataclass
class SessionMemory:
    """State that outlives a single open menu.

    Owned by whoever constructs the menu (the application), so independent
    instances never share it.

    Attributes:
        last_selected_path: Path of the file row the cursor last rested on.
        last_mode: Mode the menu was in when last used.
        review_cache: Cached pull request files with their viewed state.
    """

    last_selected_path: str | None = None
    last_mode: Mode = Mode.STATUS
    review_cache: ReviewCache = field(default_factory=ReviewCache)
