from __future__ import annotations

from ..utils.time import format_age


class StatusManager:
    """Manages the status line under the menu panel."""

    def __init__(self, app) -> None:
        """Initialize with reference to the main app."""
        self.app = app

    def status_text(self) -> str:
        """Compose mode, counts, review cache age and any pending chord."""
        controller = self.app.controller
        parts = [controller.mode.title.strip()]
        counts = controller.counts_text()
        if counts:
            parts.append(counts)
        scope = controller.review_scope()
        if scope is not None:
            cache = controller.memory.review_cache
            if cache.is_loading(scope):
                parts.append("Refreshing…")
            else:
                parts.append(f"fetched {format_age(cache.age(scope))}")
        pending = self.app._event_handler.pending_chord
        if pending:
            parts.append(f"{pending}…")
        return " • ".join(parts)

    def update_status_label(self) -> None:
        self.app._status.update(self.status_text())
