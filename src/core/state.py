from __future__ import annotations
from dataclasses import dataclass
from PySide6.QtCore import QObject, Signal, Slot

@dataclass(frozen=True)
class Notify:
    message: str
    notify_type: str = "info"   # info/success/warn/error

class AppState(QObject):
    """Shared handles for one run: database, transport and the user-facing message channel."""

    notification = Signal(object)   # emits Notify
    status_changed = Signal(str)    # "Loop 1 of 2 • 1.00x Speed", "Region Loop 3 (Infinite) • ..."

    def __init__(self, db=None):
        super().__init__()
        self.app_data_dir: str | None = None
        self.db_path: str | None = None
        self.db = db
        self.player = None
        # raised before anyone listens (e.g. transport init), delivered by flush_notifications
        self.queued_notifications: list[Notify] = []

    @Slot(str, str)
    def notify(self, message: str, notify_type: str = "info"):
        self.notification.emit(Notify(message=message, notify_type=notify_type))

    def flush_notifications(self) -> int:
        pending, self.queued_notifications = self.queued_notifications, []
        for n in pending:
            self.notification.emit(n)
        return len(pending)
