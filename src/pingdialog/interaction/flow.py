"""One invocation end to end: short-circuits, singleton guard, dialog session."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from pingdialog.config import DialogConfig
from pingdialog.interaction.errors import DialogDisabledError
from pingdialog.interaction.response import DialogResponse
from pingdialog.interaction.session import (
    CountdownFactory,
    DialogPresenter,
    DialogSession,
    SessionEventSink,
    SnoozeWriter,
)
from pingdialog.interaction.types import DialogType, InputPayload
from pingdialog.kernel.notify import NotificationResult, send_notification
from pingdialog.kernel.singleton import SingletonGuard

Notifier = Callable[[str, Optional[str], bool], NotificationResult]


def run_prompt(
    payload: InputPayload,
    config: DialogConfig,
    presenter: DialogPresenter,
    *,
    guard: Optional[SingletonGuard] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
    accent: str = "",
    event_sink: Optional[SessionEventSink] = None,
    snooze_writer: Optional[SnoozeWriter] = None,
    countdown_factory: Optional[CountdownFactory] = None,
) -> DialogResponse:
    """Resolve one request to exactly one response.

    Raises `DialogDisabledError` or `AlreadyActiveError`; every other outcome,
    including cancellation by a termination signal, is a returned response.
    """

    def emit(event_type: str, data: dict) -> None:
        if event_sink is None:
            return
        try:
            event_sink(event_type, data)
        except Exception:
            return

    dialog_type = payload.resolved_type
    emit(
        "dialog.requested",
        {"dialog_type": dialog_type.value, "project": payload.project or ""},
    )

    snooze = config.snooze
    if snooze.is_active(now):
        remaining = snooze.remaining_seconds(now)
        emit("dialog.short_circuit", {"reason": "snoozed", "remaining_seconds": remaining})
        return DialogResponse.snoozed_response(remaining // 60, remaining)

    if not config.dialog.enabled:
        emit("dialog.short_circuit", {"reason": "disabled"})
        raise DialogDisabledError()

    if dialog_type is DialogType.NOTIFY:
        send = notifier or send_notification
        result = send(payload.message, payload.title, payload.sound)
        if not result.ok:
            emit("notification.failed", result.as_dict())
        emit("dialog.short_circuit", {"reason": "notify", "delivered": bool(result.ok)})
        return DialogResponse.notify_success()

    session = DialogSession(
        payload,
        config,
        presenter,
        accent=accent,
        countdown_factory=countdown_factory,
        snooze_writer=snooze_writer,
        event_sink=event_sink,
    )
    guard = guard if guard is not None else SingletonGuard()
    # A signal before arm() resolves the session, and arm() then does nothing.
    guard.on_signal = lambda signum: session.cancel(source="signal:{0}".format(signum))
    try:
        guard.acquire()
    except BaseException:
        guard.on_signal = None
        raise
    try:
        session.arm()
        return session.wait()
    finally:
        guard.on_signal = None
        guard.release()
