"""Single-shot dialog session with first-trigger-wins resolution."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from pingdialog.config import DialogConfig, record_snooze
from pingdialog.interaction.response import DialogResponse, ResponseKind, ResponseValue
from pingdialog.interaction.types import DialogType, InputPayload, PresentationRequest

SessionEventSink = Callable[[str, Dict[str, Any]], None]
SnoozeWriter = Callable[[int], object]


class Countdown(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


CountdownFactory = Callable[[float, Callable[[], None]], Countdown]


class DialogPresenter(Protocol):
    """Presentation collaborator: renders a request and calls back exactly once."""

    def present(self, request: PresentationRequest, session: "DialogSession") -> None: ...

    def teardown(self) -> None: ...


class SessionState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"
    RESOLVED = "resolved"


def _thread_countdown(seconds: float, callback: Callable[[], None]) -> Countdown:
    timer = threading.Timer(seconds, callback)
    timer.daemon = True
    return timer


class DialogSession:
    """Owns one response slot that goes from empty to filled exactly once.

    The countdown, the presenter and signal handlers may all call the
    trigger methods from different threads; the first call to fill the slot
    wins and every later call returns False.
    """

    def __init__(
        self,
        payload: InputPayload,
        config: DialogConfig,
        presenter: DialogPresenter,
        *,
        accent: str = "",
        countdown_factory: Optional[CountdownFactory] = None,
        snooze_writer: Optional[SnoozeWriter] = None,
        event_sink: Optional[SessionEventSink] = None,
    ) -> None:
        self._presenter = presenter
        self._request = PresentationRequest.from_payload(payload, config, accent=accent)
        self._countdown_factory = countdown_factory or _thread_countdown
        self._snooze_writer = snooze_writer if snooze_writer is not None else record_snooze
        self._event_sink = event_sink
        self._lock = threading.RLock()
        self._condition = threading.Condition(self._lock)
        self._state = SessionState.IDLE
        self._response: Optional[DialogResponse] = None
        self._trigger = ""
        self._countdown: Optional[Countdown] = None

    @property
    def request(self) -> PresentationRequest:
        return self._request

    @property
    def timeout_seconds(self) -> int:
        return self._request.timeout_seconds

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def response(self) -> Optional[DialogResponse]:
        with self._lock:
            return self._response

    @property
    def trigger(self) -> str:
        with self._lock:
            return self._trigger

    def arm(self) -> None:
        """Start the countdown and hand the request to the presenter.

        Does nothing when the session was already resolved before arming.
        """

        with self._lock:
            if self._state is SessionState.RESOLVED:
                return
            if self._state is SessionState.ARMED:
                raise RuntimeError("dialog session is already armed")
            self._state = SessionState.ARMED
            countdown = self._countdown_factory(float(self.timeout_seconds), self.expire)
            self._countdown = countdown
            countdown.start()

        self._emit(
            "dialog.armed",
            {
                "dialog_type": self._request.dialog_type.value,
                "timeout_seconds": self.timeout_seconds,
                "option_count": len(self._request.options),
                "question_count": len(self._request.questions),
            },
        )
        self._presenter.present(self._request, self)

    def expire(self) -> bool:
        return self._resolve(DialogResponse.timed_out(self.timeout_seconds), trigger="timeout", source="countdown")

    def submit(
        self,
        value: ResponseValue,
        *,
        comment: Optional[str] = None,
        completed_count: Optional[int] = None,
        source: str = "presenter",
    ) -> bool:
        response = DialogResponse.answer(value, comment=comment, completed_count=completed_count)
        return self._resolve(response, trigger="answer", source=source)

    def cancel(self, source: str = "presenter") -> bool:
        return self._resolve(DialogResponse.cancelled_response(), trigger="cancel", source=source)

    def snooze(self, minutes: int, source: str = "presenter") -> bool:
        minutes = int(minutes)
        if minutes <= 0:
            self._emit_rejected("snooze", source, "invalid_minutes")
            return False

        def persist() -> None:
            try:
                self._snooze_writer(minutes)
            except Exception as exc:
                self._emit("dialog.snooze_persist_failed", {"minutes": minutes, "error": str(exc)})

        response = DialogResponse.snoozed_response(minutes, minutes * 60)
        return self._resolve(response, trigger="snooze", source=source, side_effect=persist)

    def feedback(self, text: str, source: str = "presenter") -> bool:
        normalized = str(text or "").strip()
        if not normalized:
            self._emit_rejected("feedback", source, "empty_feedback")
            return False
        return self._resolve(DialogResponse.feedback_response(normalized), trigger="feedback", source=source)

    def wait(self, poll_interval: float = 0.2) -> DialogResponse:
        """Block until a trigger resolves the session."""

        with self._condition:
            while self._response is None:
                self._condition.wait(timeout=poll_interval)
            return self._response

    def _resolve(
        self,
        response: DialogResponse,
        *,
        trigger: str,
        source: str,
        side_effect: Optional[Callable[[], None]] = None,
    ) -> bool:
        # Claiming the slot and publishing the response are split so that
        # wait() only returns once the winner's side effects are done.
        with self._lock:
            if self._state is SessionState.RESOLVED:
                claimed = False
                countdown = None
            else:
                claimed = True
                self._state = SessionState.RESOLVED
                self._trigger = trigger
                countdown = self._countdown
                self._countdown = None

        if not claimed:
            self._emit_rejected(trigger, source, "already_resolved")
            return False

        # Once claimed, the response is always published.
        try:
            if countdown is not None:
                countdown.cancel()
            if side_effect is not None:
                side_effect()
            try:
                self._presenter.teardown()
            except Exception as exc:
                self._emit("dialog.teardown_failed", {"error": str(exc)})

            payload: Dict[str, Any] = {
                "trigger": trigger,
                "source": source,
                "kind": response.kind.value,
            }
            if response.kind is ResponseKind.ANSWER and not self._has_secret_input():
                payload["response"] = response.to_wire().get("response")
            self._emit("dialog.resolved", payload)
        finally:
            with self._condition:
                self._response = response
                self._condition.notify_all()
        return True

    def _has_secret_input(self) -> bool:
        # Secure text answers never reach the debug log.
        if self._request.dialog_type is DialogType.SECURE_TEXT:
            return True
        return any(q.question_type is DialogType.SECURE_TEXT for q in self._request.questions)

    def _emit_rejected(self, trigger: str, source: str, reason: str) -> None:
        self._emit(
            "dialog.trigger_rejected",
            {"trigger": trigger, "source": source, "reason": reason},
        )

    def _emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self._event_sink is None:
            return
        try:
            self._event_sink(event_type, dict(payload))
        except Exception:
            return
