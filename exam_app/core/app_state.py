"""Navigation state of the exam application as an explicit transition table."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class UserRole(str, Enum):
    NONE = "NONE"
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"


class ViewState(str, Enum):
    HOME = "HOME"
    ADMIN_DASHBOARD = "ADMIN_DASHBOARD"
    EXAM_EDITOR = "EXAM_EDITOR"
    STUDENT_DASHBOARD = "STUDENT_DASHBOARD"
    GATE_EXPLORER = "GATE_EXPLORER"
    EXAM_TAKER = "EXAM_TAKER"
    EXAM_RESULT = "EXAM_RESULT"


class AppEvent(str, Enum):
    ADMIN_LOGIN = "admin_login"
    STUDENT_ENTER = "student_enter"
    OPEN_DRAFT = "open_draft"
    CLOSE_EDITOR = "close_editor"
    OPEN_GATE_EXPLORER = "open_gate_explorer"
    LEAVE_GATE_EXPLORER = "leave_gate_explorer"
    START_EXAM = "start_exam"
    EXIT_EXAM = "exit_exam"
    FINISH_EXAM = "finish_exam"
    BACK_TO_DASHBOARD = "back_to_dashboard"
    LOGOUT = "logout"


# (current view, event) -> next view. Anything missing is an invalid move.
TRANSITIONS: dict[tuple[ViewState, AppEvent], ViewState] = {
    (ViewState.HOME, AppEvent.ADMIN_LOGIN): ViewState.ADMIN_DASHBOARD,
    (ViewState.HOME, AppEvent.STUDENT_ENTER): ViewState.STUDENT_DASHBOARD,
    (ViewState.ADMIN_DASHBOARD, AppEvent.OPEN_DRAFT): ViewState.EXAM_EDITOR,
    (ViewState.EXAM_EDITOR, AppEvent.CLOSE_EDITOR): ViewState.ADMIN_DASHBOARD,
    (ViewState.STUDENT_DASHBOARD, AppEvent.OPEN_GATE_EXPLORER): ViewState.GATE_EXPLORER,
    (ViewState.GATE_EXPLORER, AppEvent.LEAVE_GATE_EXPLORER): ViewState.STUDENT_DASHBOARD,
    (ViewState.STUDENT_DASHBOARD, AppEvent.START_EXAM): ViewState.EXAM_TAKER,
    (ViewState.GATE_EXPLORER, AppEvent.START_EXAM): ViewState.EXAM_TAKER,
    (ViewState.EXAM_TAKER, AppEvent.EXIT_EXAM): ViewState.STUDENT_DASHBOARD,
    (ViewState.EXAM_TAKER, AppEvent.FINISH_EXAM): ViewState.EXAM_RESULT,
    (ViewState.EXAM_RESULT, AppEvent.BACK_TO_DASHBOARD): ViewState.STUDENT_DASHBOARD,
}

_ROLE_AFTER_EVENT: dict[AppEvent, UserRole] = {
    AppEvent.ADMIN_LOGIN: UserRole.ADMIN,
    AppEvent.STUDENT_ENTER: UserRole.STUDENT,
    AppEvent.LOGOUT: UserRole.NONE,
}


@dataclass(slots=True, frozen=True)
class AppState:
    """Immutable snapshot of who is using the app and what they are looking at."""

    role: UserRole = UserRole.NONE
    view: ViewState = ViewState.HOME
    active_session_id: str | None = None
    draft_exam_id: str | None = None


def apply_event(
    state: AppState,
    event: AppEvent,
    *,
    session_id: str | None = None,
    draft_exam_id: str | None = None,
) -> AppState:
    """Return the state after `event`; raises ValueError for moves the table forbids."""
    if event is AppEvent.LOGOUT:
        return AppState()

    next_view = TRANSITIONS.get((state.view, event))
    if next_view is None:
        raise ValueError(f"Cannot {event.value} from {state.view.value}.")

    role = _ROLE_AFTER_EVENT.get(event, state.role)
    new_state = replace(state, role=role, view=next_view)
    if event is AppEvent.START_EXAM:
        new_state = replace(new_state, active_session_id=session_id)
    elif event in (AppEvent.EXIT_EXAM, AppEvent.FINISH_EXAM):
        new_state = replace(new_state, active_session_id=None)
    elif event is AppEvent.OPEN_DRAFT:
        new_state = replace(new_state, draft_exam_id=draft_exam_id)
    elif event is AppEvent.CLOSE_EDITOR:
        new_state = replace(new_state, draft_exam_id=None)
    return new_state
