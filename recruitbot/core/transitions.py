# recruitbot/core/transitions.py
"""
Pure state machine of the intake flow.

determine_next_state() only looks at the current state, the candidate data
(already merged with what was extracted from this turn's message) and the raw
message. It performs no I/O, so replaying the same inputs always gives the same
transition.
"""
from typing import Callable, Dict

from recruitbot.core.extractor import CONFIRM_YES, contains_any, is_confirmation_declined
from recruitbot.core.schemas import Action, CandidateData, Transition
from recruitbot.core.states import ActionType, ConversationState as S, RejectionReason

DEFAULT_MAX_SALARY = 1200
SALARY_TOLERANCE = 0.2


def _stay(state: S) -> Transition:
    return Transition(new_state=state)


def _reject(reason: RejectionReason, category: str = None, **details) -> Transition:
    return Transition(
        new_state=S.REJECTED,
        actions=[Action(type=ActionType.REJECTED, reason=reason.value, category=category, details=details)],
    )


def _from_initial(data, message, ctx):
    return Transition(new_state=S.TERMS)


def _from_terms(data, message, ctx):
    if data.terms_accepted is True:
        return Transition(new_state=S.BASIC_DATA)
    if data.terms_accepted is False:
        return _reject(RejectionReason.TERMS_DECLINED)
    return _stay(S.TERMS)


def _from_basic_data(data, message, ctx):
    if data.age is not None and data.age < 18:
        return _reject(RejectionReason.UNDERAGE)
    if data.name and data.age and data.national_id and data.email:
        return Transition(new_state=S.HARD_FILTERS)
    return _stay(S.BASIC_DATA)


def _from_hard_filters(data, message, ctx):
    if data.rotating_shifts is False or data.closing_shifts_available is False:
        return _reject(RejectionReason.AVAILABILITY_FILTER, category="availability")
    if data.rotating_shifts is True and data.closing_shifts_available is True:
        return Transition(new_state=S.SALARY_EXPECTATION)
    # Still waiting for the second answer
    return _stay(S.HARD_FILTERS)


def _from_salary(data, message, ctx):
    if not data.salary_expectation:
        return _stay(S.SALARY_EXPECTATION)

    max_salary = data.position_max_salary or ctx["default_max_salary"]
    threshold = max_salary * (1 + ctx["salary_tolerance"])
    if data.salary_expectation > threshold:
        return _reject(
            RejectionReason.SALARY_EXPECTATION_HIGH,
            category="salary",
            expected=data.salary_expectation,
            max_allowed=threshold,
        )
    return Transition(new_state=S.LOCATION_INPUT)


def _from_location(data, message, ctx):
    if data.district:
        return Transition(new_state=S.STORE_LIST, actions=[Action(type=ActionType.FIND_STORES)])
    return _stay(S.LOCATION_INPUT)


def _from_store_list(data, message, ctx):
    if data.store_selection:
        return Transition(new_state=S.VACANCY_SELECTION)
    return _stay(S.STORE_LIST)


def _from_vacancy_selection(data, message, ctx):
    return Transition(new_state=S.SCREENING)


def _from_screening(data, message, ctx):
    return Transition(new_state=S.INTERVIEW_SLOT)


def _from_interview_slot(data, message, ctx):
    return Transition(new_state=S.CONFIRMED, actions=[Action(type=ActionType.SCHEDULE_INTERVIEW)])


def _from_confirmation_pending(data, message, ctx):
    text = (message or "").lower()
    # A reschedule request wins over a stray "si" in the same message
    if is_confirmation_declined(text):
        return Transition(new_state=S.COMPLETED, actions=[Action(type=ActionType.CANCEL_INTERVIEW)])
    if contains_any(text, CONFIRM_YES):
        return Transition(new_state=S.COMPLETED, actions=[Action(type=ActionType.CONFIRM_INTERVIEW)])
    return _stay(S.CONFIRMATION_PENDING)


def _from_confirmed(data, message, ctx):
    return Transition(new_state=S.COMPLETED, actions=[Action(type=ActionType.COMPLETE_CONVERSATION)])


def _terminal(state: S):
    return lambda data, message, ctx: _stay(state)


def _from_error(data, message, ctx):
    return Transition(new_state=S.INITIAL)


Handler = Callable[[CandidateData, str, dict], Transition]

TRANSITIONS: Dict[S, Handler] = {
    S.INITIAL: _from_initial,
    S.TERMS: _from_terms,
    S.BASIC_DATA: _from_basic_data,
    S.HARD_FILTERS: _from_hard_filters,
    S.SALARY_EXPECTATION: _from_salary,
    S.LOCATION_INPUT: _from_location,
    S.STORE_LIST: _from_store_list,
    S.VACANCY_SELECTION: _from_vacancy_selection,
    S.SCREENING: _from_screening,
    S.INTERVIEW_SLOT: _from_interview_slot,
    S.CONFIRMATION_PENDING: _from_confirmation_pending,
    S.CONFIRMED: _from_confirmed,
    S.COMPLETED: _terminal(S.COMPLETED),
    S.REJECTED: _terminal(S.REJECTED),
    S.ERROR: _from_error,
}

_missing = set(S) - set(TRANSITIONS)
if _missing:
    raise RuntimeError(f"No transition handler for states: {sorted(s.value for s in _missing)}")


def determine_next_state(state: S, data: CandidateData, message: str,
                         default_max_salary: int = DEFAULT_MAX_SALARY,
                         salary_tolerance: float = SALARY_TOLERANCE) -> Transition:
    ctx = {"default_max_salary": default_max_salary, "salary_tolerance": salary_tolerance}
    return TRANSITIONS[S(state)](data, message, ctx)
