# recruitbot/core/states.py
from enum import Enum


class ConversationState(str, Enum):
    """Steps of the candidate intake flow. Values are what gets stored in the DB."""
    INITIAL = "initial"
    TERMS = "terms_acceptance"
    BASIC_DATA = "basic_data"
    HARD_FILTERS = "hard_filters"
    SALARY_EXPECTATION = "salary_expectation"
    LOCATION_INPUT = "location_input"
    STORE_LIST = "store_list"
    VACANCY_SELECTION = "vacancy_selection"
    SCREENING = "screening"
    INTERVIEW_SLOT = "interview_slot"
    CONFIRMATION_PENDING = "confirmation_pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    REJECTED = "rejected"
    ERROR = "error"


# Absorbing states: the conversation is deactivated once it lands here
TERMINAL_STATES = frozenset({ConversationState.COMPLETED, ConversationState.REJECTED})


class ActionType(str, Enum):
    REJECTED = "rejected"
    FIND_STORES = "find_stores"
    SCHEDULE_INTERVIEW = "schedule_interview"
    CONFIRM_INTERVIEW = "confirm_interview"
    CANCEL_INTERVIEW = "cancel_interview"
    COMPLETE_CONVERSATION = "complete_conversation"


class RejectionReason(str, Enum):
    TERMS_DECLINED = "terms_declined"
    UNDERAGE = "underage"
    AVAILABILITY_FILTER = "availability_filter"
    SALARY_EXPECTATION_HIGH = "salary_expectation_high"


class ShiftType(str, Enum):
    ROTATING = "rotating"
    CLOSING = "closing"
    MIXED = "mixed"


class CandidateStatus(str, Enum):
    IN_PROCESS = "in_process"
    INTERVIEW_SCHEDULED = "interview_scheduled"
    INTERVIEW_CONFIRMED = "interview_confirmed"


class InterviewStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
