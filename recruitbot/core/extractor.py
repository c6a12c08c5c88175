# recruitbot/core/extractor.py
import re
import logging
import datetime
from typing import Any, Dict, Iterable, Optional

from recruitbot.core.schemas import CandidateData
from recruitbot.core.states import ConversationState
from recruitbot.services.validator import calculate_age

logger = logging.getLogger(__name__)

# --- Keyword sets ---

TERMS_YES = ["sí", "si", "acepto", "ok", "dale", "claro", "yes", "confirmo"]
TERMS_NO = ["no acepto", "rechazo"]

FILTER_YES = ["sí", "si", "ok", "dale", "claro", "yes", "puedo", "tengo"]
FILTER_NO = ["no", "no puedo", "no tengo"]

CONFIRM_YES = ["sí", "si", "confirmo", "asistiré", "asistire"]
CONFIRM_NO = ["cancelar", "reprogramar"]

# --- Patterns ---

BIRTH_DATE_PATTERN = re.compile(r"\b(\d{1,2})[/\-. ](\d{1,2})[/\-. ](\d{4})\b")
NATIONAL_ID_PATTERN = re.compile(r"\b\d{8,9}\b")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
SELECTION_PATTERN = re.compile(r"\b([1-9])\b")
SALARY_PATTERN = re.compile(r"(?:s/\s*)?\b(\d{1,3}(?:,\d{3})+|\d{3,5})\b", re.IGNORECASE)
BARE_NO_PATTERN = re.compile(r"\bno\b")

MIN_SALARY, MAX_SALARY = 500, 10000
MIN_BIRTH_YEAR, MAX_BIRTH_YEAR = 1950, 2010


def contains_any(text: str, words: Iterable[str]) -> bool:
    return any(w in text for w in words)


def starts_with_any(text: str, words: Iterable[str]) -> bool:
    """Whole message equal to a word, or the word followed by a space ("no puedo ...")."""
    return any(text == w or text.startswith(w + " ") for w in words)


def is_terms_declined(text: str) -> bool:
    return contains_any(text, TERMS_NO) or bool(BARE_NO_PATTERN.search(text))


def is_confirmation_declined(text: str) -> bool:
    return contains_any(text, CONFIRM_NO) or bool(BARE_NO_PATTERN.search(text))


def yes_no(text: str, yes_words, no_check) -> Optional[bool]:
    """Negative answers take precedence: 'no acepto' contains 'acepto' but is a refusal."""
    if no_check(text):
        return False
    if contains_any(text, yes_words):
        return True
    return None


def _parse_birth_date(message: str, today: Optional[datetime.date]) -> Dict[str, Any]:
    match = BIRTH_DATE_PATTERN.search(message)
    if not match:
        return {}

    day, month, year = (int(g) for g in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12 and MIN_BIRTH_YEAR <= year <= MAX_BIRTH_YEAR):
        return {}
    try:
        birth = datetime.date(year, month, day)
    except ValueError:
        return {}

    age = calculate_age(birth, today)
    birth_str = f"{day:02d}/{month:02d}/{year}"
    logger.info(f"📅 Birth date extracted: {birth_str} ({age} years)")
    return {"birth_date": birth_str, "age": age}


def _parse_salary(message: str) -> Optional[int]:
    match = SALARY_PATTERN.search(message)
    if not match:
        return None
    salary = int(match.group(1).replace(",", ""))
    if MIN_SALARY <= salary <= MAX_SALARY:
        return salary
    return None


def _parse_selection(message: str) -> Optional[int]:
    match = SELECTION_PATTERN.search(message)
    return int(match.group(1)) if match else None


def extract_data(message: str, existing: CandidateData, state: ConversationState,
                 today: Optional[datetime.date] = None) -> Dict[str, Any]:
    """
    Pulls structured fields out of a free-text message.

    Only fields that matter in `state` are looked at, and only if they are
    still empty in `existing`. Selections (store, vacancy, slot) are re-read
    every turn in their own state. Returns just the newly found fields.
    """
    extracted: Dict[str, Any] = {}
    text = message or ""
    lower = text.lower().strip()

    if state in (ConversationState.INITIAL, ConversationState.TERMS) and existing.terms_accepted is None:
        accepted = yes_no(lower, TERMS_YES, is_terms_declined)
        # Refusals only count once the terms have been shown
        if accepted or (accepted is False and state == ConversationState.TERMS):
            extracted["terms_accepted"] = accepted

    if state == ConversationState.HARD_FILTERS:
        # "No, tengo otro trabajo" must read as a refusal, so punctuation is dropped first
        bare = re.sub(r"[^\w\s]", "", lower).strip()
        answer = yes_no(bare, FILTER_YES, lambda t: starts_with_any(t, FILTER_NO))
        if answer is not None:
            if existing.rotating_shifts is None:
                extracted["rotating_shifts"] = answer
            elif existing.closing_shifts_available is None:
                extracted["closing_shifts_available"] = answer

    if state == ConversationState.BASIC_DATA:
        stripped = text.strip()
        if existing.name is None and not re.search(r"\d", text) and 3 < len(stripped) < 60:
            extracted["name"] = stripped

        if existing.birth_date is None:
            extracted.update(_parse_birth_date(text, today))

        if existing.national_id is None:
            id_match = NATIONAL_ID_PATTERN.search(text)
            if id_match:
                extracted["national_id"] = id_match.group(0)

        if existing.email is None:
            email_match = EMAIL_PATTERN.search(text)
            if email_match:
                extracted["email"] = email_match.group(0).lower()

    if state == ConversationState.SALARY_EXPECTATION and existing.salary_expectation is None:
        salary = _parse_salary(text)
        if salary is not None:
            logger.info(f"💰 Salary expectation extracted: S/{salary}")
            extracted["salary_expectation"] = salary

    if state == ConversationState.LOCATION_INPUT and existing.district is None and text.strip():
        # Geocoding happens later, in the store matcher
        extracted["district"] = text.strip()

    selection_fields = {
        ConversationState.STORE_LIST: "store_selection",
        ConversationState.VACANCY_SELECTION: "vacancy_selection",
        ConversationState.INTERVIEW_SLOT: "slot_selection",
    }
    if state in selection_fields:
        selection = _parse_selection(text)
        if selection is not None:
            extracted[selection_fields[state]] = selection

    return extracted
