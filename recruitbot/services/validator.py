# recruitbot/services/validator.py
import re
import logging
import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from recruitbot.core.states import ShiftType

logger = logging.getLogger(__name__)

MIN_AGE = 18
MAX_AGE = 60

NAME_PATTERN = re.compile(r"^[a-zA-ZáéíóúüñÁÉÍÓÚÜÑ\s]+$")
VALID_SHIFTS = [s.value for s in ShiftType]


class ValidationResult(BaseModel):
    """Outcome of a single field check. `value` carries the normalized field."""
    valid: bool
    message: Optional[str] = None
    value: Any = None
    age: Optional[int] = None


class CandidateValidation(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    data: Optional[Dict[str, Any]] = None


def _digits(value) -> str:
    return re.sub(r"\D", "", str(value))


def calculate_age(birth: datetime.date, today: Optional[datetime.date] = None) -> int:
    """Full years, minus one when this year's birthday hasn't happened yet."""
    today = today or datetime.date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def parse_birth_date(value: Union[str, datetime.date, datetime.datetime, None]) -> Optional[datetime.date]:
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    text = str(value).strip()
    for fmt in ("%d/%m/%Y", "%Y-%m-%d", "%d-%m-%Y"):
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.datetime.fromisoformat(text).date()
    except ValueError:
        return None


def validate_national_id(national_id) -> ValidationResult:
    if not national_id:
        return ValidationResult(valid=False, message="DNI es requerido")

    clean = _digits(national_id)
    if len(clean) != 8:
        return ValidationResult(valid=False, message="DNI debe tener 8 dígitos")
    # Separators like spaces or dashes are dropped above, letters are not tolerated
    if re.search(r"[^\d\s.\-]", str(national_id)):
        return ValidationResult(valid=False, message="DNI debe contener solo números")

    return ValidationResult(valid=True, value=clean)


def validate_age(birth_date, today: Optional[datetime.date] = None) -> ValidationResult:
    if not birth_date:
        return ValidationResult(valid=False, message="Fecha de nacimiento es requerida")

    birth = parse_birth_date(birth_date)
    if birth is None:
        return ValidationResult(valid=False, message="Fecha de nacimiento inválida")

    age = calculate_age(birth, today)
    if age < MIN_AGE:
        return ValidationResult(valid=False, age=age, message=f"Debes ser mayor de {MIN_AGE} años")
    if age > MAX_AGE:
        return ValidationResult(valid=False, age=age, message=f"La edad máxima para postular es {MAX_AGE} años")

    return ValidationResult(valid=True, age=age, value=birth)


def is_shift_compatible(availability, required_shift) -> bool:
    """A 'mixed' vacancy takes anyone; a 'mixed' candidate fits any vacancy."""
    availability = str(getattr(availability, "value", availability)).lower().strip()
    required = str(getattr(required_shift, "value", required_shift)).lower().strip()
    return required == ShiftType.MIXED.value or availability == ShiftType.MIXED.value or availability == required


def validate_shift_availability(availability, required_shift) -> ValidationResult:
    if not availability:
        return ValidationResult(valid=False, message="Disponibilidad de turno es requerida")

    normalized = str(getattr(availability, "value", availability)).lower().strip()
    if normalized not in VALID_SHIFTS:
        return ValidationResult(valid=False, message=f"Disponibilidad debe ser: {', '.join(VALID_SHIFTS)}")

    if not is_shift_compatible(normalized, required_shift):
        required = getattr(required_shift, "value", required_shift)
        return ValidationResult(valid=False, message=f"Esta vacante requiere disponibilidad para turnos {required}")

    return ValidationResult(valid=True, value=normalized)


def validate_phone(phone) -> ValidationResult:
    if not phone:
        return ValidationResult(valid=False, message="Teléfono es requerido")

    clean = _digits(phone)
    # Peruvian mobiles: 9 digits starting with 9
    if len(clean) != 9:
        return ValidationResult(valid=False, message="Teléfono debe tener 9 dígitos")
    if not clean.startswith("9"):
        return ValidationResult(valid=False, message="Teléfono móvil debe empezar con 9")

    return ValidationResult(valid=True, value=clean)


def validate_name(name) -> ValidationResult:
    if not name:
        return ValidationResult(valid=False, message="Nombre completo es requerido")

    trimmed = str(name).strip()
    if len(trimmed) < 3:
        return ValidationResult(valid=False, message="Nombre debe tener al menos 3 caracteres")
    if len(trimmed.split()) < 2:
        return ValidationResult(valid=False, message="Debes ingresar nombre y apellido")
    if not NAME_PATTERN.match(trimmed):
        return ValidationResult(valid=False, message="Nombre debe contener solo letras")

    return ValidationResult(valid=True, value=trimmed)


def validate_candidate(candidate: Dict[str, Any], tenant_id: str,
                       today: Optional[datetime.date] = None) -> CandidateValidation:
    """Runs every field check and reports all failures at once."""
    errors: List[str] = []
    data: Dict[str, Any] = {"tenant_id": tenant_id}

    name_result = validate_name(candidate.get("name"))
    if name_result.valid:
        data["name"] = name_result.value
    else:
        errors.append(name_result.message)

    id_result = validate_national_id(candidate.get("national_id"))
    if id_result.valid:
        data["national_id"] = id_result.value
    else:
        errors.append(id_result.message)

    phone_result = validate_phone(candidate.get("phone"))
    if phone_result.valid:
        data["phone"] = phone_result.value
    else:
        errors.append(phone_result.message)

    age_result = validate_age(candidate.get("birth_date"), today)
    if age_result.valid:
        data["age"] = age_result.age
        data["birth_date"] = age_result.value
    else:
        errors.append(age_result.message)

    if candidate.get("district"):
        data["district"] = str(candidate["district"]).strip()
    if candidate.get("availability"):
        data["availability"] = str(candidate["availability"]).lower().strip()

    valid = not errors
    if valid:
        logger.info(f"✅ Candidate validation passed ({tenant_id})")
    else:
        logger.warning(f"⚠️ Candidate validation failed ({tenant_id}): {errors}")

    return CandidateValidation(valid=valid, errors=errors, data=data if valid else None)
