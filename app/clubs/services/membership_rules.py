"""Eligibility rules for club roles; pure functions, no database access."""
from datetime import date
from typing import Optional

from app.core.config import NO_UNIT_OFFICES
from app.core.exceptions import BusinessLogicError
from app.clubs.models.enums import ClubRole

ADULT_AGE = 18
MIN_COUNSELOR_AGE = 16

UNIT_REQUIRED_ROLES = frozenset(
    {ClubRole.CONSELHEIRO, ClubRole.INSTRUTOR, ClubRole.DESBRAVADOR}
)
BAPTISM_REQUIRED_ROLES = frozenset({ClubRole.DIRETORIA, ClubRole.CONSELHEIRO})


def compute_age(birth_date: date, today: date) -> int:
    """Whole years elapsed; a birthday not reached yet this year does not count"""
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def derive_effective_role(desired_role: ClubRole, age: int, baptized: bool) -> ClubRole:
    """Unbaptized adults may only serve as INSTRUTOR"""
    if not baptized and age >= ADULT_AGE:
        return ClubRole.INSTRUTOR
    return desired_role


def role_adjustment_message(desired_role: ClubRole, effective_role: ClubRole) -> Optional[str]:
    if desired_role == effective_role:
        return None
    return (
        f"Request adjusted to {effective_role.value}: applicants who are not "
        f"baptized and are {ADULT_AGE} or older can only join as {effective_role.value}"
    )


def check_unit_requirement(role: ClubRole, unit_id: Optional[int]) -> None:
    if role in UNIT_REQUIRED_ROLES and not unit_id:
        raise BusinessLogicError(
            f"Role {role.value} requires a unit",
            rule="unit_required",
            details={"role": role.value},
        )


def check_minimum_age(role: ClubRole, age: int) -> None:
    if role == ClubRole.CONSELHEIRO and age < MIN_COUNSELOR_AGE:
        raise BusinessLogicError(
            f"Role {role.value} requires a minimum age of {MIN_COUNSELOR_AGE}",
            rule="minimum_age",
            details={"role": role.value, "age": age, "minimum": MIN_COUNSELOR_AGE},
        )


def check_baptism(role: ClubRole, baptized: bool) -> None:
    if role in BAPTISM_REQUIRED_ROLES and not baptized:
        raise BusinessLogicError(
            f"Role {role.value} requires baptism",
            rule="baptism_required",
            details={"role": role.value},
        )


def apply_office_rule(
    role: ClubRole, specific_office: Optional[str], unit_id: Optional[int]
) -> Optional[int]:
    """
    Return the unit a DIRETORIA member ends up attached to.

    Offices such as Diretor or Secretário serve the whole club and drop the
    unit; every other DIRETORIA office must name one.
    """
    if role != ClubRole.DIRETORIA or not specific_office:
        return unit_id

    if specific_office in NO_UNIT_OFFICES:
        return None

    if not unit_id:
        raise BusinessLogicError(
            f"Office {specific_office} of DIRETORIA requires a unit",
            rule="office_requires_unit",
            details={"office": specific_office},
        )
    return unit_id


def check_not_admin_request(role: ClubRole) -> None:
    if role == ClubRole.ADMIN_CLUBE:
        raise BusinessLogicError(
            "ADMIN_CLUBE cannot be requested, it is only granted on approval",
            rule="admin_not_requestable",
        )


def check_request_rules(
    role: ClubRole, age: int, baptized: bool, unit_id: Optional[int]
) -> None:
    """Unit, age and baptism checks run on the effective role of a request"""
    check_unit_requirement(role, unit_id)
    check_minimum_age(role, age)
    check_baptism(role, baptized)
