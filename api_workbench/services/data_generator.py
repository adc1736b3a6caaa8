"""
Fake-data generation for dynamic variables.

Each `DynamicVariable` names a generator type and optional constraints;
`generate_value` produces a fresh string every time it is called. A
``custom`` generator with a ``pattern`` fills it in (``#`` a digit, ``?`` a
letter). Generation never raises: a failure becomes an ``[Error: ...]``
marker in the resolved text so the request can still be sent and inspected.
"""

import logging
import random
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation

from faker import Faker

from ..schemas.variables import (
    ConstraintRule,
    ConstraintType,
    DataGeneratorType,
    DynamicVariable,
)


logger = logging.getLogger(__name__)

_faker = Faker()

DATE_FORMAT = "%Y-%m-%d"

# Offsets applied, in this order, to "now" for the date-based generators
_OFFSET_UNITS = {
    ConstraintType.DAYS_OFFSET: "days",
    ConstraintType.HOURS_OFFSET: "hours",
    ConstraintType.MINUTES_OFFSET: "minutes",
    ConstraintType.SECONDS_OFFSET: "seconds",
}

_TEXT_GENERATORS = {
    DataGeneratorType.WORD,
    DataGeneratorType.SENTENCE,
    DataGeneratorType.PARAGRAPH,
    DataGeneratorType.CUSTOM,
}


def _constraint(constraints: list[ConstraintRule], kind: ConstraintType) -> str | None:
    for rule in constraints:
        if rule.type == kind and rule.value != "":
            return rule.value
    return None


def _int_constraint(constraints: list[ConstraintRule], kind: ConstraintType) -> int | None:
    value = _constraint(constraints, kind)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _decimal_constraint(constraints: list[ConstraintRule], kind: ConstraintType) -> Decimal | None:
    value = _constraint(constraints, kind)
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation:
        return None


def _date_constraint(constraints: list[ConstraintRule], kind: ConstraintType) -> date | None:
    value = _constraint(constraints, kind)
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def _has_offsets(constraints: list[ConstraintRule]) -> bool:
    return any(rule.type in _OFFSET_UNITS for rule in constraints)


def _apply_offsets(base: datetime, constraints: list[ConstraintRule]) -> datetime:
    for kind, unit in _OFFSET_UNITS.items():
        amount = _int_constraint(constraints, kind)
        if amount:
            base += timedelta(**{unit: amount})
    return base


def _generate_integer(constraints: list[ConstraintRule]) -> str:
    minimum = _int_constraint(constraints, ConstraintType.MINIMUM)
    maximum = _int_constraint(constraints, ConstraintType.MAXIMUM)
    if minimum is None and maximum is None:
        return str(random.randint(0, 1_000_000))
    if minimum is None:
        minimum = maximum - 1_000_000
    if maximum is None or minimum >= maximum:
        maximum = minimum + 1000
    return str(random.randint(minimum, maximum))


def _generate_decimal(constraints: list[ConstraintRule]) -> str:
    minimum = _decimal_constraint(constraints, ConstraintType.MINIMUM)
    maximum = _decimal_constraint(constraints, ConstraintType.MAXIMUM)
    if minimum is None:
        minimum = Decimal(0)
    if maximum is None:
        maximum = Decimal(1_000_000)
    if minimum >= maximum:
        maximum = minimum + 1000
    value = random.uniform(float(minimum), float(maximum))
    return f"{value:.2f}"


def _generate_date(constraints: list[ConstraintRule]) -> str:
    if _has_offsets(constraints):
        return _apply_offsets(datetime.now(), constraints).strftime(DATE_FORMAT)

    start = _date_constraint(constraints, ConstraintType.MINIMUM_DATE)
    end = _date_constraint(constraints, ConstraintType.MAXIMUM_DATE)

    # Ages bound a birth date: older than minimum_age, younger than maximum_age
    today = date.today()
    max_age = _int_constraint(constraints, ConstraintType.MAXIMUM_AGE)
    min_age = _int_constraint(constraints, ConstraintType.MINIMUM_AGE)
    if max_age is not None:
        start = today.replace(year=today.year - max_age)
    if min_age is not None:
        end = today.replace(year=today.year - min_age) - timedelta(days=1)

    if start is None and end is None:
        return _faker.date_between(start_date="-30y", end_date="today").strftime(DATE_FORMAT)
    if start is None:
        start = today.replace(year=today.year - 100)
    if end is None:
        end = today
    if start > end:
        start, end = end, start
    return _faker.date_between_dates(date_start=start, date_end=end).strftime(DATE_FORMAT)


def _generate_relative_date(constraints: list[ConstraintRule], future: bool) -> str:
    if _has_offsets(constraints):
        return _apply_offsets(datetime.now(), constraints).strftime(DATE_FORMAT)
    generated = _faker.future_date() if future else _faker.past_date()
    return generated.strftime(DATE_FORMAT)


def _generate_datetime(constraints: list[ConstraintRule]) -> str:
    value = _apply_offsets(datetime.now(), constraints)
    fmt = _constraint(constraints, ConstraintType.FORMAT)
    if fmt:
        return value.strftime(fmt)
    return value.isoformat(timespec="seconds")


def _fit_length(text: str, constraints: list[ConstraintRule]) -> str:
    min_length = _int_constraint(constraints, ConstraintType.MIN_LENGTH)
    max_length = _int_constraint(constraints, ConstraintType.MAX_LENGTH)
    if min_length is not None:
        while len(text) < min_length:
            text = f"{text} {_faker.word()}"
    if max_length is not None and max_length >= 0:
        text = text[:max_length]
    return text


def _is_patterned(dynamic_variable: DynamicVariable) -> bool:
    return (
        dynamic_variable.generator_type == DataGeneratorType.CUSTOM
        and _constraint(dynamic_variable.constraints, ConstraintType.PATTERN) is not None
    )


def _generate_raw(dynamic_variable: DynamicVariable) -> str:
    kind = dynamic_variable.generator_type
    constraints = dynamic_variable.constraints

    match kind:
        case DataGeneratorType.FIRST_NAME:
            return _faker.first_name()
        case DataGeneratorType.LAST_NAME:
            return _faker.last_name()
        case DataGeneratorType.FULL_NAME:
            return _faker.name()
        case DataGeneratorType.EMAIL:
            return _faker.email()
        case DataGeneratorType.PHONE_NUMBER:
            return _faker.phone_number()
        case DataGeneratorType.USERNAME:
            return _faker.user_name()
        case DataGeneratorType.INTEGER:
            return _generate_integer(constraints)
        case DataGeneratorType.DECIMAL:
            return _generate_decimal(constraints)
        case DataGeneratorType.DATE:
            return _generate_date(constraints)
        case DataGeneratorType.DATE_PAST:
            return _generate_relative_date(constraints, future=False)
        case DataGeneratorType.DATE_FUTURE:
            return _generate_relative_date(constraints, future=True)
        case DataGeneratorType.DATETIME:
            return _generate_datetime(constraints)
        case DataGeneratorType.CUSTOM:
            pattern = _constraint(constraints, ConstraintType.PATTERN)
            return _faker.bothify(pattern) if pattern else _faker.word()
        case DataGeneratorType.WORD:
            return _faker.word()
        case DataGeneratorType.SENTENCE:
            return _faker.sentence()
        case DataGeneratorType.PARAGRAPH:
            return _faker.paragraph()
        case DataGeneratorType.URL:
            return _faker.url()
        case DataGeneratorType.IP_ADDRESS:
            return _faker.ipv4()
        case DataGeneratorType.MAC_ADDRESS:
            return _faker.mac_address()
        case DataGeneratorType.GUID | DataGeneratorType.UUID:
            return str(uuid.uuid4())
        case DataGeneratorType.CREDIT_CARD_NUMBER:
            return _faker.credit_card_number()
        case DataGeneratorType.CURRENCY_CODE:
            return _faker.currency_code()
        case DataGeneratorType.AMOUNT:
            return f"{_faker.pyfloat(min_value=0, max_value=1000, right_digits=2):.2f}"
        case DataGeneratorType.STREET_ADDRESS:
            return _faker.street_address()
        case DataGeneratorType.CITY:
            return _faker.city()
        case DataGeneratorType.COUNTRY:
            return _faker.country()
        case DataGeneratorType.ZIP_CODE:
            return _faker.postcode()
        case DataGeneratorType.BOOLEAN:
            return "true" if _faker.pybool() else "false"
    return _faker.word()


def generate_value(dynamic_variable: DynamicVariable) -> str:
    """
    Generate a fresh value for a dynamic variable.

    Args:
        dynamic_variable: Generator definition with its constraints

    Returns:
        The generated value, or ``"[Error: <message>]"`` when generation failed
    """
    try:
        value = _generate_raw(dynamic_variable)
        if dynamic_variable.generator_type in _TEXT_GENERATORS and not _is_patterned(dynamic_variable):
            value = _fit_length(value, dynamic_variable.constraints)
        return value
    except Exception as e:
        logger.warning("Failed to generate value for %s: %s", dynamic_variable.name, e)
        return f"[Error: {e}]"


def validate_dynamic_variable(dynamic_variable: DynamicVariable) -> bool:
    """
    Check that a dynamic variable is usable.

    The name must be non-blank and every constraint value must parse as the
    kind its constraint type expects. Pattern and format values are free text.
    """
    if not dynamic_variable.name or not dynamic_variable.name.strip():
        return False

    for rule in dynamic_variable.constraints:
        try:
            if rule.type in (ConstraintType.MINIMUM, ConstraintType.MAXIMUM):
                Decimal(rule.value)
            elif rule.type in (ConstraintType.MINIMUM_DATE, ConstraintType.MAXIMUM_DATE):
                datetime.fromisoformat(rule.value)
            elif rule.type in (ConstraintType.PATTERN, ConstraintType.FORMAT):
                continue
            else:
                int(rule.value)
        except (ValueError, InvalidOperation):
            return False

    return True
