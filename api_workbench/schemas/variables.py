"""
Pydantic schemas for dynamic variables, and masking of secret values.

A dynamic variable is a name bound to a fake-data generator instead of a
fixed value; it is evaluated every time a placeholder is resolved.
"""

from enum import Enum

from pydantic import BaseModel


SECRET_MASK = "********"


class DataGeneratorType(str, Enum):
    """Kinds of data a dynamic variable can generate."""
    # Person
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    FULL_NAME = "full_name"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    USERNAME = "username"
    # Numbers
    INTEGER = "integer"
    DECIMAL = "decimal"
    # Dates
    DATE = "date"
    DATE_PAST = "date_past"
    DATE_FUTURE = "date_future"
    DATETIME = "datetime"
    # Text
    WORD = "word"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    # Internet
    URL = "url"
    IP_ADDRESS = "ip_address"
    MAC_ADDRESS = "mac_address"
    # Identifiers
    GUID = "guid"
    UUID = "uuid"
    # Finance
    CREDIT_CARD_NUMBER = "credit_card_number"
    CURRENCY_CODE = "currency_code"
    AMOUNT = "amount"
    # Address
    STREET_ADDRESS = "street_address"
    CITY = "city"
    COUNTRY = "country"
    ZIP_CODE = "zip_code"
    BOOLEAN = "boolean"
    CUSTOM = "custom"


class ConstraintType(str, Enum):
    """Constraints that narrow what a generator produces."""
    MINIMUM = "minimum"
    MAXIMUM = "maximum"
    MINIMUM_AGE = "minimum_age"
    MAXIMUM_AGE = "maximum_age"
    MINIMUM_DATE = "minimum_date"
    MAXIMUM_DATE = "maximum_date"
    DAYS_OFFSET = "days_offset"
    HOURS_OFFSET = "hours_offset"
    MINUTES_OFFSET = "minutes_offset"
    SECONDS_OFFSET = "seconds_offset"
    MIN_LENGTH = "min_length"
    MAX_LENGTH = "max_length"
    PATTERN = "pattern"
    FORMAT = "format"


class ConstraintRule(BaseModel):
    """A single constraint, its value kept as text like the rest of the variable data."""
    type: ConstraintType
    value: str = ""


class DynamicVariable(BaseModel):
    """A variable whose value is generated on demand."""
    name: str
    generator_type: DataGeneratorType
    constraints: list[ConstraintRule] = []
    is_secret: bool = False


def mask_secrets(variables: dict[str, str], secret_names: set[str]) -> dict[str, str]:
    """Replace every secret value with ``SECRET_MASK``."""
    return {
        name: (SECRET_MASK if name in secret_names else value)
        for name, value in variables.items()
    }


def restore_masked_secrets(
    incoming: dict[str, str],
    current: dict[str, str],
    secret_names: set[str],
) -> dict[str, str]:
    """
    Put back the stored value of every secret sent as ``SECRET_MASK``.

    A client that edits a masked mapping and sends it back keeps its
    secrets; any other value replaces them.
    """
    restored = dict(incoming)
    for name, value in incoming.items():
        if name in secret_names and value == SECRET_MASK and name in current:
            restored[name] = current[name]
    return restored
