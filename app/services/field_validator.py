"""
field_validator.py - Field-level validation for account request data

Every check returns ``None`` when the value is acceptable, otherwise a fully
populated, user-facing error message.  Message templates use ``${...}``
placeholders that ``populate_error_message`` fills in.
"""

import re
from typing import Optional

from app.config import settings

# Field names as shown to users
PERSON_NAME_FIELD_NAME = "person name"
INSTITUTE_NAME_FIELD_NAME = "institute name"
EMAIL_FIELD_NAME = "email"

PERSON_NAME_MAX_LENGTH = 100
INSTITUTE_NAME_MAX_LENGTH = 128
EMAIL_MAX_LENGTH = 254

REASON_EMPTY = "is empty"
REASON_TOO_LONG = "is too long"
REASON_INCORRECT_FORMAT = "is not in the correct format"
REASON_CONTAINS_INVALID_CHAR = "contains invalid characters"
REASON_START_WITH_NON_ALPHANUMERIC_CHAR = "starts with a non-alphanumeric character"

_ERROR_MESSAGE_PREFIX = "\"${userInput}\" is not acceptable to ${appName} as a/an ${fieldName} because it ${reason}. "

EMPTY_STRING_ERROR_MESSAGE = "The field '${fieldName}' is empty."

SIZE_CAPPED_NON_EMPTY_STRING_ERROR_MESSAGE = (
    _ERROR_MESSAGE_PREFIX
    + "The value of a/an ${fieldName} should be no longer than ${maxLength} characters. "
    + "It should not be empty."
)

INVALID_NAME_ERROR_MESSAGE = (
    _ERROR_MESSAGE_PREFIX
    + "All ${fieldName} must start with an alphanumeric character, "
    + "and cannot contain any vertical bar (|) or percent sign (%)."
)

EMAIL_ERROR_MESSAGE = (
    _ERROR_MESSAGE_PREFIX
    + "An email address contains some text followed by one '@' sign followed by some more text, "
    + "and should end with a top level domain address like .com. "
    + "It cannot be longer than ${maxLength} characters, cannot be empty and cannot contain spaces."
)

# local@domain where the domain ends in an alphabetic top level label.
# Matched with fullmatch; \w is ASCII only.
EMAIL_REGEX = re.compile(
    r"[\w+-][\w+!#$%&'*/=?^_`{}~-]*(\.[\w+!#$%&'*/=?^_`{}~-]+)*@([A-Za-z0-9-]+\.)*[A-Za-z]+",
    re.ASCII,
)

_INVALID_NAME_CHARS = ("|", "%")


def populate_error_message(
    template: str,
    user_input: str,
    field_name: str,
    reason: str,
    max_length: Optional[int] = None,
) -> str:
    """Fill the ``${...}`` placeholders of a message template."""
    message = (
        template.replace("${appName}", settings.app_name)
        .replace("${fieldName}", field_name)
        .replace("${reason}", reason)
    )
    if max_length is not None:
        message = message.replace("${maxLength}", str(max_length))
    # User input goes in last so placeholders typed by the user stay literal
    return message.replace("${userInput}", user_input)


def populate_empty_string_error_message(field_name: str) -> str:
    return EMPTY_STRING_ERROR_MESSAGE.replace("${fieldName}", field_name)


def _starts_with_brace_group(value: str) -> bool:
    # "{Team A}" style names are allowed to open with a brace
    return value.startswith("{") and "}" in value


def _get_invalidity_info_for_allowed_name(field_name: str, max_length: int, value: str) -> Optional[str]:
    if value == "":
        return populate_empty_string_error_message(field_name)

    if len(value) > max_length:
        return populate_error_message(
            SIZE_CAPPED_NON_EMPTY_STRING_ERROR_MESSAGE, value, field_name, REASON_TOO_LONG, max_length
        )

    if not value[0].isalnum() and not _starts_with_brace_group(value):
        return populate_error_message(
            INVALID_NAME_ERROR_MESSAGE, value, field_name, REASON_START_WITH_NON_ALPHANUMERIC_CHAR
        )

    if any(ch in value for ch in _INVALID_NAME_CHARS):
        return populate_error_message(
            INVALID_NAME_ERROR_MESSAGE, value, field_name, REASON_CONTAINS_INVALID_CHAR
        )

    return None


def get_invalidity_info_for_person_name(name: str) -> Optional[str]:
    return _get_invalidity_info_for_allowed_name(PERSON_NAME_FIELD_NAME, PERSON_NAME_MAX_LENGTH, name)


def get_invalidity_info_for_institute_name(institute: str) -> Optional[str]:
    return _get_invalidity_info_for_allowed_name(INSTITUTE_NAME_FIELD_NAME, INSTITUTE_NAME_MAX_LENGTH, institute)


def get_invalidity_info_for_email(email: str) -> Optional[str]:
    if email == "":
        return populate_empty_string_error_message(EMAIL_FIELD_NAME)

    if len(email) > EMAIL_MAX_LENGTH:
        return populate_error_message(
            EMAIL_ERROR_MESSAGE, email, EMAIL_FIELD_NAME, REASON_TOO_LONG, EMAIL_MAX_LENGTH
        )

    if not EMAIL_REGEX.fullmatch(email):
        return populate_error_message(
            EMAIL_ERROR_MESSAGE, email, EMAIL_FIELD_NAME, REASON_INCORRECT_FORMAT, EMAIL_MAX_LENGTH
        )

    return None


def get_invalidity_info_for_account_request(name: str, email: str, institute: str) -> Optional[str]:
    """Return the first validation failure among name, email and institute."""
    for check in (
        get_invalidity_info_for_person_name(name),
        get_invalidity_info_for_email(email),
        get_invalidity_info_for_institute_name(institute),
    ):
        if check is not None:
            return check
    return None
