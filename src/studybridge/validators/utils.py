"""
Field-level checks shared by entity validators: passwords, language sets, labels and
the "has some way to identify this person" rule for accounts and participants.
"""

import re
import string
from typing import Any, Sequence

from babel import Locale, UnknownLocaleError

from studybridge.models.account import collect_external_ids
from studybridge.schemas.label import Label
from studybridge.schemas.password_policy import PasswordPolicy

from .errors import Errors

CANNOT_BE_BLANK = "cannot be missing, null, or blank"
DUPLICATE_LANG = "%s is a duplicate message under the same language code"
INVALID_LANG = "%s is not a valid ISO 639 alpha-2 or alpha-3 language code"

_DIGIT = re.compile(r"[0-9]")
_LOWER = re.compile(r"[a-z]")
_UPPER = re.compile(r"[A-Z]")
_SYMBOLS = frozenset(string.punctuation)


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def is_available_locale(tag: str) -> bool:
    """True if the BCP 47 tag (e.g. 'en', 'fr-CA') names a locale known to CLDR."""
    try:
        Locale.parse(tag, sep="-")
    except (ValueError, UnknownLocaleError):
        return False
    return True


def participant_has_valid_identifier(participant: Any) -> bool:
    external_ids = participant.external_ids or {}
    any_external_id = next(iter(external_ids.values()), None)
    return (
        participant.email is not None
        or not is_blank(any_external_id)
        or participant.phone is not None
        or not is_blank(participant.synapse_user_id)
    )


def account_has_valid_identifier(account: Any) -> bool:
    return (
        account.email is not None
        or bool(collect_external_ids(account))
        or account.phone is not None
        or not is_blank(account.synapse_user_id)
    )


def validate_password(errors: Errors, policy: PasswordPolicy, password: str | None) -> None:
    if is_blank(password):
        errors.reject_value("password", "is required")
        return
    if policy.min_length > 0 and len(password) < policy.min_length:
        errors.reject_value("password", f"must be at least {policy.min_length} characters")
    if policy.numeric_required and not _DIGIT.search(password):
        errors.reject_value("password", "must contain at least one number (0-9)")
    if policy.symbol_required and not any(c in _SYMBOLS for c in password):
        errors.reject_value("password", "must contain at least one symbol ( !\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~ )")
    if policy.lower_case_required and not _LOWER.search(password):
        errors.reject_value("password", "must contain at least one lowercase letter (a-z)")
    if policy.upper_case_required and not _UPPER.search(password):
        errors.reject_value("password", "must contain at least one uppercase letter (A-Z)")


def validate_language_set(errors: Errors, items: Sequence[Any] | None, field_name: str) -> None:
    """Each item needs a lang that is present, unique within the list and a known locale."""
    if not items:
        return
    visited: set[str] = set()
    for i, item in enumerate(items):
        with errors.nested(f"{field_name}[{i}]"):
            lang = item.lang
            if is_blank(lang):
                errors.reject_value("lang", CANNOT_BE_BLANK)
                continue
            if lang in visited:
                errors.reject_value("lang", DUPLICATE_LANG)
            visited.add(lang)
            if not is_available_locale(lang):
                errors.reject_value("lang", INVALID_LANG)


def validate_labels(errors: Errors, labels: Sequence[Label] | None) -> None:
    if not labels:
        return
    validate_language_set(errors, labels, "labels")
    for j, label in enumerate(labels):
        if is_blank(label.value):
            with errors.nested(f"labels[{j}]"):
                errors.reject_value("value", CANNOT_BE_BLANK)
