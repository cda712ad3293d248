from .errors import Errors
from .utils import (
    CANNOT_BE_BLANK,
    DUPLICATE_LANG,
    INVALID_LANG,
    account_has_valid_identifier,
    participant_has_valid_identifier,
    validate_labels,
    validate_language_set,
    validate_password,
)

__all__ = [
    "Errors",
    "CANNOT_BE_BLANK",
    "DUPLICATE_LANG",
    "INVALID_LANG",
    "account_has_valid_identifier",
    "participant_has_valid_identifier",
    "validate_labels",
    "validate_language_set",
    "validate_password",
]
