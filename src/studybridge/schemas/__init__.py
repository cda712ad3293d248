from .demographic_assessment import deserialize_demographic_assessment
from .label import Label
from .participant import StudyParticipant
from .password_policy import DEFAULT_PASSWORD_POLICY, PasswordPolicy

__all__ = [
    "deserialize_demographic_assessment",
    "DEFAULT_PASSWORD_POLICY",
    "Label",
    "PasswordPolicy",
    "StudyParticipant",
]
