"""
Reading demographics submitted in the assessment-result format.

Assessment results arrive as a step history:

    {"stepHistory": [
        {"identifier": "race", "answerType": {"type": "array"}, "value": ["asian", "white"]},
        {"identifier": "age", "answerType": {"type": "integer"}, "value": 42}
    ]}

and are flattened into a DemographicUser whose `demographics` map each step identifier
(the category) to a Demographic. Fields that identify the user or study are left for the
caller to fill in.
"""

import logging
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from studybridge.exceptions.base import ParseError
from studybridge.models.demographic import Demographic, DemographicUser

logger = logging.getLogger(__name__)

MULTIPLE_SELECT_STEP_TYPE = "array"

_SCALAR_TYPES = (str, int, float, bool)


class AssessmentResultStep(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    identifier: str | None = None
    answer_type: dict[str, Any] | None = Field(default=None, alias="answerType")
    value: list[Any] | None = None

    @field_validator("value", mode="before")
    @classmethod
    def accept_single_value_as_list(cls, v: Any) -> Any:
        if v is None or isinstance(v, list):
            return v
        return [v]

    @property
    def type_name(self) -> str | None:
        if self.answer_type is None:
            return None
        type_name = self.answer_type.get("type")
        # Scalars read as their JSON text, so {"type": 5} names the type "5"
        if isinstance(type_name, bool):
            return "true" if type_name else "false"
        if isinstance(type_name, (str, int, float)):
            return str(type_name)
        return None


class AssessmentResults(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    step_history: list[AssessmentResultStep | None] | None = Field(default=None, alias="stepHistory")


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "document"
    return f"Invalid demographic assessment at {location}: {first.get('msg')}"


def _normalize_values(values: list[Any] | None) -> list[Any]:
    """Drop null entries and entries wrapping a null; unwrap {"value": x} entries."""
    normalized: list[Any] = []
    for entry in values or []:
        if isinstance(entry, Mapping):
            if "value" not in entry:
                raise ParseError("value objects must have a value field")
            entry = entry["value"]
        if entry is None:
            continue
        if not isinstance(entry, _SCALAR_TYPES):
            raise ParseError("value entries must be strings, numbers or booleans")
        normalized.append(entry)
    return normalized


def deserialize_demographic_assessment(payload: str | bytes | Mapping[str, Any]) -> DemographicUser:
    """
    Convert an assessment-result document into a DemographicUser.

    Args:
        payload: JSON text or an already decoded mapping.

    Raises:
        ParseError: the document is malformed, a step has no identifier, or a step has
            no answer type.
    """
    try:
        if isinstance(payload, (str, bytes, bytearray)):
            results = AssessmentResults.model_validate_json(payload)
        elif isinstance(payload, Mapping):
            results = AssessmentResults.model_validate(dict(payload))
        else:
            raise ParseError("Demographic assessment must be a JSON object")
    except ValidationError as exc:
        raise ParseError(_describe(exc)) from exc

    demographic_user = DemographicUser()
    for step in results.step_history or []:
        if step is None:
            continue
        if step.identifier is None:
            # the identifier is the category name and the key of the map
            raise ParseError("identifier cannot be null")
        values = _normalize_values(step.value)
        if step.type_name is None:
            raise ParseError("answerType containing type must be included")
        demographic_user.demographics[step.identifier] = Demographic(
            category_name=step.identifier,
            multiple_select=step.type_name.lower() == MULTIPLE_SELECT_STEP_TYPE,
            values=values,
        )

    logger.debug("demographics.assessment_deserialized", extra={"categories": len(demographic_user.demographics)})
    return demographic_user
