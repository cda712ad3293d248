from pydantic import BaseModel, ConfigDict, Field

from studybridge.models.account import Phone


class StudyParticipant(BaseModel):
    """
    Participant as submitted by API callers.

    `external_ids` maps study id to the participant's external id in that study, in the
    order the caller supplied them.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: str | None = None
    phone: Phone | None = None
    synapse_user_id: str | None = Field(default=None, alias="synapseUserId")
    external_ids: dict[str, str | None] = Field(default_factory=dict, alias="externalIds")
