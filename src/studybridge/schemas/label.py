from pydantic import BaseModel, ConfigDict


class Label(BaseModel):
    """A display string in one language, e.g. Label(lang="en", value="Heart rate")."""
    model_config = ConfigDict(frozen=True)

    lang: str | None = None
    value: str | None = None
