from pydantic import BaseModel, ConfigDict, Field


class PasswordPolicy(BaseModel):
    """
    Per-app password rules. Each character-class requirement is independent;
    `min_length` of 0 disables the length rule.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_length: int = Field(default=8, ge=0, alias="minLength")
    numeric_required: bool = Field(default=True, alias="numericRequired")
    symbol_required: bool = Field(default=True, alias="symbolRequired")
    lower_case_required: bool = Field(default=True, alias="lowerCaseRequired")
    upper_case_required: bool = Field(default=True, alias="upperCaseRequired")


DEFAULT_PASSWORD_POLICY = PasswordPolicy()
