from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """
    Who is calling, passed explicitly to the code that needs it.

    `caller_study_ids` is the set of studies the caller may see; empty means unrestricted.
    """
    caller_user_id: str | None = None
    caller_study_ids: frozenset[str] = field(default_factory=frozenset)

    def can_see_study(self, study_id: str) -> bool:
        return not self.caller_study_ids or study_id in self.caller_study_ids


NULL_CONTEXT = RequestContext()
