"""
Error accumulator used by the field validators.

Validators never raise; they record what is wrong and carry on, so a single pass reports
every problem with an entity. Paths can be nested to point into lists:

    errors = Errors()
    with errors.nested("labels[0]"):
        errors.reject_value("lang", "cannot be missing, null, or blank")
    errors.errors  # {"labels[0].lang": ["labels[0].lang cannot be missing, null, or blank"]}
"""

from contextlib import contextmanager
from typing import Iterator

from studybridge.exceptions.base import InvalidEntityError


class Errors:

    def __init__(self) -> None:
        self._paths: list[str] = []
        self.errors: dict[str, list[str]] = {}

    @property
    def nested_path(self) -> str:
        return self._paths[-1] if self._paths else ""

    def push_nested_path(self, path: str) -> None:
        self._paths.append(self._qualify(path))

    def pop_nested_path(self) -> None:
        if not self._paths:
            raise IndexError("no nested path to pop")
        self._paths.pop()

    @contextmanager
    def nested(self, path: str) -> Iterator["Errors"]:
        self.push_nested_path(path)
        try:
            yield self
        finally:
            self.pop_nested_path()

    def reject_value(self, field: str, code: str) -> None:
        """
        Record an error on `field` under the current nested path.

        A code containing '%s' is formatted with the full field path; otherwise the
        message is the path followed by the code.
        """
        path = self._qualify(field)
        message = code % path if "%s" in code else f"{path} {code}"
        self.errors.setdefault(path, []).append(message)

    def has_errors(self) -> bool:
        return bool(self.errors)

    def error_count(self) -> int:
        return sum(len(messages) for messages in self.errors.values())

    def raise_if_errors(self, entity_type: str) -> None:
        if self.errors:
            raise InvalidEntityError(f"{entity_type} is invalid", errors=self.errors)

    def _qualify(self, field: str) -> str:
        prefix = self.nested_path
        return f"{prefix}.{field}" if prefix else field
