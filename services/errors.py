from __future__ import annotations


class QuoteValidationError(ValueError):
    """Required quote fields are missing; ``errors`` maps field to message."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()))


class PersistenceError(RuntimeError):
    """A storage write failed and was rolled back."""


class ReferenceDataError(RuntimeError):
    """Settings, catalog or customer data could not be loaded."""

    def __init__(self, source: str, cause: BaseException) -> None:
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause}")
