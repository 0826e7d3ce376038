"""Exceptions raised by the risk repository.

The API layer maps these to HTTP responses in ``api/exceptions.py``.
"""


class RiskStoreError(Exception):
    """Base class for risk repository errors."""


class RiskNotFound(RiskStoreError):
    def __init__(self, risk_id: int) -> None:
        self.risk_id = risk_id
        super().__init__(f"Risk {risk_id} does not exist.")


class InvalidAuthor(RiskStoreError):
    """A score's author id does not name an existing user."""

    def __init__(self, author_id: int | None) -> None:
        self.author_id = author_id
        super().__init__(f"Author {author_id!r} is not a known user.")
