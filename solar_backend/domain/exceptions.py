"""
Domain exceptions raised by the transition and costing functions
"""
from typing import Optional


class DomainError(Exception):
    """Base class for domain rule failures."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


class DraftValidationError(DomainError):
    """A draft record is missing a required field or carries an invalid value.

    Callers are expected to check drafts before submitting; reaching this
    error means the precondition was skipped and nothing was changed.
    """

    status_code = 422


class EntityNotFoundError(DomainError):
    """A referenced milestone, risk, task or catalog item does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} '{entity_id}' not found")
