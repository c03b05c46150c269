"""Domain exceptions raised by the HR services and mapped to HTTP codes in main.py."""


class HRServiceError(Exception):
    """Base class for errors the services surface to the caller."""


class NotFoundError(HRServiceError):
    """Referenced employee, request or config does not exist."""

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidStateError(HRServiceError):
    """Operation attempted on an entity that is not in the required state."""
