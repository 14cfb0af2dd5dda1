"""Domain exceptions raised by the lifecycle, progression and storage layers."""


class StudyPlannerError(Exception):
    """Base class for all errors surfaced to the dashboard and API."""


class InvalidTransition(StudyPlannerError):
    """A study plan status change outside the legal edge set."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move study plan from '{current}' to '{target}'")


class NotFound(StudyPlannerError):
    """A profile or study plan required by an operation does not exist."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")


class PersistenceError(StudyPlannerError):
    """Store read or write failure (I/O, corrupt data, failed precondition)."""


class ConcurrentUpdateError(PersistenceError):
    """A conditional write found the record changed since it was read."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} was modified concurrently")
