"""Exceptions raised by the GraphMem Lite store."""


class GraphMemError(Exception):
    """Base error for the memory store."""


class EntityNotFoundError(GraphMemError, KeyError):
    """Raised when an operation names an entity that is not in the graph."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Entity with name {name} not found")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class StorageError(GraphMemError):
    """Raised when the memory log cannot be read or written."""

    def __init__(self, message: str, path=None):
        self.path = path
        super().__init__(f"{message}: {path}" if path else message)
