"""Storage exceptions."""


class StorageError(Exception):
    """A database read or write failed.

    Raised by repositories in place of the underlying SQLAlchemy error so
    callers can tell storage failures apart from remote ones. A sync run
    never continues past one.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
