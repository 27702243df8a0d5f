"""
Error kinds shared by the catalog, account and web layers.
"""

from enum import Enum


class ErrorKind(Enum):
    NOT_FOUND = "not_found"
    OPERATION_FAILED = "operation_failed"
    AUTH_FAILED = "auth_failed"
    STARTUP_FAILED = "startup_failed"


class LegoError(Exception):
    """
    A failure whose *message* is safe to show to the visitor.

    Internal detail (driver errors, tracebacks) goes to the log; only
    ``message`` ever reaches a template.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"LegoError({self.kind.name}, {self.message!r})"


def not_found(message: str) -> LegoError:
    return LegoError(ErrorKind.NOT_FOUND, message)


def operation_failed(message: str) -> LegoError:
    return LegoError(ErrorKind.OPERATION_FAILED, message)


def auth_failed(message: str) -> LegoError:
    return LegoError(ErrorKind.AUTH_FAILED, message)
