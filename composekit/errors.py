"""Error types shared by compose operations, and helpers to recognise them."""

from __future__ import annotations

from typing import Optional

EXIT_CODE_LOGIN_REQUIRED = 5
"""Exit code used when a command needs a cloud login before it can run."""


class ComposeError(Exception):
    """Base class of all compose errors."""

    default_message = "compose error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(self.default_message if message is None else message)


class NotFoundError(ComposeError):
    """An object was not found."""

    default_message = "not found"


class AlreadyExistsError(ComposeError):
    """An object already exists."""

    default_message = "already exists"


class ForbiddenError(ComposeError):
    """The operation is not permitted."""

    default_message = "forbidden"


class UnknownError(ComposeError):
    """The error kind could not be mapped."""

    default_message = "unknown"


class LoginFailedError(ComposeError):
    """Login failed."""

    default_message = "login failed"


class LoginRequiredError(ComposeError):
    """Login is required for the requested action."""

    default_message = "login required"


class NotImplementedByBackendError(ComposeError):
    """The backend does not implement the requested action."""

    default_message = "not implemented"


class UnsupportedFlagError(ComposeError):
    """The backend does not support a flag."""

    default_message = "unsupported flag"


class CanceledError(ComposeError):
    """The command was canceled by the user."""

    default_message = "canceled"


class ParsingFailedError(ComposeError):
    """A string could not be parsed."""

    default_message = "parsing failed"


class WrongContextTypeError(ComposeError):
    """A context of the wrong type was requested."""

    default_message = "wrong context type"


def wrap(error: BaseException, message: str) -> ComposeError:
    """Return an error of the same kind as ``error`` with ``message`` prepended."""
    kind = type(error) if isinstance(error, ComposeError) else ComposeError
    wrapped = kind(f"{message}: {error}")
    wrapped.__cause__ = error
    return wrapped


def _matches(err: Optional[BaseException], kind: type) -> bool:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, kind):
            return True
        seen.add(id(err))
        err = err.__cause__ if err.__cause__ is not None else err.__context__
    return False


def is_not_found_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is a :class:`NotFoundError`."""
    return _matches(err, NotFoundError)


def is_already_exists_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is an :class:`AlreadyExistsError`."""
    return _matches(err, AlreadyExistsError)


def is_forbidden_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is a :class:`ForbiddenError`."""
    return _matches(err, ForbiddenError)


def is_unknown_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is an :class:`UnknownError`."""
    return _matches(err, UnknownError)


def is_unsupported_flag_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is an :class:`UnsupportedFlagError`."""
    return _matches(err, UnsupportedFlagError)


def is_not_implemented_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is a :class:`NotImplementedByBackendError`."""
    return _matches(err, NotImplementedByBackendError)


def is_parsing_failed_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is a :class:`ParsingFailedError`."""
    return _matches(err, ParsingFailedError)


def is_canceled_error(err: Optional[BaseException]) -> bool:
    """True if ``err`` or one of its causes is a :class:`CanceledError`."""
    return _matches(err, CanceledError)