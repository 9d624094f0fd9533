import pytest

from composekit.errors import (
    AlreadyExistsError,
    CanceledError,
    ComposeError,
    ForbiddenError,
    NotFoundError,
    NotImplementedByBackendError,
    ParsingFailedError,
    UnknownError,
    UnsupportedFlagError,
    is_already_exists_error,
    is_canceled_error,
    is_forbidden_error,
    is_not_found_error,
    is_not_implemented_error,
    is_parsing_failed_error,
    is_unknown_error,
    is_unsupported_flag_error,
    wrap,
)

CASES = [
    (NotFoundError, is_not_found_error),
    (AlreadyExistsError, is_already_exists_error),
    (ForbiddenError, is_forbidden_error),
    (UnknownError, is_unknown_error),
    (UnsupportedFlagError, is_unsupported_flag_error),
    (NotImplementedByBackendError, is_not_implemented_error),
    (ParsingFailedError, is_parsing_failed_error),
    (CanceledError, is_canceled_error),
]


@pytest.mark.parametrize("kind, predicate", CASES)
def test_wrapped_error_is_recognised(kind, predicate):
    err = wrap(kind(), 'object "name"')
    assert isinstance(err, kind)
    assert str(err).startswith('object "name": ')
    assert predicate(err) is True
    assert predicate(ComposeError("another error")) is False


def test_wrap_message_prefixes_cause():
    err = wrap(NotFoundError(), 'object "name"')
    assert str(err) == 'object "name": not found'
    assert isinstance(err, NotFoundError)
    assert isinstance(err.__cause__, NotFoundError)


def test_wrap_plain_exception_keeps_cause():
    cause = ValueError("boom")
    err = wrap(cause, "context")
    assert str(err) == "context: boom"
    assert err.__cause__ is cause
    assert not is_not_found_error(err)


def test_recognised_through_raise_from_chain():
    def lookup():
        try:
            raise ForbiddenError()
        except ForbiddenError as exc:
            raise RuntimeError("lookup failed") from exc

    with pytest.raises(RuntimeError) as info:
        lookup()
    assert is_forbidden_error(info.value)
    assert not is_not_found_error(info.value)


def test_none_is_not_any_error():
    assert not is_not_found_error(None)
    assert not is_canceled_error(None)


def test_default_messages():
    assert str(NotFoundError()) == "not found"
    assert str(AlreadyExistsError()) == "already exists"
    assert str(NotImplementedByBackendError()) == "not implemented"
    assert str(UnknownError("custom")) == "custom"


def test_kinds_are_distinct():
    err = wrap(UnknownError(), "x")
    assert is_unknown_error(err)
    assert not is_not_found_error(err)
    assert not is_already_exists_error(err)