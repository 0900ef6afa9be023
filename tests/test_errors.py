"""Tests for gora.errors: hierarchy and messages."""

import pytest

from gora.errors import (
    BindError,
    ConfigurationError,
    GoraError,
    HTTPError,
    InvalidParamError,
    InvalidPatternError,
    MissingContextValue,
    WebSocketDisconnect,
)


class TestHierarchy:
    def test_pattern_errors_are_configuration_errors(self) -> None:
        assert issubclass(InvalidPatternError, ConfigurationError)
        assert issubclass(ConfigurationError, GoraError)

    def test_value_errors(self) -> None:
        assert issubclass(InvalidParamError, ValueError)
        assert issubclass(BindError, ValueError)

    def test_missing_value_is_key_error(self) -> None:
        with pytest.raises(KeyError):
            raise MissingContextValue("user")


class TestMessages:
    def test_invalid_param(self) -> None:
        err = InvalidParamError("id", "abc", "int")
        assert str(err) == "parameter 'id': 'abc' is not a valid int"
        assert (err.name, err.value, err.expected) == ("id", "abc", "int")

    def test_missing_param(self) -> None:
        assert str(InvalidParamError("id", None, "int")) == "missing parameter 'id'"

    def test_missing_context_value(self) -> None:
        assert str(MissingContextValue("user")) == "key 'user' does not exist in the request context"

    def test_http_error(self) -> None:
        assert str(HTTPError(404, "Not Found")) == "404: Not Found"
        assert str(HTTPError(500)) == "500"

    def test_websocket_disconnect(self) -> None:
        err = WebSocketDisconnect(1001, "going away")
        assert err.code == 1001
        assert err.reason == "going away"
