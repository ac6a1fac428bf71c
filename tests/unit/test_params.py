"""
Tests for request parameter handling.

Covers parameter validation, reserved names, ordering of the encoded
parameter string and URL query joining.
"""

import pytest

from graph_client.codec import JsonDecoder
from graph_client.errors import InvalidArgumentError
from graph_client.params import (
    Parameter,
    encode_parameters,
    join_query,
    normalize_path,
    to_parameter_string,
    verify_parameter_legality,
    verify_parameter_presence,
    with_additional_parameter,
)


@pytest.fixture
def decoder():
    return JsonDecoder()


class TestParameter:
    """Test parameter construction."""

    def test_of_builds_parameter(self):
        parameter = Parameter.of("fields", "id,name")
        assert parameter.name == "fields"
        assert parameter.value == "id,name"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, name):
        with pytest.raises(InvalidArgumentError):
            Parameter(name, "value")

    def test_none_value_rejected(self):
        with pytest.raises(InvalidArgumentError, match="limit"):
            Parameter("limit", None)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            Parameter("", "value")


class TestValidation:
    """Test legality and presence checks."""

    @pytest.mark.parametrize("reserved", ["access_token", "method", "format"])
    def test_reserved_names_rejected(self, reserved):
        with pytest.raises(InvalidArgumentError, match="reserved"):
            verify_parameter_legality([Parameter("fields", "id"), Parameter(reserved, "x")])

    def test_custom_reserved_set(self):
        verify_parameter_legality([Parameter("ids", "1")])
        with pytest.raises(InvalidArgumentError):
            verify_parameter_legality([Parameter("ids", "1")], reserved={"ids"})

    def test_presence_rejects_blank(self):
        with pytest.raises(InvalidArgumentError, match="object_id"):
            verify_parameter_presence("object_id", "  ")
        with pytest.raises(InvalidArgumentError):
            verify_parameter_presence("object_id", None)
        verify_parameter_presence("object_id", "me")

    def test_additional_parameter_appended(self):
        parameters = (Parameter("a", "1"),)
        combined = with_additional_parameter(Parameter("b", "2"), parameters)
        assert [p.name for p in combined] == ["a", "b"]
        assert parameters == (Parameter("a", "1"),)

    def test_duplicate_parameter_rejected(self):
        with pytest.raises(InvalidArgumentError, match="already present"):
            with_additional_parameter(Parameter("a", "2"), [Parameter("a", "1")])


class TestEncoding:
    """Test parameter string encoding."""

    def test_order_is_preserved(self, decoder):
        encoded = encode_parameters([Parameter("z", "1"), Parameter("a", "2")], decoder)
        assert encoded == "z=1&a=2"

    def test_values_are_url_encoded(self, decoder):
        encoded = encode_parameters([Parameter("message", "hello world & more")], decoder)
        assert encoded == "message=hello+world+%26+more"

    def test_non_string_values_written_by_decoder(self, decoder):
        encoded = encode_parameters([
            Parameter("published", True),
            Parameter("ids", ["1", "2"]),
            Parameter("limit", 25),
        ], decoder)
        assert encoded == "published=true&ids=%5B%221%22%2C%222%22%5D&limit=25"

    def test_token_and_format_follow_caller_parameters(self, decoder):
        encoded = to_parameter_string([Parameter("fields", "id")], decoder, access_token="tok")
        assert encoded == "fields=id&access_token=tok&format=json"

    def test_no_token_when_unconfigured(self, decoder):
        assert to_parameter_string([], decoder) == "format=json"
        assert to_parameter_string([], decoder, json_format=False) == ""

    def test_reserved_name_rejected_before_encoding(self, decoder):
        with pytest.raises(InvalidArgumentError):
            to_parameter_string([Parameter("access_token", "other")], decoder, access_token="tok")


class TestPaths:
    """Test path normalization and query joining."""

    @pytest.mark.parametrize("path,expected", [
        ("me", "/me"),
        ("/me/feed", "/me/feed"),
        ("//me", "/me"),
        ("", "/"),
        (None, "/"),
    ])
    def test_normalize_path(self, path, expected):
        assert normalize_path(path) == expected

    def test_join_query(self):
        assert join_query("https://x/me", "") == "https://x/me"
        assert join_query("https://x/me", "a=1") == "https://x/me?a=1"
        assert join_query("https://x/me?p=1", "a=1") == "https://x/me?p=1&a=1"
        assert join_query("https://x/me?", "a=1") == "https://x/me?a=1"
