"""
Tests for the JSON decoder and wire types.
"""

from datetime import timedelta
from typing import Dict, List, Optional

import pytest
from pydantic import BaseModel

from graph_client.codec import JsonDecoder
from graph_client.errors import InvalidArgumentError, ResponseDecodeError
from graph_client.params import Parameter
from graph_client.types import AccessToken, BatchHeader, BatchRequest, BatchResponse, DeviceCode


class User(BaseModel):
    id: str
    name: Optional[str] = None


@pytest.fixture
def decoder():
    return JsonDecoder()


class TestJsonDecoder:
    """Test reading and writing."""

    def test_reads_models(self, decoder):
        user = decoder.read(b'{"id": "4", "name": "Mark"}', User)
        assert user == User(id="4", name="Mark")

    def test_reads_containers(self, decoder):
        users = decoder.read(b'{"1": {"id": "1"}, "2": {"id": "2"}}', Dict[str, User])
        assert sorted(users) == ["1", "2"]
        assert users["2"].id == "2"

    def test_bytes_and_text_pass_through(self, decoder):
        assert decoder.reader_for(bytes)(b"raw \xff") == b"raw \xff"
        assert decoder.reader_for(str)(b"true") == "true"

    def test_invalid_body_raises_decode_error(self, decoder):
        with pytest.raises(ResponseDecodeError, match="User"):
            decoder.read(b"access_token=abc", User)

    def test_write_compact_json(self, decoder):
        assert decoder.write(["1", "2"]) == '["1","2"]'
        assert decoder.write(True) == "true"

    def test_write_models_without_none(self, decoder):
        written = decoder.write([BatchRequest(relative_url="me")])
        assert written == '[{"method":"GET","relative_url":"me"}]'

    def test_unserializable_value_is_caller_error(self, decoder):
        with pytest.raises(InvalidArgumentError, match="serialize"):
            decoder.write([object()])


class TestAccessToken:
    """Test token parsing."""

    def test_json_token(self, decoder):
        token = decoder.read(b'{"access_token": "abc", "token_type": "bearer", "expires_in": 3600}', AccessToken)
        assert token.access_token == "abc"
        assert token.token_type == "bearer"
        assert token.expires_at - token.issued_at == timedelta(seconds=3600)

    def test_query_string_token(self):
        token = AccessToken.from_query_string("access_token=abc%7Cdef&expires=5183999")
        assert token.access_token == "abc|def"
        assert token.expires_in == 5183999

    def test_query_string_without_expiry(self):
        token = AccessToken.from_query_string("access_token=abc")
        assert token.expires_in is None
        assert token.expires_at is None

    def test_query_string_without_token(self):
        with pytest.raises(ResponseDecodeError):
            AccessToken.from_query_string("error=denied")

    def test_token_hidden_from_repr(self):
        token = AccessToken(access_token="super-secret")
        assert "super-secret" not in repr(token)

    def test_token_is_immutable(self):
        token = AccessToken(access_token="abc")
        with pytest.raises(Exception):
            token.access_token = "other"


class TestDeviceCode:
    """Test device code decoding."""

    def test_decode(self, decoder):
        raw = b'{"code": "c0de", "user_code": "A1B2", "verification_uri": "https://www.facebook.com/device", "expires_in": 420, "interval": 5}'
        device_code = decoder.read(raw, DeviceCode)
        assert device_code.user_code == "A1B2"
        assert device_code.expires_in == 420

    def test_interval_defaults(self, decoder):
        raw = b'{"code": "c", "user_code": "u", "verification_uri": "https://v", "expires_in": 60}'
        assert decoder.read(raw, DeviceCode).interval == 5


class TestBatchTypes:
    """Test batch request building and response helpers."""

    def test_get_parameters_go_to_relative_url(self):
        request = BatchRequest.build("me", Parameter("fields", "id,name"), name="me-call")
        assert request.method == "GET"
        assert request.relative_url == "me?fields=id%2Cname"
        assert request.body is None
        assert request.name == "me-call"

    def test_post_parameters_go_to_body(self):
        request = BatchRequest.build("me/feed", Parameter("message", "hi there"), method="post")
        assert request.method == "POST"
        assert request.relative_url == "me/feed"
        assert request.body == "message=hi+there"

    def test_build_without_parameters(self):
        request = BatchRequest.build("me", method="DELETE")
        assert request.relative_url == "me"

    def test_response_decode(self, decoder):
        raw = (
            b'[{"code": 200, "headers": [{"name": "Content-Type", "value": "application/json"}], "body": "{\\"id\\":\\"1\\"}"},'
            b' null,'
            b' {"code": 400, "body": "{\\"error\\":{}}"}]'
        )
        responses = decoder.read(raw, List[Optional[BatchResponse]])

        assert len(responses) == 3
        assert responses[0].ok
        assert responses[0].header("content-type") == "application/json"
        assert responses[0].body == '{"id":"1"}'
        assert responses[1] is None
        assert not responses[2].ok
        assert responses[2].header("Content-Type") is None

    def test_headers_serialized(self, decoder):
        request = BatchRequest(relative_url="me", headers=[BatchHeader(name="If-None-Match", value="etag")])
        assert '"headers":[{"name":"If-None-Match","value":"etag"}]' in decoder.write(request)
