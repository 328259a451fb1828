"""
Tests for Module 07 — Archive Mirror.
The pinning service is replaced by a mocked httpx client.
"""
from unittest.mock import MagicMock

import httpx
import pytest

from conftest import make_reading
from pipeline.archive.mirror import ArchiveMirror, ArchiveWriteFailure, build_pin_body

PIN_URL = "https://archive.invalid/pin"


def _ok_response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status = MagicMock()
    return resp


def _status_error(code: int):
    request = httpx.Request("POST", PIN_URL)
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


def _mirror(client, token="jwt-token", attempts=2):
    return ArchiveMirror(token, url=PIN_URL, attempts=attempts, retry_pause=0, client=client)


class TestBuildPinBody:
    def test_contains_reading_json(self):
        body = build_pin_body(make_reading(index=4))
        content = body["pinataContent"]
        assert content["co2"] == 400
        assert content["index"] == 4
        assert content["timestamp"] == "2024-01-15T10:00:00Z"
        assert body["pinataMetadata"]["keyvalues"]["index"] == "4"

    def test_unindexed_reading(self):
        body = build_pin_body(make_reading())
        assert "index" not in body["pinataContent"]
        assert "index" not in body["pinataMetadata"]["keyvalues"]


class TestPin:
    def test_returns_content_hash(self):
        client = MagicMock()
        client.post.return_value = _ok_response({"IpfsHash": "QmHash"})
        assert _mirror(client).pin(make_reading(index=0)) == "QmHash"

    def test_sends_bearer_token(self):
        client = MagicMock()
        client.post.return_value = _ok_response({"IpfsHash": "QmHash"})
        _mirror(client, token="secret").pin(make_reading(index=0))
        args, kwargs = client.post.call_args
        assert args[0] == PIN_URL
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["json"]["pinataContent"]["pm10"] == 10

    def test_retries_once_then_succeeds(self):
        client = MagicMock()
        client.post.side_effect = [
            httpx.ConnectError("refused"),
            _ok_response({"IpfsHash": "QmSecond"}),
        ]
        assert _mirror(client).pin(make_reading(index=0)) == "QmSecond"
        assert client.post.call_count == 2

    def test_gives_up_after_attempts(self):
        client = MagicMock()
        client.post.side_effect = httpx.ReadTimeout("slow")
        with pytest.raises(ArchiveWriteFailure):
            _mirror(client, attempts=2).pin(make_reading(index=0))
        assert client.post.call_count == 2

    def test_non_2xx_is_failure(self):
        client = MagicMock()
        resp = MagicMock()
        resp.raise_for_status.side_effect = _status_error(401)
        client.post.return_value = resp
        with pytest.raises(ArchiveWriteFailure, match="401"):
            _mirror(client, attempts=1).pin(make_reading(index=0))

    def test_missing_hash_is_failure(self):
        client = MagicMock()
        client.post.return_value = _ok_response({"unexpected": True})
        with pytest.raises(ArchiveWriteFailure):
            _mirror(client, attempts=1).pin(make_reading(index=0))

    def test_malformed_json_is_failure(self):
        client = MagicMock()
        resp = MagicMock()
        resp.json.side_effect = ValueError("bad json")
        client.post.return_value = resp
        with pytest.raises(ArchiveWriteFailure):
            _mirror(client, attempts=1).pin(make_reading(index=0))


class TestMirror:
    def test_failure_swallowed(self):
        client = MagicMock()
        client.post.side_effect = httpx.ConnectError("down")
        assert _mirror(client).mirror(make_reading(index=0)) is None

    def test_no_token_skips_request(self):
        client = MagicMock()
        mirror = _mirror(client, token=None)
        assert not mirror.enabled
        assert mirror.mirror(make_reading(index=0)) is None
        client.post.assert_not_called()

    def test_submit_runs_in_background(self):
        client = MagicMock()
        client.post.return_value = _ok_response({"IpfsHash": "QmAsync"})
        mirror = _mirror(client)
        future = mirror.submit(make_reading(index=1))
        assert future.result(timeout=5) == "QmAsync"
        mirror.close()

    def test_close_does_not_wait(self):
        client = MagicMock()
        mirror = _mirror(client)
        mirror.close()
        client.close.assert_called_once()

    def test_write_after_close_is_swallowed(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"IpfsHash": "QmLate"})

        mirror = _mirror(httpx.Client(transport=httpx.MockTransport(handler)))
        mirror.close()
        assert mirror.closed
        assert mirror.mirror(make_reading(index=2)) is None
        assert seen == []

    def test_client_closed_mid_request_is_swallowed(self):
        client = MagicMock()
        mirror = _mirror(client, attempts=3)

        def closed_under_us(*args, **kwargs):
            mirror.close()
            raise RuntimeError("Cannot send a request, as the client has been closed.")

        client.post.side_effect = closed_under_us
        assert mirror.mirror(make_reading(index=3)) is None
        assert client.post.call_count == 1
