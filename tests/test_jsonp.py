import json
import threading

import pytest

from jsonp_api.errors import BodyUnavailable, SerializationFailed
from jsonp_api.jsonp import RESERVED_WORDS, JsonpSerializer, is_valid_callback
from jsonp_api.request import Request
from jsonp_api.response import Response

JS = {"Content-Type": "application/javascript"}


def identity(request, response):
    return response


def run(serializer, request, response):
    return serializer.process(request, response, identity)


def callback_request(value=None, header="X-Callback"):
    return Request("GET", "/", {header: value} if value is not None else None)


# --- Scenarios ---

def test_no_callback_plain_json():
    res = run(JsonpSerializer(), callback_request(), Response(200, JS, unserialized_body={"key": "value"}))
    assert res.body == b'{"key":"value"}'
    assert res.status_code == 200


def test_callback_wraps_json():
    res = run(JsonpSerializer(), callback_request("someFunction"), Response(200, JS, unserialized_body={"key": "value"}))
    assert res.body == b'someFunction({"key":"value"})'


def test_error_status_moved_into_body():
    response = Response(500, JS, unserialized_body={"error": "Internal Server Error"})
    res = run(JsonpSerializer(), callback_request("someFunction"), response)
    assert res.status_code == 200
    assert res.body == b'someFunction({"error":"Internal Server Error","HttpStatus":500})'
    assert res.unserialized_body() == {"error": "Internal Server Error", "HttpStatus": 500}
    # copy-on-write: the original response is untouched
    assert response.status_code == 500
    assert response.unserialized_body() == {"error": "Internal Server Error"}


@pytest.mark.parametrize("callback", ["for", "callback/Function", "", "alert(1)//"])
def test_invalid_callback_degrades_to_json(callback):
    res = run(JsonpSerializer(), callback_request(callback), Response(200, JS, unserialized_body={"key": "value"}))
    assert res.body == b'{"key":"value"}'


def test_other_content_type_is_untouched():
    response = Response(404, {"Content-Type": "application/xml"}, body=b"<error/>",
                        unserialized_body={"error": "Not Found"})
    res = run(JsonpSerializer(), callback_request("cb"), response)
    assert res is response


def test_missing_structured_body_on_error_raises():
    response = Response(500, JS, body=b"already encoded")
    with pytest.raises(BodyUnavailable, match="could not retrieve unserialized body"):
        run(JsonpSerializer(), callback_request("someFunction"), response)


# --- Status rewriting ---

@pytest.mark.parametrize("status", [201, 204, 301, 400, 404, 418, 503])
def test_any_non_200_status_is_recorded(status):
    body = {"a": 1, "b": [1, 2]}
    res = run(JsonpSerializer(), callback_request(), Response(status, JS, unserialized_body=body))
    assert res.status_code == 200
    assert json.loads(res.body) == {**body, "HttpStatus": status}


def test_existing_http_status_key_is_kept():
    body = {"error": "teapot", "HttpStatus": "custom"}
    res = run(JsonpSerializer(), callback_request(), Response(418, JS, unserialized_body=body))
    assert json.loads(res.body) == body
    assert res.status_code == 200


def test_200_body_is_not_augmented():
    res = run(JsonpSerializer(), callback_request(), Response(200, JS, unserialized_body={"ok": True}))
    assert json.loads(res.body) == {"ok": True}


@pytest.mark.parametrize("body, expected", [
    ({}, b"{}"),
    ([], b"[]"),
    ([1, 2], b"[1,2]"),
    (None, b"null"),
    ("text", b'"text"'),
])
def test_empty_or_non_mapping_error_body_is_not_augmented(body, expected):
    res = run(JsonpSerializer(), callback_request(), Response(500, JS, unserialized_body=body))
    assert res.body == expected
    assert res.status_code == 200


def test_200_without_structured_body_passes_through():
    response = Response(200, JS, body=b"cb(1)")
    res = run(JsonpSerializer(), callback_request("cb"), response)
    assert res is response


# --- Gating & configuration ---

@pytest.mark.parametrize("content_type", [
    "application/javascript",
    "text/javascript",
    "text/javascript; charset=utf-8",
    "Application/JavaScript",
])
def test_javascript_content_types_are_handled(content_type):
    res = run(JsonpSerializer(), callback_request("cb"),
              Response(200, {"Content-Type": content_type}, unserialized_body={"k": 1}))
    assert res.body == b'cb({"k":1})'
    assert res.content_type() == content_type


def test_missing_content_type_is_untouched():
    response = Response(200, unserialized_body={"k": 1})
    assert run(JsonpSerializer(), callback_request("cb"), response) is response


def test_custom_header_and_mime_types():
    serializer = JsonpSerializer(callback_header="X-JSONP", mime_types=["application/x-jsonp"])
    response = Response(200, {"Content-Type": "application/x-jsonp"}, unserialized_body={"k": 1})

    assert run(serializer, callback_request("cb", header="X-JSONP"), response).body == b'cb({"k":1})'
    assert run(serializer, callback_request("cb"), response).body == b'{"k":1}'
    assert run(serializer, callback_request("cb"), response.with_header("Content-Type", "text/javascript")).body == b""


def test_first_callback_header_wins():
    request = Request("GET", "/", [("X-Callback", "first"), ("X-Callback", "second")])
    res = run(JsonpSerializer(), request, Response(200, JS, unserialized_body={"k": 1}))
    assert res.body == b'first({"k":1})'


def test_next_is_called_before_serializing():
    seen = []

    def downstream(request, response):
        seen.append(response.body)
        return Response(200, JS, unserialized_body={"from": "next"})

    res = JsonpSerializer().process(callback_request("cb"), Response(), downstream)
    assert seen == [b""]
    assert res.body == b'cb({"from":"next"})'


def test_headers_are_preserved():
    response = Response(404, {**JS, "X-Request-Id": "abc"}, unserialized_body={"e": 1})
    res = run(JsonpSerializer(), callback_request(), response)
    assert res.header_line("x-request-id") == "abc"
    assert res.content_type() == "application/javascript"


def test_callback_does_not_leak_between_requests():
    serializer = JsonpSerializer()
    response = Response(200, JS, unserialized_body={"k": 1})
    assert run(serializer, callback_request("first"), response).body == b'first({"k":1})'
    assert run(serializer, callback_request(), response).body == b'{"k":1}'
    assert run(serializer, callback_request("for"), response).body == b'{"k":1}'


def test_shared_instance_across_threads():
    serializer = JsonpSerializer()
    results = {}

    def worker(i):
        name = f"cb{i}"
        res = run(serializer, callback_request(name), Response(200, JS, unserialized_body={"i": i}))
        results[i] = res.body

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == {i: f'cb{i}({{"i":{i}}})'.encode() for i in range(20)}


# --- serialize() ---

def test_serialize_no_callback():
    assert JsonpSerializer().serialize({"key": "value", "another key": "second value"}) == \
        '{"key":"value","another key":"second value"}'


def test_serialize_with_callback():
    assert JsonpSerializer().serialize({"key": "value", "next": "another value"}, "someFunction") == \
        'someFunction({"key":"value","next":"another value"})'


def test_serialize_round_trip():
    body = {"s": "ünïcødé", "n": 1.5, "l": [None, True, {"x": -3}]}
    assert json.loads(JsonpSerializer().serialize(body)) == body


@pytest.mark.parametrize("body", [
    {"key": b"\xb1\x31"},
    {"key": float("nan")},
    {"key": "\ud800"},
    {"key": object()},
])
def test_serialize_failure(body):
    with pytest.raises(SerializationFailed, match="Could not serialize content to JSONP"):
        JsonpSerializer().serialize(body)


def deeply_nested(depth):
    body = {}
    for _ in range(depth):
        body = {"child": body}
    return body


def test_serialize_failure_on_deep_nesting():
    with pytest.raises(SerializationFailed, match="Could not serialize content to JSONP"):
        JsonpSerializer().serialize(deeply_nested(5000))


def test_serialization_failure_propagates_from_process():
    response = Response(500, JS, unserialized_body={"key": b"\xb1\x31"})
    with pytest.raises(SerializationFailed):
        run(JsonpSerializer(), callback_request("cb"), response)


def test_valid_utf8_bytes_are_encoded():
    assert JsonpSerializer().serialize({"key": "é".encode("utf-8")}) == '{"key":"é"}'


# --- Callback validation ---

@pytest.mark.parametrize("callback, expected", [
    ("for", False),
    ("hello", True),
    ("callback/Function", False),
    ("window.myCallback", True),
    ("jQuery1234_5678", True),
    ("$", True),
    ("_private", True),
    ("foo[0]", True),
    ('foo["bar"]', True),
    ("foo['bar']", True),
    ('foo["b\\"ar"]', True),
    ("foo[0].bar[1]", True),
    ("Function", True),
    ("", False),
    (None, False),
    ("1abc", False),
    ("a.for", False),
    ("a..b", False),
    (".a", False),
    ("foo bar", False),
    ("alert(1)", False),
    ("foo\n", False),
    ("foo[bar]", False),
    ("foo[0", False),
    ("null", False),
    ("true", False),
])
def test_validation(callback, expected):
    assert is_valid_callback(callback) is expected


@pytest.mark.parametrize("word", sorted(RESERVED_WORDS))
def test_reserved_words_rejected(word):
    assert is_valid_callback(word) is False
    assert is_valid_callback(f"ns.{word}") is False
