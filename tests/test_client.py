import concurrent.futures
import json

import pytest

from sellsy.client import DEFAULT_ENDPOINT, SellsyClient
from sellsy.errors import (
    ApiError,
    AuthenticationError,
    MalformedResponseError,
    TransportError,
    UnknownApiError,
)
from sellsy.transport import CallFuture, CallState, RequestsTransport


def _client(transport, activity, endpoint=None) -> SellsyClient:
    return SellsyClient(
        "user-tok", "user-sec", "cons-tok", "cons-sec",
        endpoint=endpoint,
        transport=transport,
        activity_logger=activity,
    )


def _directions(activity, call_id):
    return [direction for cid, direction, _ in activity.entries if cid == call_id]


def test_call_posts_signed_multipart_envelope(transport, activity) -> None:
    transport.body = b'{"status":"success","response":{"a":1}}'
    client = _client(transport, activity)

    assert client.call("M", {"a": 1}) == {"a": 1}

    [req] = transport.requests
    assert req["url"] == DEFAULT_ENDPOINT
    assert req["verify"] is True
    assert req["headers"]["Expect"] == ""
    assert req["headers"]["Authorization"].startswith('OAuth oauth_consumer_key="cons-tok"')
    assert req["fields"] == [
        ("request", "1"),
        ("io_mode", "json"),
        ("do_in", '{"method":"M","params":{"a":1}}'),
    ]


def test_call_sends_empty_object_when_params_omitted(transport, activity) -> None:
    _client(transport, activity).call("Infos.getInfos")
    assert transport.requests[0]["fields"][2] == ("do_in", '{"method":"Infos.getInfos","params":{}}')


def test_endpoint_is_used_verbatim_and_controls_verification(transport, activity) -> None:
    client = _client(transport, activity, endpoint="http://sandbox.local/api")
    client.call("M")
    assert transport.requests[0]["url"] == "http://sandbox.local/api"
    assert transport.requests[0]["verify"] is False

    assert _client(transport, activity, endpoint="HTTPS://x.example/").verify_tls is True


def test_each_call_gets_fresh_auth_header(transport, activity, monkeypatch) -> None:
    import sellsy.client as client_mod

    headers = iter([{"Authorization": "OAuth one", "Expect": ""}, {"Authorization": "OAuth two", "Expect": ""}])
    monkeypatch.setattr(client_mod, "build_headers", lambda creds: next(headers))
    client = _client(transport, activity)
    client.call("M")
    client.call("M")
    assert [r["headers"]["Authorization"] for r in transport.requests] == ["OAuth one", "OAuth two"]


def test_call_logs_outbound_then_inbound(transport, activity) -> None:
    transport.body = b'{"status":"success","response":{"id":7}}'
    _client(transport, activity).call("Client.getOne", {"clientid": 7})

    assert [d for _, d, _ in activity.entries] == ["-->", "<--"]
    (out_id, _, out_line), (in_id, _, in_line) = activity.entries
    assert out_id == in_id
    assert out_line.startswith(f"[{out_id}]")
    assert out_line.endswith('--> {"method":"Client.getOne","params":{"clientid":7}}')
    assert in_line.endswith('<-- {"id":7}')


def test_call_raises_codec_errors(transport, activity) -> None:
    client = _client(transport, activity)

    transport.body = b'{"status":"failed","error":{"code":42,"message":"bad"}}'
    with pytest.raises(ApiError) as exc_info:
        client.call("M")
    assert exc_info.value.code == 42

    transport.body = b"oauth_problem=signature_invalid"
    with pytest.raises(AuthenticationError):
        client.call("M")

    transport.body = b"<html>"
    with pytest.raises(MalformedResponseError):
        client.call("M")


def test_call_transport_error_propagates_and_is_logged(transport, activity) -> None:
    transport.error = TransportError("Failed to connect: refused")
    with pytest.raises(TransportError, match="refused"):
        _client(transport, activity).call("M")

    assert [d for _, d, _ in activity.entries] == ["-->", "<--"]
    assert activity.entries[1][2].endswith("<-- Failed to connect: refused")


def test_activity_logger_failure_does_not_change_outcome(transport) -> None:
    from sellsy.activity import ActivityLogger

    class BrokenLogger(ActivityLogger):
        def emit(self, call_id, direction, line):
            raise OSError("disk full")

    transport.body = b'{"status":"success","response":"ok"}'
    client = _client(transport, BrokenLogger())
    assert client.call("M") == "ok"

    future = client.call_async("M")
    transport.pending[0].set_result(b'{"status":"success","response":"ok"}')
    assert future.result(timeout=1) == "ok"


def test_call_async_returns_pending_future_then_resolves(transport, activity) -> None:
    client = _client(transport, activity)
    future = client.call_async("M", {"a": 1})

    assert isinstance(future, CallFuture)
    assert future.state is CallState.PENDING
    assert _directions(activity, future.call_id) == ["-->"]

    transport.pending[0].set_result(b'{"status":"success","response":{"a":1}}')

    assert future.result(timeout=1) == {"a": 1}
    assert future.state is CallState.RESOLVED
    assert _directions(activity, future.call_id) == ["-->", "<--"]
    assert activity.entries[-1][2].endswith('<-- {"a":1}')


def test_call_async_rejects_with_codec_error(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport.pending[0].set_result(b'{"status":"failed"}')

    assert future.state is CallState.REJECTED
    with pytest.raises(UnknownApiError):
        future.result(timeout=1)
    assert activity.entries[-1][2].endswith("<-- Unknown Sellsy error")


def test_call_async_rejects_with_transport_error(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport.pending[0].set_exception(TransportError("HTTP 502 from x", status_code=502))

    with pytest.raises(TransportError) as exc_info:
        future.result(timeout=1)
    assert exc_info.value.status_code == 502
    assert _directions(activity, future.call_id) == ["-->", "<--"]
    assert activity.entries[-1][2].endswith("<-- HTTP 502 from x")


def test_cancel_forwards_to_transport_and_never_resolves(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport_future = transport.pending[0]

    assert future.cancel() is True
    assert transport_future.cancelled()
    assert future.state is CallState.CANCELLED
    with pytest.raises(concurrent.futures.CancelledError):
        future.result(timeout=1)
    assert activity.entries[-1][2].endswith("<-- cancelled")


def test_late_transport_result_after_cancel_is_dropped(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport_future = transport.pending[0]
    # request already on the wire: the transport future can no longer be cancelled
    assert transport_future.set_running_or_notify_cancel()

    assert future.cancel() is True
    assert not transport_future.cancelled()

    transport_future.set_result(b'{"status":"success","response":"stale"}')

    assert future.cancelled()
    with pytest.raises(concurrent.futures.CancelledError):
        future.result(timeout=1)
    assert _directions(activity, future.call_id) == ["-->", "<--"]


def test_transport_cancelled_first_cancels_call(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport.pending[0].cancel()
    assert future.state is CallState.CANCELLED


def test_concurrent_calls_have_distinct_ids_and_ordered_log_lines(transport, activity) -> None:
    client = _client(transport, activity)
    first = client.call_async("A")
    second = client.call_async("B")

    assert first.call_id != second.call_id

    transport.pending[1].set_result(b'{"status":"success","response":"b"}')
    transport.pending[0].set_result(b'{"status":"success","response":"a"}')

    assert first.result(timeout=1) == "a"
    assert second.result(timeout=1) == "b"
    for call_id in (first.call_id, second.call_id):
        assert _directions(activity, call_id) == ["-->", "<--"]


def test_call_async_with_closed_transport_rejects_future(activity) -> None:
    transport = RequestsTransport()
    transport.close()
    future = _client(transport, activity).call_async("M")

    with pytest.raises(TransportError, match="Transport closed"):
        future.result(timeout=1)


def test_close_only_releases_owned_transport(transport, activity) -> None:
    with _client(transport, activity):
        pass
    assert transport.closed is False

    client = SellsyClient("u", "us", "c", "cs", activity_logger=activity)
    assert isinstance(client.transport, RequestsTransport)
    client.close()
    with pytest.raises(TransportError):
        client.transport.post_async(client.endpoint, {}, [], True)


def test_call_async_runs_over_real_thread_pool(activity, monkeypatch) -> None:
    transport = RequestsTransport(max_workers=2)
    monkeypatch.setattr(
        transport, "post",
        lambda url, headers, fields, verify: json.dumps(
            {"status": "success", "response": json.loads(fields[2][1])["method"]}
        ).encode(),
    )
    client = _client(transport, activity)
    try:
        futures = [client.call_async(f"M{i}") for i in range(5)]
        assert [f.result(timeout=5) for f in futures] == [f"M{i}" for i in range(5)]
    finally:
        transport.close()
    assert len({f.call_id for f in futures}) == 5


DEEP_BODY = ('{"status":"success","response":' + "[" * 100000 + "]" * 100000 + "}").encode()


def test_call_async_rejects_deeply_nested_body(transport, activity) -> None:
    future = _client(transport, activity).call_async("M")
    transport.pending[0].set_result(DEEP_BODY)

    assert future.state is CallState.REJECTED
    with pytest.raises(MalformedResponseError):
        future.result(timeout=1)
    assert _directions(activity, future.call_id) == ["-->", "<--"]


def test_call_async_settles_on_unexpected_decode_failure(transport, activity, monkeypatch) -> None:
    import sellsy.client as client_mod

    def explode(body):
        raise RuntimeError("decoder bug")

    monkeypatch.setattr(client_mod, "decode_response", explode)
    future = _client(transport, activity).call_async("M")
    transport.pending[0].set_result(b"{}")

    with pytest.raises(RuntimeError, match="decoder bug"):
        future.result(timeout=1)
    assert activity.entries[-1][2].endswith("<-- decoder bug")


def test_call_logs_inbound_for_non_sellsy_errors(transport, activity) -> None:
    transport.error = ConnectionResetError("peer reset")
    with pytest.raises(ConnectionResetError):
        _client(transport, activity).call("M")

    assert [d for _, d, _ in activity.entries] == ["-->", "<--"]
    assert activity.entries[1][2].endswith("<-- peer reset")


def test_call_inbound_line_is_compact_json(transport, activity) -> None:
    transport.body = b'{"status":"success","response":{"a":[1,2],"b":null}}'
    _client(transport, activity).call("M", {"a": 1})

    (_, _, out_line), (_, _, in_line) = activity.entries
    assert out_line.endswith('--> {"method":"M","params":{"a":1}}')
    assert in_line.endswith('<-- {"a":[1,2],"b":null}')
