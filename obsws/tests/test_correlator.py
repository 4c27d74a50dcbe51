import asyncio
import itertools
import logging

import pytest
from pydantic import ValidationError

from obsws.errors import ConnectionClosedError, NotConnectedError, RequestFailure
from obsws.models import RequestBatchResponsePayload, RequestResponsePayload
from obsws.network.correlator import RequestCorrelator
from obsws.protocol.codec import message_to_dict


class _Recorder:
    def __init__(self) -> None:
        self.sent = []

    async def send(self, message) -> None:
        self.sent.append(message_to_dict(message))


def _make_correlator(ready: bool = True):
    recorder = _Recorder()
    counter = itertools.count(1)
    correlator = RequestCorrelator(
        send=recorder.send,
        is_ready=lambda: ready,
        id_factory=lambda: f"req-{next(counter)}",
    )
    return correlator, recorder


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _response(request_id: str, request_type: str, *, ok: bool = True, data=None, code: int = 100, comment=None):
    status = {"result": ok, "code": code}
    if comment is not None:
        status["comment"] = comment
    payload = {"requestType": request_type, "requestId": request_id, "requestStatus": status}
    if data is not None:
        payload["responseData"] = data
    return RequestResponsePayload.model_validate(payload)


@pytest.mark.asyncio
async def test_call_fails_before_sending_when_not_ready():
    correlator, recorder = _make_correlator(ready=False)

    with pytest.raises(NotConnectedError):
        await correlator.call("GetVersion")

    assert recorder.sent == []
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_concurrent_calls_resolve_by_request_id():
    correlator, recorder = _make_correlator()

    first = asyncio.create_task(correlator.call("GetVersion"))
    second = asyncio.create_task(correlator.call("GetStats"))
    await _settle()

    ids = {frame["d"]["requestType"]: frame["d"]["requestId"] for frame in recorder.sent}
    assert ids["GetVersion"] != ids["GetStats"]
    assert correlator.pending_count == 2

    correlator.handle_response(_response(ids["GetStats"], "GetStats", data={"cpuUsage": 1.5}))
    correlator.handle_response(_response(ids["GetVersion"], "GetVersion", data={"obsVersion": "30.0.0"}))

    assert await second == {"cpuUsage": 1.5}
    assert await first == {"obsVersion": "30.0.0"}
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_call_resolves_none_without_response_data():
    correlator, recorder = _make_correlator()

    task = asyncio.create_task(correlator.call("StartStream"))
    await _settle()
    correlator.handle_response(_response(recorder.sent[0]["d"]["requestId"], "StartStream"))

    assert await task is None


@pytest.mark.asyncio
async def test_failed_status_rejects_with_request_failure():
    correlator, recorder = _make_correlator()

    task = asyncio.create_task(correlator.call("GetInputSettings", {"inputName": "Mic"}))
    await _settle()
    assert recorder.sent[0]["d"]["requestData"] == {"inputName": "Mic"}
    correlator.handle_response(
        _response(recorder.sent[0]["d"]["requestId"], "GetInputSettings", ok=False, code=600, comment="No input")
    )

    with pytest.raises(RequestFailure) as excinfo:
        await task
    assert excinfo.value.code == 600
    assert str(excinfo.value) == 'OBS request "GetInputSettings" failed: No input (code: 600)'


@pytest.mark.asyncio
async def test_missing_comment_becomes_unknown_error():
    correlator, recorder = _make_correlator()

    task = asyncio.create_task(correlator.call("GetVersion"))
    await _settle()
    correlator.handle_response(_response(recorder.sent[0]["d"]["requestId"], "GetVersion", ok=False, code=205))

    with pytest.raises(RequestFailure) as excinfo:
        await task
    assert excinfo.value.comment == "Unknown error"


def test_unknown_response_is_logged_and_dropped(caplog):
    correlator, _ = _make_correlator()

    with caplog.at_level(logging.WARNING, logger="obsws.network.correlator"):
        correlator.handle_response(_response("nobody", "GetVersion"))

    assert "Received response for unknown request: nobody" in caplog.text


@pytest.mark.asyncio
async def test_batch_rejects_on_first_failure_regardless_of_halt_flag():
    correlator, recorder = _make_correlator()

    task = asyncio.create_task(
        correlator.call_batch(
            [
                {"requestType": "GetVersion"},
                {"requestType": "GetInputSettings", "requestData": {"inputName": "Missing"}},
                {"requestType": "GetStats"},
            ],
            halt_on_failure=False,
        )
    )
    await _settle()

    frame = recorder.sent[0]
    assert frame["op"] == 8
    assert frame["d"]["haltOnFailure"] is False
    members = frame["d"]["requests"]
    assert len({member["requestId"] for member in members}) == 3

    correlator.handle_batch_response(
        RequestBatchResponsePayload.model_validate(
            {
                "requestId": frame["d"]["requestId"],
                "results": [
                    {
                        "requestType": "GetVersion",
                        "requestId": members[0]["requestId"],
                        "requestStatus": {"result": True, "code": 100},
                        "responseData": {"obsVersion": "30.0.0"},
                    },
                    {
                        "requestType": "GetInputSettings",
                        "requestId": members[1]["requestId"],
                        "requestStatus": {"result": False, "code": 600, "comment": "No source was found"},
                    },
                    {
                        "requestType": "GetStats",
                        "requestId": members[2]["requestId"],
                        "requestStatus": {"result": True, "code": 100},
                        "responseData": {"cpuUsage": 0.5},
                    },
                ],
            }
        )
    )

    with pytest.raises(RequestFailure) as excinfo:
        await task
    assert excinfo.value.request_type == "GetInputSettings"
    assert excinfo.value.code == 600
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_batch_maps_results_back_to_caller_order():
    correlator, recorder = _make_correlator()

    task = asyncio.create_task(
        correlator.call_batch([{"requestType": "GetVersion"}, {"requestType": "GetStats"}])
    )
    await _settle()
    frame = recorder.sent[0]
    members = frame["d"]["requests"]

    correlator.handle_batch_response(
        RequestBatchResponsePayload.model_validate(
            {
                "requestId": frame["d"]["requestId"],
                "results": [
                    {
                        "requestType": "GetStats",
                        "requestId": members[1]["requestId"],
                        "requestStatus": {"result": True, "code": 100},
                        "responseData": {"cpuUsage": 0.5},
                    },
                    {
                        "requestType": "GetVersion",
                        "requestId": members[0]["requestId"],
                        "requestStatus": {"result": True, "code": 100},
                    },
                ],
            }
        )
    )

    assert await task == [None, {"cpuUsage": 0.5}]


@pytest.mark.asyncio
async def test_fail_all_rejects_every_pending_entry():
    correlator, _ = _make_correlator()

    single = asyncio.create_task(correlator.call("GetVersion"))
    batch = asyncio.create_task(correlator.call_batch([{"requestType": "GetStats"}]))
    await _settle()

    assert correlator.fail_all(ConnectionClosedError(1006, "lost")) == 2

    for task in (single, batch):
        with pytest.raises(ConnectionClosedError):
            await task
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_rejected_arguments_leave_nothing_pending():
    correlator, recorder = _make_correlator()

    with pytest.raises(ValueError):
        await correlator.call("GetVersion", ["bad"])
    with pytest.raises(ValidationError):
        await correlator.call_batch([{"requestType": 5}])

    assert correlator.pending_count == 0
    assert correlator._pending == {}
    assert correlator._batches == {}
    assert recorder.sent == []


async def _start_batch(correlator, recorder, request_types):
    task = asyncio.create_task(correlator.call_batch([{"requestType": name} for name in request_types]))
    await _settle()
    frame = recorder.sent[-1]["d"]
    return task, frame["requestId"], [member["requestId"] for member in frame["requests"]]


def _ok(request_type, data=None, request_id=None):
    item = {"requestType": request_type, "requestStatus": {"result": True, "code": 100}}
    if request_id is not None:
        item["requestId"] = request_id
    if data is not None:
        item["responseData"] = data
    return item


def _batch_response(batch_id, results):
    return RequestBatchResponsePayload.model_validate({"requestId": batch_id, "results": results})


@pytest.mark.asyncio
async def test_batch_results_without_ids_map_by_position():
    correlator, recorder = _make_correlator()
    task, batch_id, _ = await _start_batch(correlator, recorder, ["GetVersion", "GetStats"])

    correlator.handle_batch_response(
        _batch_response(batch_id, [_ok("GetVersion", {"obsVersion": "30.0.0"}), _ok("GetStats")])
    )

    assert await task == [{"obsVersion": "30.0.0"}, None]
    assert correlator.pending_count == 0


@pytest.mark.asyncio
async def test_batch_duplicate_member_result_keeps_first(caplog):
    correlator, recorder = _make_correlator()
    task, batch_id, members = await _start_batch(correlator, recorder, ["GetVersion", "GetStats"])

    with caplog.at_level(logging.WARNING, logger="obsws.network.correlator"):
        correlator.handle_batch_response(
            _batch_response(
                batch_id,
                [
                    _ok("GetVersion", {"attempt": 1}, members[0]),
                    _ok("GetVersion", {"attempt": 2}, members[0]),
                    _ok("GetStats", {"cpuUsage": 0.5}, members[1]),
                ],
            )
        )

    assert await task == [{"attempt": 1}, {"cpuUsage": 0.5}]
    assert f"Duplicate result for batch member {members[0]}" in caplog.text


@pytest.mark.asyncio
async def test_batch_extra_results_are_ignored(caplog):
    correlator, recorder = _make_correlator()
    task, batch_id, _ = await _start_batch(correlator, recorder, ["GetVersion"])

    with caplog.at_level(logging.WARNING, logger="obsws.network.correlator"):
        correlator.handle_batch_response(
            _batch_response(batch_id, [_ok("GetVersion", {"n": 1}), _ok("GetVersion", {"n": 2})])
        )

    assert await task == [{"n": 1}]
    assert "returned more results than requests" in caplog.text


@pytest.mark.asyncio
async def test_batch_missing_results_resolve_to_none(caplog):
    correlator, recorder = _make_correlator()
    task, batch_id, members = await _start_batch(correlator, recorder, ["GetVersion", "GetStats"])

    with caplog.at_level(logging.WARNING, logger="obsws.network.correlator"):
        correlator.handle_batch_response(_batch_response(batch_id, [_ok("GetStats", {"cpuUsage": 0.5}, members[1])]))

    assert await task == [None, {"cpuUsage": 0.5}]
    assert "missing results for 1 member(s)" in caplog.text


def test_unknown_batch_response_is_logged_and_dropped(caplog):
    correlator, _ = _make_correlator()

    with caplog.at_level(logging.WARNING, logger="obsws.network.correlator"):
        correlator.handle_batch_response(_batch_response("nobody", [_ok("GetVersion")]))

    assert "Received batch response for unknown request: nobody" in caplog.text
    assert correlator.pending_count == 0
