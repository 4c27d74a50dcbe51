"""Helpers for parsing inbound frames and building outbound messages."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, TypeAdapter, ValidationError

from obsws.errors import ProtocolParseError, UnknownOpcodeError
from obsws.models import (
    BatchRequestItem,
    IdentifyMessage,
    IdentifyPayload,
    Message,
    ReidentifyMessage,
    ReidentifyPayload,
    RequestBatchMessage,
    RequestBatchPayload,
    RequestMessage,
    RequestPayload,
)
from obsws.protocol.constants import OpCode

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)
_KNOWN_OPS = frozenset(int(op) for op in OpCode)

BatchEntry = Tuple[str, str, Optional[Dict[str, Any]]]


def _compact(**fields: Any) -> Dict[str, Any]:
    return {key: value for key, value in fields.items() if value is not None}


def parse_message(raw: str | bytes) -> Message:
    """Decode a text frame into a typed message.

    Raises ``UnknownOpcodeError`` for well-formed frames whose opcode is not in
    the protocol table and ``ProtocolParseError`` for everything else that
    cannot be decoded.
    """

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProtocolParseError("Frame is not valid UTF-8") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolParseError("Invalid JSON frame", raw=raw) from exc
    if not isinstance(data, dict):
        raise ProtocolParseError("Frame must be a JSON object", raw=raw)

    op = data.get("op")
    if op is None or isinstance(op, bool) or not isinstance(op, int):
        raise ProtocolParseError("Frame is missing an integer opcode", raw=raw)
    if op not in _KNOWN_OPS:
        raise UnknownOpcodeError(op, raw=raw)
    try:
        return _MESSAGE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise ProtocolParseError(f"Invalid payload for opcode {op}: {exc}", raw=raw) from exc


def message_to_dict(message: BaseModel) -> Dict[str, Any]:
    """Return the wire dict for a message, omitting fields that were never set."""

    payload = getattr(message, "d")
    return {"op": getattr(message, "op"), "d": payload.model_dump(exclude_unset=True)}


def encode_message(message: BaseModel) -> str:
    return json.dumps(message_to_dict(message))


def make_identify_message(
    *,
    rpc_version: int,
    authentication: Optional[str] = None,
    event_subscriptions: Optional[int] = None,
) -> IdentifyMessage:
    payload = IdentifyPayload(
        **_compact(
            rpcVersion=rpc_version,
            authentication=authentication,
            eventSubscriptions=int(event_subscriptions) if event_subscriptions is not None else None,
        )
    )
    return IdentifyMessage(d=payload)


def make_reidentify_message(event_subscriptions: Optional[int]) -> ReidentifyMessage:
    mask = int(event_subscriptions) if event_subscriptions is not None else None
    return ReidentifyMessage(d=ReidentifyPayload(**_compact(eventSubscriptions=mask)))


def make_request_message(
    request_type: str,
    request_id: str,
    request_data: Optional[Dict[str, Any]] = None,
) -> RequestMessage:
    payload = RequestPayload(
        **_compact(requestType=request_type, requestId=request_id, requestData=request_data)
    )
    return RequestMessage(d=payload)


def make_batch_message(
    request_id: str,
    requests: Iterable[BatchEntry],
    *,
    halt_on_failure: Optional[bool] = None,
    execution_type: Optional[int] = None,
) -> RequestBatchMessage:
    items = [
        BatchRequestItem(**_compact(requestType=request_type, requestId=member_id, requestData=data))
        for request_type, member_id, data in requests
    ]
    payload = RequestBatchPayload(
        **_compact(
            requestId=request_id,
            haltOnFailure=halt_on_failure,
            executionType=int(execution_type) if execution_type is not None else None,
            requests=items,
        )
    )
    return RequestBatchMessage(d=payload)
