"""Pydantic models for the OBS WebSocket v5 wire messages.

Every frame is ``{"op": <int>, "d": {...}}``. Field names follow the wire
protocol (camelCase) so models round-trip without aliases.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Payload(BaseModel):
    model_config = ConfigDict(extra="allow")


class HelloAuthentication(_Payload):
    challenge: str
    salt: str


class HelloPayload(_Payload):
    obsWebSocketVersion: str
    rpcVersion: int
    authentication: Optional[HelloAuthentication] = None


class IdentifyPayload(_Payload):
    rpcVersion: int
    authentication: Optional[str] = None
    eventSubscriptions: Optional[int] = None


class IdentifiedPayload(_Payload):
    negotiatedRpcVersion: int


class ReidentifyPayload(_Payload):
    eventSubscriptions: Optional[int] = None


class EventPayload(_Payload):
    eventType: str
    eventIntent: int
    eventData: Optional[Dict[str, Any]] = None


class RequestPayload(_Payload):
    requestType: str
    requestId: str
    requestData: Optional[Dict[str, Any]] = None


class RequestStatusInfo(_Payload):
    result: bool
    code: int
    comment: Optional[str] = None


class RequestResponsePayload(_Payload):
    requestType: str
    requestId: str
    requestStatus: RequestStatusInfo
    responseData: Optional[Dict[str, Any]] = None


class BatchRequestItem(_Payload):
    requestType: str
    requestId: Optional[str] = None
    requestData: Optional[Dict[str, Any]] = None


class RequestBatchPayload(_Payload):
    requestId: str
    haltOnFailure: Optional[bool] = None
    executionType: Optional[int] = None
    requests: List[BatchRequestItem]


class BatchResultItem(_Payload):
    requestType: str
    requestId: Optional[str] = None
    requestStatus: RequestStatusInfo
    responseData: Optional[Dict[str, Any]] = None


class RequestBatchResponsePayload(_Payload):
    requestId: str
    results: List[BatchResultItem]


class HelloMessage(BaseModel):
    op: Literal[0] = 0
    d: HelloPayload


class IdentifyMessage(BaseModel):
    op: Literal[1] = 1
    d: IdentifyPayload


class IdentifiedMessage(BaseModel):
    op: Literal[2] = 2
    d: IdentifiedPayload


class ReidentifyMessage(BaseModel):
    op: Literal[3] = 3
    d: ReidentifyPayload


class EventMessage(BaseModel):
    op: Literal[5] = 5
    d: EventPayload


class RequestMessage(BaseModel):
    op: Literal[6] = 6
    d: RequestPayload


class RequestResponseMessage(BaseModel):
    op: Literal[7] = 7
    d: RequestResponsePayload


class RequestBatchMessage(BaseModel):
    op: Literal[8] = 8
    d: RequestBatchPayload


class RequestBatchResponseMessage(BaseModel):
    op: Literal[9] = 9
    d: RequestBatchResponsePayload


Message = Annotated[
    Union[
        HelloMessage,
        IdentifyMessage,
        IdentifiedMessage,
        ReidentifyMessage,
        EventMessage,
        RequestMessage,
        RequestResponseMessage,
        RequestBatchMessage,
        RequestBatchResponseMessage,
    ],
    Field(discriminator="op"),
]
