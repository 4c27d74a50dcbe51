from .messages import (
    BatchRequestItem,
    BatchResultItem,
    EventMessage,
    EventPayload,
    HelloAuthentication,
    HelloMessage,
    HelloPayload,
    IdentifiedMessage,
    IdentifiedPayload,
    IdentifyMessage,
    IdentifyPayload,
    Message,
    ReidentifyMessage,
    ReidentifyPayload,
    RequestBatchMessage,
    RequestBatchPayload,
    RequestBatchResponseMessage,
    RequestBatchResponsePayload,
    RequestMessage,
    RequestPayload,
    RequestResponseMessage,
    RequestResponsePayload,
    RequestStatusInfo,
)

__all__ = [
    "BatchRequestItem",
    "BatchResultItem",
    "EventMessage",
    "EventPayload",
    "HelloAuthentication",
    "HelloMessage",
    "HelloPayload",
    "IdentifiedMessage",
    "IdentifiedPayload",
    "IdentifyMessage",
    "IdentifyPayload",
    "Message",
    "ReidentifyMessage",
    "ReidentifyPayload",
    "RequestBatchMessage",
    "RequestBatchPayload",
    "RequestBatchResponseMessage",
    "RequestBatchResponsePayload",
    "RequestMessage",
    "RequestPayload",
    "RequestResponseMessage",
    "RequestResponsePayload",
    "RequestStatusInfo",
]
