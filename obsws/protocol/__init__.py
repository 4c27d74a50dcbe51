from .auth import generate_auth
from .codec import (
    encode_message,
    make_batch_message,
    make_identify_message,
    make_reidentify_message,
    make_request_message,
    message_to_dict,
    parse_message,
)
from .constants import (
    NORMAL_CLOSURE,
    EventSubscription,
    OpCode,
    RequestBatchExecutionType,
    RequestStatus,
    WebSocketCloseCode,
)

__all__ = [
    "generate_auth",
    "encode_message",
    "make_batch_message",
    "make_identify_message",
    "make_reidentify_message",
    "make_request_message",
    "message_to_dict",
    "parse_message",
    "NORMAL_CLOSURE",
    "EventSubscription",
    "OpCode",
    "RequestBatchExecutionType",
    "RequestStatus",
    "WebSocketCloseCode",
]
