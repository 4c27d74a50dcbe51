"""Request/response correlation for single requests and request batches."""

from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Collection, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from obsws.errors import NotConnectedError, RequestFailure
from obsws.models import (
    BatchResultItem,
    RequestBatchResponsePayload,
    RequestResponsePayload,
    RequestStatusInfo,
)
from obsws.protocol.codec import make_batch_message, make_request_message

LOGGER = logging.getLogger(__name__)


def new_request_id() -> str:
    return uuid.uuid4().hex


class RequestKind(enum.Enum):
    SINGLE = "single"
    BATCH_MEMBER = "batch_member"


@dataclass
class PendingRequest:
    request_id: str
    request_type: str
    kind: RequestKind = RequestKind.SINGLE
    future: Optional[asyncio.Future[Any]] = None
    batch_id: Optional[str] = None


@dataclass
class PendingBatch:
    request_id: str
    member_ids: List[str]
    member_types: List[str]
    future: asyncio.Future[List[Any]]
    collected: Dict[str, Union[Any, RequestFailure]] = field(default_factory=dict)

    def record(self, member_id: str, outcome: Union[Any, RequestFailure]) -> bool:
        """Store a member outcome; duplicates and unknown members are refused."""

        if member_id not in self.member_ids or member_id in self.collected:
            return False
        self.collected[member_id] = outcome
        return True

    @property
    def complete(self) -> bool:
        return len(self.collected) == len(self.member_ids)


@dataclass(frozen=True)
class BatchOutcome:
    """Aggregated batch result: either every payload, or the first failure."""

    results: Optional[List[Any]] = None
    failure: Optional[RequestFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def failure_from_status(status: RequestStatusInfo, request_type: str) -> RequestFailure:
    return RequestFailure(status.code, status.comment or "Unknown error", request_type)


def aggregate_batch(batch: PendingBatch, results: Sequence[BatchResultItem]) -> BatchOutcome:
    """Apply server results in server order and map them back to caller order.

    Results are matched by echoed ``requestId`` when the server provides one,
    by position otherwise. The first failing member in server order decides
    the outcome.
    """

    first_failure: Optional[RequestFailure] = None
    for index, item in enumerate(results):
        member_id = item.requestId if item.requestId in batch.member_ids else None
        if member_id is None:
            if index >= len(batch.member_ids):
                LOGGER.warning("Batch %s returned more results than requests; ignoring extra", batch.request_id)
                break
            member_id = batch.member_ids[index]
        if item.requestStatus.result:
            outcome: Union[Any, RequestFailure] = item.responseData
        else:
            outcome = failure_from_status(item.requestStatus, item.requestType)
        if not batch.record(member_id, outcome):
            LOGGER.warning("Duplicate result for batch member %s in batch %s", member_id, batch.request_id)
            continue
        if first_failure is None and isinstance(outcome, RequestFailure):
            first_failure = outcome

    if first_failure is not None:
        return BatchOutcome(failure=first_failure)
    if not batch.complete:
        missing = [member for member in batch.member_ids if member not in batch.collected]
        LOGGER.warning("Batch %s missing results for %s member(s)", batch.request_id, len(missing))
    return BatchOutcome(results=[batch.collected.get(member_id) for member_id in batch.member_ids])


@dataclass
class RequestCorrelator:
    """Owns the outstanding request/batch maps for one session."""

    send: Callable[[BaseModel], Awaitable[None]]
    is_ready: Callable[[], bool]
    logger: Union[logging.Logger, logging.LoggerAdapter] = LOGGER
    id_factory: Callable[[], str] = new_request_id

    _pending: Dict[str, PendingRequest] = field(default_factory=dict, init=False, repr=False)
    _batches: Dict[str, PendingBatch] = field(default_factory=dict, init=False, repr=False)

    @property
    def pending_count(self) -> int:
        return sum(1 for entry in self._pending.values() if entry.kind is RequestKind.SINGLE) + len(self._batches)

    def _new_id(self, taken: Collection[str] = ()) -> str:
        while True:
            request_id = self.id_factory()
            if request_id not in self._pending and request_id not in self._batches and request_id not in taken:
                return request_id

    async def call(self, request_type: str, request_data: Optional[Mapping[str, Any]] = None) -> Any:
        if not self.is_ready():
            raise NotConnectedError()
        request_id = self._new_id()
        message = make_request_message(
            request_type,
            request_id,
            dict(request_data) if request_data is not None else None,
        )
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(request_id, request_type, future=future)
        try:
            await self.send(message)
            return await future
        finally:
            entry = self._pending.get(request_id)
            if entry is not None and entry.future is future:
                del self._pending[request_id]

    async def call_batch(
        self,
        requests: Sequence[Mapping[str, Any]],
        *,
        halt_on_failure: Optional[bool] = None,
        execution_type: Optional[int] = None,
    ) -> List[Any]:
        """Send ``requests`` as one RequestBatch and return payloads in caller order.

        Each request is a mapping with ``requestType`` and optional
        ``requestData``. Member ids are always generated here.
        """

        if not self.is_ready():
            raise NotConnectedError()
        member_types = [request["requestType"] for request in requests]
        batch_id = self._new_id()
        member_ids: List[str] = []
        entries = []
        for request, request_type in zip(requests, member_types):
            member_id = self._new_id(taken={batch_id, *member_ids})
            member_ids.append(member_id)
            data = request.get("requestData")
            entries.append((request_type, member_id, dict(data) if data is not None else None))
        message = make_batch_message(
            batch_id,
            entries,
            halt_on_failure=halt_on_failure,
            execution_type=execution_type,
        )

        # nothing is registered until the frame has been built
        future: asyncio.Future[List[Any]] = asyncio.get_running_loop().create_future()
        batch = PendingBatch(batch_id, member_ids, member_types, future)
        self._batches[batch_id] = batch
        for member_id, request_type in zip(member_ids, member_types):
            self._pending[member_id] = PendingRequest(
                member_id,
                request_type,
                kind=RequestKind.BATCH_MEMBER,
                batch_id=batch_id,
            )
        try:
            await self.send(message)
            return await future
        finally:
            if self._batches.get(batch_id) is batch:
                self._drop_batch(batch)

    def handle_response(self, payload: RequestResponsePayload) -> None:
        entry = self._pending.get(payload.requestId)
        if entry is None or entry.kind is not RequestKind.SINGLE:
            self.logger.warning("Received response for unknown request: %s", payload.requestId)
            return
        del self._pending[payload.requestId]
        future = entry.future
        if future is None or future.done():
            return
        status = payload.requestStatus
        if status.result:
            future.set_result(payload.responseData)
        else:
            future.set_exception(failure_from_status(status, payload.requestType))

    def handle_batch_response(self, payload: RequestBatchResponsePayload) -> None:
        batch = self._batches.get(payload.requestId)
        if batch is None:
            self.logger.warning("Received batch response for unknown request: %s", payload.requestId)
            return
        self._drop_batch(batch)
        outcome = aggregate_batch(batch, payload.results)
        if batch.future.done():
            return
        if outcome.ok:
            batch.future.set_result(outcome.results or [])
        else:
            batch.future.set_exception(outcome.failure)

    def fail_all(self, exc: BaseException) -> int:
        """Reject every outstanding request and batch; return how many were failed."""

        failed = 0
        pending = list(self._pending.values())
        batches = list(self._batches.values())
        self._pending.clear()
        self._batches.clear()
        for entry in pending:
            if entry.future is not None and not entry.future.done():
                entry.future.set_exception(exc)
                failed += 1
        for batch in batches:
            if not batch.future.done():
                batch.future.set_exception(exc)
                failed += 1
        if failed:
            self.logger.debug("Failed %s pending request(s): %s", failed, exc)
        return failed

    def _drop_batch(self, batch: PendingBatch) -> None:
        self._batches.pop(batch.request_id, None)
        for member_id in batch.member_ids:
            entry = self._pending.get(member_id)
            if entry is not None and entry.batch_id == batch.request_id:
                del self._pending[member_id]
