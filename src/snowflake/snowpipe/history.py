#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from logging import getLogger
from typing import Iterator, Mapping

from .constants import HTTPS_PORT, EndpointKind, HttpMethod

logger = getLogger(__name__)


@dataclass(frozen=True)
class RequestSpec:
    """Description of one outbound HTTPS request."""

    method: HttpMethod
    host: str
    path: str
    headers: Mapping[str, str]
    port: int = HTTPS_PORT

    @property
    def url(self) -> str:
        return f"https://{self.host}:{self.port}{self.path}"


@dataclass(frozen=True)
class RecordedCallResponse:
    """Either the status code and body received, or the transport error raised."""

    status_code: int | None = None
    message_body: str | None = None
    error: BaseException | None = None


@dataclass(frozen=True)
class RecordedCall:
    request: RequestSpec
    response: RecordedCallResponse


@dataclass
class APIEndpointHistory:
    """Append-only call history, one ordered slice per endpoint.

    Appends are serialized with a lock so concurrent calls never lose entries.
    Entries are kept in memory until `clear` is called.
    """

    insert_files: list[RecordedCall] = field(default_factory=list)
    insert_report: list[RecordedCall] = field(default_factory=list)
    load_history_scan: list[RecordedCall] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def calls(self, kind: EndpointKind) -> list[RecordedCall]:
        return getattr(self, kind.value)

    def append(self, kind: EndpointKind, call: RecordedCall) -> None:
        with self._lock:
            self.calls(kind).append(call)
        logger.debug("recorded %s call: %s", kind.value, call.request.path)

    def clear(self) -> None:
        with self._lock:
            for kind in EndpointKind:
                self.calls(kind).clear()

    def __iter__(self) -> Iterator[tuple[EndpointKind, list[RecordedCall]]]:
        for kind in EndpointKind:
            yield kind, self.calls(kind)
