#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Mapping, TypeVar

import aiohttp

from .constants import UTF8, EndpointKind
from .errors import HttpError
from .history import APIEndpointHistory, RecordedCall, RecordedCallResponse, RequestSpec
from .models import SnowpipeAPIResponse
from .session_manager import SessionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

# transport level failures, re-raised as they are after being recorded
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def is_success(status_code: int) -> bool:
    return 200 <= status_code <= 299


class SnowpipeRestful:
    """Executes Snowpipe requests and classifies their responses.

    No request is ever retried. When `record_history` is on, every call that
    got a response (2xx or not) or failed at the transport level is appended to
    the endpoint's slice of `history` before the result or error is returned.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        history: APIEndpointHistory,
        record_history: bool = False,
        socket_timeout: int | None = None,
    ) -> None:
        self._session_manager = session_manager
        self._history = history
        self._record_history = record_history
        self._socket_timeout = socket_timeout

    def _record(
        self, kind: EndpointKind, spec: RequestSpec, response: RecordedCallResponse
    ) -> None:
        if self._record_history:
            self._history.append(kind, RecordedCall(request=spec, response=response))

    async def request(
        self,
        spec: RequestSpec,
        kind: EndpointKind,
        decode: Callable[[Mapping[str, Any]], T],
        body: bytes | None = None,
    ) -> SnowpipeAPIResponse[T]:
        """Sends one request and buffers the whole response body.

        Args:
            spec: the request to send.
            kind: which history slice the call is recorded in.
            decode: builds the typed payload from the parsed JSON document.
            body: optional request body.

        Raises:
            HttpError: the status code is outside of [200, 299].
            aiohttp.ClientError, asyncio.TimeoutError, OSError: transport failure.
        """
        logger.debug("%s %s", spec.method.value, spec.url)
        timeout = (
            aiohttp.ClientTimeout(total=self._socket_timeout)
            if self._socket_timeout
            else None
        )
        try:
            async with self._session_manager.use_session() as session:
                raw_ret = await session.request(
                    method=spec.method.value,
                    url=spec.url,
                    headers=dict(spec.headers),
                    data=body,
                    timeout=timeout,
                )
                try:
                    status_code = raw_ret.status
                    message_body = (await raw_ret.read()).decode(UTF8, errors="replace")
                finally:
                    raw_ret.close()  # ensure response is closed
        except TRANSPORT_ERRORS as err:
            logger.debug(
                "Hit transport error on %s %s: %s",
                spec.method.value,
                spec.url,
                err,
                exc_info=True,
            )
            self._record(kind, spec, RecordedCallResponse(error=err))
            raise

        logger.debug("status code: %s", status_code)
        self._record(
            kind,
            spec,
            RecordedCallResponse(status_code=status_code, message_body=message_body),
        )

        if not is_success(status_code):
            raise HttpError(status_code, message_body)

        return SnowpipeAPIResponse(
            payload=self._decode_payload(message_body, status_code, decode),
            raw_response=message_body,
            status_code=status_code,
        )

    @staticmethod
    def _decode_payload(
        message_body: str,
        status_code: int,
        decode: Callable[[Mapping[str, Any]], T],
    ) -> T | None:
        try:
            data = json.loads(message_body)
        except ValueError:
            logger.warning(
                "unable to parse response (expecting valid JSON on a %s status code): %s",
                status_code,
                message_body,
            )
            return None

        try:
            return decode(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(
                "unexpected response shape on a %s status code (%r): %s",
                status_code,
                e,
                message_body,
            )
            return None
