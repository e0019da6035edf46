#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from logging import getLogger
from types import TracebackType
from typing import Sequence

from .auth.keypair import KeyPairTokenSigner, PrivateKey
from .constants import (
    BEGIN_MARK,
    CONTENT_TYPE_APPLICATION_JSON,
    CONTENT_TYPE_TEXT_PLAIN,
    DEFAULT_SOCKET_TIMEOUT,
    END_TIME_EXCLUSIVE,
    ENV_VAR_SOCKET_TIMEOUT,
    HTTP_HEADER_ACCEPT,
    HTTP_HEADER_AUTHORIZATION,
    HTTP_HEADER_BEARER_TOKEN,
    HTTP_HEADER_CONTENT_LENGTH,
    HTTP_HEADER_CONTENT_TYPE,
    HTTP_HEADER_USER_AGENT,
    INSERT_FILES_PATH,
    INSERT_REPORT_PATH,
    LOAD_HISTORY_SCAN_PATH,
    REQUEST_ID,
    START_TIME_INCLUSIVE,
    UTF8,
    EndpointKind,
    HttpMethod,
)
from .description import USER_AGENT
from .errorcode import ER_INVALID_VALUE
from .errors import ProgrammingError
from .history import APIEndpointHistory, RequestSpec
from .models import (
    InsertFilesResponse,
    InsertReportResponse,
    LoadHistoryScanResponse,
    SnowpipeAPIResponse,
)
from .network import SnowpipeRestful
from .session_manager import AioHttpConfig, SessionManager
from .url_util import build_path, construct_hostname, generate_request_id

logger = getLogger(__name__)


@dataclass(frozen=True)
class SnowpipeAPIOptions:
    """Client options.

    record_history: keep every request/response pair in `endpoint_history`.
        The history grows without bound; long-lived clients should leave this
        off or call `endpoint_history.clear()` periodically.
    socket_timeout: total time allowed for one request, in seconds. Defaults to
        the SNOWPIPE_SOCKET_TIMEOUT environment variable, or 60.
    use_pooling: reuse one HTTP session for the lifetime of the client.
    """

    record_history: bool = False
    socket_timeout: int | None = None
    use_pooling: bool = True


@dataclass(frozen=True)
class SnowpipeConfig:
    username: str
    account: str
    hostname: str
    private_key: PrivateKey = field(repr=False)
    private_key_passphrase: bytes | str | None = field(default=None, repr=False)


class SnowpipeAPI:
    """Asynchronous client of the Snowpipe REST API.

    Every call mints a fresh bearer token and request id, sends a single
    request and returns the typed result. Nothing is retried.

    Example:
        async with SnowpipeAPI("loader", pem_key, "myaccount") as api:
            await api.insert_files("DB.SCHEMA.PIPE", ["a.csv", "b.csv"])
    """

    def __init__(
        self,
        username: str,
        private_key: PrivateKey,
        account: str,
        region_id: str | None = None,
        cloud_provider: str | None = None,
        options: SnowpipeAPIOptions | None = None,
        *,
        private_key_passphrase: bytes | str | None = None,
        session_manager: SessionManager | None = None,
    ) -> None:
        """Inits SnowpipeAPI.

        Args:
            username: user created in Snowflake with a public key assigned.
            private_key: the user's private key, used to sign bearer tokens.
            account: account identifier provided by Snowflake.
            region_id: region of non-default deployments, e.g. us-central1.
            cloud_provider: cloud of non-AWS deployments, e.g. gcp.
            options: client options, see SnowpipeAPIOptions.
            private_key_passphrase: passphrase of an encrypted private key.
            session_manager: provides the HTTP sessions; built from options when omitted.
        """
        if not username:
            raise ProgrammingError(msg="username is required", errno=ER_INVALID_VALUE)
        if not account:
            raise ProgrammingError(msg="account is required", errno=ER_INVALID_VALUE)

        self._options = options or SnowpipeAPIOptions()
        self._config = SnowpipeConfig(
            username=username.upper(),
            account=account.upper(),
            hostname=construct_hostname(account, region_id, cloud_provider),
            private_key=private_key,
            private_key_passphrase=private_key_passphrase,
        )
        self._signer = KeyPairTokenSigner(
            account=self._config.account,
            user=self._config.username,
            private_key=private_key,
            private_key_passphrase=private_key_passphrase,
        )
        self._session_manager = session_manager or SessionManager(
            AioHttpConfig(use_pooling=self._options.use_pooling)
        )
        self._endpoint_history = APIEndpointHistory()
        self._rest = SnowpipeRestful(
            self._session_manager,
            self._endpoint_history,
            record_history=self._options.record_history,
            socket_timeout=self._resolve_socket_timeout(self._options),
        )
        logger.debug(
            "Snowpipe client created for %s on %s",
            self._signer.qualified_username,
            self._config.hostname,
        )

    @staticmethod
    def _resolve_socket_timeout(options: SnowpipeAPIOptions) -> int:
        if options.socket_timeout is not None:
            return options.socket_timeout
        return int(os.getenv(ENV_VAR_SOCKET_TIMEOUT, DEFAULT_SOCKET_TIMEOUT))

    @property
    def config(self) -> SnowpipeConfig:
        return self._config

    @property
    def hostname(self) -> str:
        return self._config.hostname

    @property
    def endpoint_history(self) -> APIEndpointHistory:
        """Recorded request/response pairs, per endpoint."""
        return self._endpoint_history

    @property
    def fingerprint(self) -> str:
        """Public key fingerprint, comparable with RSA_PUBLIC_KEY_FP of DESC USER."""
        return self._signer.fingerprint()

    async def close(self) -> None:
        await self._session_manager.close()

    async def __aenter__(self) -> SnowpipeAPI:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _request_spec(
        self,
        method: HttpMethod,
        path: str,
        extra_headers: dict[str, str] | None = None,
    ) -> RequestSpec:
        headers = dict(extra_headers or {})
        headers[HTTP_HEADER_AUTHORIZATION] = HTTP_HEADER_BEARER_TOKEN.format(
            token=self._signer.mint()
        )
        headers[HTTP_HEADER_USER_AGENT] = USER_AGENT
        headers[HTTP_HEADER_ACCEPT] = CONTENT_TYPE_APPLICATION_JSON
        return RequestSpec(
            method=method,
            host=self._config.hostname,
            path=path,
            headers=headers,
        )

    @staticmethod
    def _check_pipe_name(pipe_name: str) -> None:
        if not pipe_name:
            raise ProgrammingError(
                msg="pipe name is required, e.g. myDatabase.mySchema.myPipe",
                errno=ER_INVALID_VALUE,
            )

    @staticmethod
    def build_insert_files_body(
        filenames: Sequence[str], post_json: bool = False
    ) -> tuple[str, str]:
        """Returns the content type and the body listing `filenames`."""
        if post_json:
            return CONTENT_TYPE_APPLICATION_JSON, json.dumps(
                {"files": [{"path": filename} for filename in filenames]},
                separators=(",", ":"),
            )
        return CONTENT_TYPE_TEXT_PLAIN, "\n".join(filenames)

    async def insert_files(
        self,
        pipe_name: str,
        filenames: Sequence[str],
        post_json: bool = False,
        request_id: str | None = None,
    ) -> SnowpipeAPIResponse[InsertFilesResponse]:
        """Registers staged files for ingestion.

        Args:
            pipe_name: case-sensitive, fully-qualified pipe name, e.g. myDatabase.mySchema.myPipe.
            filenames: paths of the files, relative to the pipe's stage location.
            post_json: send the list as JSON instead of newline separated text.
            request_id: unique id of this logical request; generated when omitted.
        """
        self._check_pipe_name(pipe_name)
        if isinstance(filenames, str) or not filenames:
            raise ProgrammingError(
                msg="filenames must be a non-empty list of paths",
                errno=ER_INVALID_VALUE,
            )

        content_type, post_body = self.build_insert_files_body(filenames, post_json)
        data = post_body.encode(UTF8)
        spec = self._request_spec(
            HttpMethod.POST,
            build_path(
                INSERT_FILES_PATH.format(pipe_name=pipe_name),
                [(REQUEST_ID, request_id or generate_request_id())],
            ),
            {
                HTTP_HEADER_CONTENT_TYPE: content_type,
                HTTP_HEADER_CONTENT_LENGTH: str(len(data)),
            },
        )
        return await self._rest.request(
            spec, EndpointKind.INSERT_FILES, InsertFilesResponse.from_json, body=data
        )

    async def insert_report(
        self,
        pipe_name: str,
        begin_mark: str | None = None,
        request_id: str | None = None,
    ) -> SnowpipeAPIResponse[InsertReportResponse]:
        """Fetches a report about files recently ingested into the table.

        Args:
            pipe_name: case-sensitive, fully-qualified pipe name.
            begin_mark: `next_begin_mark` of a previous report; omitted when None.
            request_id: unique id of this logical request; generated when omitted.
        """
        self._check_pipe_name(pipe_name)
        spec = self._request_spec(
            HttpMethod.GET,
            build_path(
                INSERT_REPORT_PATH.format(pipe_name=pipe_name),
                [
                    (REQUEST_ID, request_id or generate_request_id()),
                    (BEGIN_MARK, begin_mark),
                ],
            ),
        )
        return await self._rest.request(
            spec, EndpointKind.INSERT_REPORT, InsertReportResponse.from_json
        )

    async def load_history_scan(
        self,
        pipe_name: str,
        start_time_inclusive: str,
        end_time_exclusive: str | None = None,
        request_id: str | None = None,
    ) -> SnowpipeAPIResponse[LoadHistoryScanResponse]:
        """Fetches the load history between two points in time.

        At most 10,000 entries are returned; issue more calls to cover the
        rest of the window.

        Args:
            pipe_name: case-sensitive, fully-qualified pipe name.
            start_time_inclusive: ISO-8601 start of the window.
            end_time_exclusive: ISO-8601 end of the window; CURRENT_TIMESTAMP() when None.
            request_id: unique id of this logical request; generated when omitted.
        """
        self._check_pipe_name(pipe_name)
        if not start_time_inclusive:
            raise ProgrammingError(
                msg="start_time_inclusive is required", errno=ER_INVALID_VALUE
            )
        spec = self._request_spec(
            HttpMethod.GET,
            build_path(
                LOAD_HISTORY_SCAN_PATH.format(pipe_name=pipe_name),
                [
                    (START_TIME_INCLUSIVE, start_time_inclusive),
                    (REQUEST_ID, request_id or generate_request_id()),
                    (END_TIME_EXCLUSIVE, end_time_exclusive),
                ],
            ),
        )
        return await self._rest.request(
            spec, EndpointKind.LOAD_HISTORY_SCAN, LoadHistoryScanResponse.from_json
        )
