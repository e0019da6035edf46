#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

from __future__ import annotations

import asyncio
import json
import re
from unittest import mock
from urllib.parse import parse_qsl, urlsplit

import aiohttp
import jwt
import pytest

from snowflake.snowpipe import (
    HttpError,
    ProgrammingError,
    SnowpipeAPI,
    SnowpipeAPIOptions,
)
from snowflake.snowpipe.auth import KeyPairTokenSigner
from snowflake.snowpipe.constants import LoadStatus
from snowflake.snowpipe.description import USER_AGENT
from snowflake.snowpipe.errorcode import ER_INVALID_PRIVATE_KEY, ER_INVALID_VALUE

from .mock_utils import FakeResponse, mock_session_manager

PIPE = "MyDb.MySchema.MyPipe"
INSERT_FILES_OK = json.dumps({"requestId": "abc", "responseCode": "SUCCESS"})
INSERT_REPORT_OK = json.dumps(
    {
        "pipe": PIPE,
        "completeResult": True,
        "nextBeginMark": "1_1",
        "files": [
            {
                "path": "a.csv",
                "stageLocation": "s3://bucket/",
                "fileSize": 10,
                "timeReceived": "2020-01-01T00:00:00.000Z",
                "lastInsertTime": "2020-01-01T00:00:01.000Z",
                "rowsInserted": 1,
                "rowsParsed": 1,
                "errorsSeen": 0,
                "errorLimit": 1,
                "complete": True,
                "status": "LOADED",
            }
        ],
    }
)
LOAD_HISTORY_SCAN_OK = json.dumps(
    {
        "pipe": PIPE,
        "completeResult": "false",
        "startTimeInclusive": "2020-01-01T00:00:00.000Z",
        "endTimeExclusive": "2020-01-02T00:00:00.000Z",
        "rangeStartTime": "2020-01-01T00:00:00.000Z",
        "rangeEndTime": "2020-01-01T12:00:00.000Z",
        "files": [],
    }
)


def _api(private_key, *responses, record_history=True, **kwargs):
    manager = mock_session_manager(*(responses or (FakeResponse(200, "{}"),)))
    api = SnowpipeAPI(
        "loader",
        private_key,
        "acme",
        options=SnowpipeAPIOptions(record_history=record_history, **kwargs),
        session_manager=manager,
    )
    return api, manager.fake_session


def _split(url: str):
    parts = urlsplit(url)
    return parts.path, parts.query, dict(parse_qsl(parts.query))


def test_construction(rsa_private_key_pem):
    api = SnowpipeAPI(
        "loader", rsa_private_key_pem, "acme", "us-central1", "gcp"
    )
    assert api.hostname == "acme.us-central1.gcp.snowflakecomputing.com"
    assert api.config.username == "LOADER"
    assert api.config.account == "ACME"
    assert api.config.hostname == api.hostname
    assert rsa_private_key_pem not in repr(api.config)


def test_construction_default_hostname(rsa_private_key_pem):
    api = SnowpipeAPI("loader", rsa_private_key_pem, "ACME")
    assert api.hostname == "ACME.snowflakecomputing.com"


@pytest.mark.parametrize("username, account", [("", "acme"), ("loader", "")])
def test_construction_requires_username_and_account(rsa_private_key_pem, username, account):
    with pytest.raises(ProgrammingError) as ex:
        SnowpipeAPI(username, rsa_private_key_pem, account)
    assert ex.value.errno == ER_INVALID_VALUE


def test_fingerprint(rsa_private_key, rsa_private_key_pem):
    api = SnowpipeAPI("loader", rsa_private_key_pem, "acme")
    assert api.fingerprint == KeyPairTokenSigner.calculate_public_key_fingerprint(
        rsa_private_key
    )


def test_endpoint_history_is_a_read_only_field(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem)
    assert api.endpoint_history is api.endpoint_history
    with pytest.raises(AttributeError):
        api.endpoint_history = None


async def test_insert_files_text(rsa_private_key, rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_FILES_OK))

    ret = await api.insert_files(PIPE, ["a.csv", "b.csv"])

    assert ret.payload.response_code == "SUCCESS"
    sent = session.requests[0]
    assert sent["method"] == "POST"
    assert sent["data"] == b"a.csv\nb.csv"
    assert sent["url"].startswith("https://acme.snowflakecomputing.com:443/")
    path, _, query = _split(sent["url"])
    assert path == f"/v1/data/pipes/{PIPE}/insertFiles"
    assert list(query) == ["requestId"]
    assert re.fullmatch("[0-9a-f]{32}", query["requestId"])

    headers = sent["headers"]
    assert headers["Content-Type"] == "text/plain"
    assert headers["Content-Length"] == str(len(b"a.csv\nb.csv"))
    assert headers["User-Agent"] == USER_AGENT
    assert headers["Accept"] == "application/json"
    assert headers["Authorization"].startswith("Bearer ")
    claims = jwt.decode(
        headers["Authorization"][len("Bearer ") :],
        rsa_private_key.public_key(),
        algorithms=["RS256"],
        leeway=10,
    )
    assert claims["sub"] == "ACME.LOADER"
    assert claims["iss"] == f"ACME.LOADER.{api.fingerprint}"


async def test_insert_files_json(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_FILES_OK))

    await api.insert_files(PIPE, ["a.csv", "b.csv"], post_json=True)

    sent = session.requests[0]
    assert sent["data"] == b'{"files":[{"path":"a.csv"},{"path":"b.csv"}]}'
    assert sent["headers"]["Content-Type"] == "application/json"
    assert sent["headers"]["Content-Length"] == str(len(sent["data"]))


def test_build_insert_files_body():
    assert SnowpipeAPI.build_insert_files_body(["a.csv", "b.csv"]) == (
        "text/plain",
        "a.csv\nb.csv",
    )
    assert SnowpipeAPI.build_insert_files_body(["a.csv", "b.csv"], post_json=True) == (
        "application/json",
        '{"files":[{"path":"a.csv"},{"path":"b.csv"}]}',
    )


async def test_insert_files_content_length_counts_bytes(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_FILES_OK))

    await api.insert_files(PIPE, ["données.csv"])

    sent = session.requests[0]
    assert sent["headers"]["Content-Length"] == str(len("données.csv".encode("utf-8")))


@pytest.mark.parametrize("filenames", [[], "a.csv"])
async def test_insert_files_requires_a_list(rsa_private_key_pem, filenames):
    api, session = _api(rsa_private_key_pem)
    with pytest.raises(ProgrammingError) as ex:
        await api.insert_files(PIPE, filenames)
    assert ex.value.errno == ER_INVALID_VALUE
    assert session.requests == []


async def test_insert_files_with_request_id(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_FILES_OK))

    await api.insert_files(PIPE, ["a.csv"], request_id="my-request-1")

    _, _, query = _split(session.requests[0]["url"])
    assert query["requestId"] == "my-request-1"


async def test_insert_report_without_begin_mark(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    ret = await api.insert_report(PIPE)

    assert ret.payload.next_begin_mark == "1_1"
    assert ret.payload.files[0].status is LoadStatus.LOADED
    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["data"] is None
    assert "Content-Type" not in sent["headers"]
    path, raw_query, query = _split(sent["url"])
    assert path == f"/v1/data/pipes/{PIPE}/insertReport"
    assert "beginMark" not in raw_query
    assert list(query) == ["requestId"]


async def test_insert_report_with_begin_mark(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    await api.insert_report(PIPE, "mark123")

    assert session.requests[0]["url"].endswith("&beginMark=mark123")


async def test_load_history_scan(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, LOAD_HISTORY_SCAN_OK))

    ret = await api.load_history_scan(PIPE, "2020-01-01T00:00:00+00:00")

    assert ret.payload.complete_result is False
    assert ret.payload.range_end_time == "2020-01-01T12:00:00.000Z"
    sent = session.requests[0]
    assert sent["method"] == "GET"
    path, raw_query, query = _split(sent["url"])
    assert path == f"/v1/data/pipes/{PIPE}/loadHistoryScan"
    assert raw_query.startswith("startTimeInclusive=2020-01-01T00%3A00%3A00%2B00%3A00&")
    assert list(query) == ["startTimeInclusive", "requestId"]
    assert query["startTimeInclusive"] == "2020-01-01T00:00:00+00:00"


async def test_load_history_scan_with_end_time(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, LOAD_HISTORY_SCAN_OK))

    await api.load_history_scan(
        PIPE, "2020-01-01T00:00:00Z", "2020-01-02T00:00:00Z", request_id="r1"
    )

    _, _, query = _split(session.requests[0]["url"])
    assert list(query) == ["startTimeInclusive", "requestId", "endTimeExclusive"]
    assert query == {
        "startTimeInclusive": "2020-01-01T00:00:00Z",
        "requestId": "r1",
        "endTimeExclusive": "2020-01-02T00:00:00Z",
    }


async def test_load_history_scan_requires_start_time(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem)
    with pytest.raises(ProgrammingError):
        await api.load_history_scan(PIPE, "")
    assert session.requests == []


@pytest.mark.parametrize(
    "call",
    [
        lambda api: api.insert_files("", ["a.csv"]),
        lambda api: api.insert_report(""),
        lambda api: api.load_history_scan("", "2020-01-01T00:00:00Z"),
    ],
)
async def test_pipe_name_is_required(rsa_private_key_pem, call):
    api, session = _api(rsa_private_key_pem)
    with pytest.raises(ProgrammingError) as ex:
        await call(api)
    assert ex.value.errno == ER_INVALID_VALUE
    assert session.requests == []


async def test_request_ids_differ_across_calls(rsa_private_key_pem):
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    for _ in range(5):
        await api.insert_report(PIPE)

    request_ids = {_split(r["url"])[2]["requestId"] for r in session.requests}
    assert len(request_ids) == 5


async def test_fresh_token_for_every_call(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    with mock.patch.object(
        KeyPairTokenSigner, "mint", autospec=True, return_value="TOKEN"
    ) as mint:
        await api.insert_report(PIPE)
        await api.load_history_scan(PIPE, "2020-01-01T00:00:00Z")
        await api.insert_files(PIPE, ["a.csv"])

    assert mint.call_count == 3
    for call in api.endpoint_history.insert_report:
        assert call.request.headers["Authorization"] == "Bearer TOKEN"


async def test_bad_private_key_fails_at_call_time():
    api, session = _api("definitely not a key")

    with pytest.raises(ProgrammingError) as ex:
        await api.insert_report(PIPE)

    assert ex.value.errno == ER_INVALID_PRIVATE_KEY
    assert session.requests == []
    assert api.endpoint_history.insert_report == []


async def test_http_error_is_recorded(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(403, "forbidden"))

    with pytest.raises(HttpError) as ex:
        await api.insert_files(PIPE, ["a.csv"])

    assert ex.value.status_code == 403
    assert ex.value.body == "forbidden"
    calls = api.endpoint_history.insert_files
    assert len(calls) == 1
    assert calls[0].response.status_code == 403
    assert calls[0].response.message_body == "forbidden"
    assert api.endpoint_history.insert_report == []
    assert api.endpoint_history.load_history_scan == []


async def test_transport_error_is_recorded(rsa_private_key_pem):
    error = aiohttp.ClientConnectionError("connection reset by peer")
    api, _ = _api(rsa_private_key_pem, error)

    with pytest.raises(aiohttp.ClientConnectionError):
        await api.insert_report(PIPE)

    assert api.endpoint_history.insert_report[0].response.error is error


async def test_non_json_success(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(200, "not json"))

    ret = await api.insert_report(PIPE)

    assert ret.payload is None
    assert ret.raw_response == "not json"
    assert ret.status_code == 200


async def test_history_disabled_by_default(rsa_private_key_pem):
    manager = mock_session_manager(FakeResponse(200, INSERT_REPORT_OK))
    api = SnowpipeAPI("loader", rsa_private_key_pem, "acme", session_manager=manager)

    await api.insert_report(PIPE)

    assert all(calls == [] for _, calls in api.endpoint_history)


async def test_history_keeps_call_order(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    for i in range(10):
        await api.insert_report(PIPE, begin_mark=f"mark{i}")

    recorded = [c.request.path for c in api.endpoint_history.insert_report]
    assert [p.rsplit("=", 1)[1] for p in recorded] == [f"mark{i}" for i in range(10)]


async def test_concurrent_calls_are_all_recorded(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))

    await asyncio.gather(*(api.insert_report(PIPE) for _ in range(20)))

    assert len(api.endpoint_history.insert_report) == 20


async def test_history_clear(rsa_private_key_pem):
    api, _ = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))
    await api.insert_report(PIPE)

    api.endpoint_history.clear()

    assert api.endpoint_history.insert_report == []


async def test_socket_timeout_option(rsa_private_key_pem):
    api, session = _api(
        rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK), socket_timeout=5
    )
    await api.insert_report(PIPE)
    assert session.requests[0]["timeout"] == aiohttp.ClientTimeout(total=5)


async def test_socket_timeout_from_environment(monkeypatch, rsa_private_key_pem):
    monkeypatch.setenv("SNOWPIPE_SOCKET_TIMEOUT", "7")
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))
    await api.insert_report(PIPE)
    assert session.requests[0]["timeout"] == aiohttp.ClientTimeout(total=7)


async def test_socket_timeout_default(monkeypatch, rsa_private_key_pem):
    monkeypatch.delenv("SNOWPIPE_SOCKET_TIMEOUT", raising=False)
    api, session = _api(rsa_private_key_pem, FakeResponse(200, INSERT_REPORT_OK))
    await api.insert_report(PIPE)
    assert session.requests[0]["timeout"] == aiohttp.ClientTimeout(total=60)


async def test_context_manager_closes_pooled_session(rsa_private_key_pem):
    manager = mock_session_manager(FakeResponse(200, INSERT_REPORT_OK))
    async with SnowpipeAPI(
        "loader", rsa_private_key_pem, "acme", session_manager=manager
    ) as api:
        await api.insert_report(PIPE)
        await api.insert_report(PIPE)
        assert not manager.fake_session.closed

    assert manager.sessions_made == 1
    assert manager.fake_session.closed


async def test_without_pooling_every_call_gets_a_session(rsa_private_key_pem):
    manager = mock_session_manager(
        FakeResponse(200, INSERT_REPORT_OK), use_pooling=False
    )
    api = SnowpipeAPI(
        "loader",
        rsa_private_key_pem,
        "acme",
        options=SnowpipeAPIOptions(use_pooling=False),
        session_manager=manager,
    )

    await api.insert_report(PIPE)
    await api.insert_report(PIPE)

    assert manager.sessions_made == 2
    assert manager.fake_session.closed
