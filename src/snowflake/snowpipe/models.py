#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

"""Typed payloads of the Snowpipe REST API responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Mapping, TypeVar

from .constants import LoadStatus

T = TypeVar("T")


def _parse_bool(value: Any) -> bool:
    # loadHistoryScan sends "true"/"false" strings, insertReport sends booleans
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass(frozen=True)
class SnowpipeFile:
    """Load status of one file, as returned by insertReport and loadHistoryScan."""

    # file path relative to the stage location
    path: str
    # stage ID (internal stage) or bucket (external stage) defined in the pipe
    stage_location: str
    file_size: int
    # ISO-8601, UTC
    time_received: str
    last_insert_time: str
    rows_inserted: int
    rows_parsed: int
    errors_seen: int
    # errors allowed before the file is considered failed (ON_ERROR copy option)
    error_limit: int
    complete: bool
    status: LoadStatus
    first_error: str | None = None
    first_error_line_num: int | None = None
    first_error_column_name: str | None = None
    system_error: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> SnowpipeFile:
        return cls(
            path=data["path"],
            stage_location=data["stageLocation"],
            file_size=int(data["fileSize"]),
            time_received=data["timeReceived"],
            last_insert_time=data["lastInsertTime"],
            rows_inserted=int(data["rowsInserted"]),
            rows_parsed=int(data["rowsParsed"]),
            errors_seen=int(data["errorsSeen"]),
            error_limit=int(data["errorLimit"]),
            complete=_parse_bool(data["complete"]),
            status=LoadStatus(data["status"]),
            first_error=data.get("firstError"),
            first_error_line_num=data.get("firstErrorLineNum"),
            first_error_column_name=data.get("firstErrorColumnName"),
            system_error=data.get("systemError"),
        )


@dataclass(frozen=True)
class InsertFilesResponse:
    # the request id that was sent
    request_id: str
    # "SUCCESS" when the files were received
    response_code: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> InsertFilesResponse:
        return cls(
            request_id=data["requestId"],
            response_code=data["responseCode"],
        )


@dataclass(frozen=True)
class InsertReportResponse:
    """Files recently added to the table.

    The report may only represent a portion of a large file.
    """

    # fully-qualified name of the pipe
    pipe: str
    # False if an event was missed between the supplied beginMark and the first
    # event in this report history
    complete_result: bool
    files: list[SnowpipeFile]
    # hint for the next request's beginMark; duplicates can still occur
    next_begin_mark: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> InsertReportResponse:
        return cls(
            pipe=data["pipe"],
            complete_result=_parse_bool(data["completeResult"]),
            files=[SnowpipeFile.from_json(f) for f in data["files"]],
            next_begin_mark=data.get("nextBeginMark"),
        )


@dataclass(frozen=True)
class LoadHistoryScanResponse:
    """Load history between two points in time.

    When `complete_result` is False the 10,000 entry limit was hit; pass
    `range_end_time` as the next `start_time_inclusive` to continue.
    """

    pipe: str
    complete_result: bool
    files: list[SnowpipeFile]
    # the requested window, ISO-8601
    start_time_inclusive: str
    end_time_exclusive: str
    # oldest and latest entry included in the response, ISO-8601
    range_start_time: str
    range_end_time: str
    next_begin_mark: str | None = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> LoadHistoryScanResponse:
        return cls(
            pipe=data["pipe"],
            complete_result=_parse_bool(data["completeResult"]),
            files=[SnowpipeFile.from_json(f) for f in data["files"]],
            start_time_inclusive=data["startTimeInclusive"],
            end_time_exclusive=data["endTimeExclusive"],
            range_start_time=data["rangeStartTime"],
            range_end_time=data["rangeEndTime"],
            next_begin_mark=data.get("nextBeginMark"),
        )


@dataclass(frozen=True)
class SnowpipeAPIResponse(Generic[T]):
    """Result of a successful call.

    `payload` is None when the body was not the JSON document expected for the
    endpoint; `raw_response` always holds the body as received.
    """

    payload: T | None
    raw_response: str
    status_code: int
