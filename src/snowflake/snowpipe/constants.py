#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#
from __future__ import annotations

from enum import Enum, unique

UTF8 = "utf-8"

HTTPS_PORT = 443
DOMAIN_SUFFIX = "snowflakecomputing.com"

HTTP_HEADER_CONTENT_TYPE = "Content-Type"
HTTP_HEADER_CONTENT_LENGTH = "Content-Length"
HTTP_HEADER_ACCEPT = "Accept"
HTTP_HEADER_USER_AGENT = "User-Agent"
HTTP_HEADER_AUTHORIZATION = "Authorization"
HTTP_HEADER_BEARER_TOKEN = "Bearer {token}"

CONTENT_TYPE_APPLICATION_JSON = "application/json"
CONTENT_TYPE_TEXT_PLAIN = "text/plain"

# REST endpoints, relative to the account host
INSERT_FILES_PATH = "/v1/data/pipes/{pipe_name}/insertFiles"
INSERT_REPORT_PATH = "/v1/data/pipes/{pipe_name}/insertReport"
LOAD_HISTORY_SCAN_PATH = "/v1/data/pipes/{pipe_name}/loadHistoryScan"

# query parameters
REQUEST_ID = "requestId"
BEGIN_MARK = "beginMark"
START_TIME_INCLUSIVE = "startTimeInclusive"
END_TIME_EXCLUSIVE = "endTimeExclusive"

REQUEST_ID_NUM_BYTES = 16

DEFAULT_SOCKET_TIMEOUT = 60
ENV_VAR_SOCKET_TIMEOUT = "SNOWPIPE_SOCKET_TIMEOUT"


@unique
class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


@unique
class EndpointKind(str, Enum):
    """Identifies which call history slice a request belongs to."""

    INSERT_FILES = "insert_files"
    INSERT_REPORT = "insert_report"
    LOAD_HISTORY_SCAN = "load_history_scan"


@unique
class LoadStatus(str, Enum):
    """Load status of a single file as reported by Snowpipe.

    LOADED: The entire file has been loaded into the table.
    LOAD_IN_PROGRESS: Part of the file has been loaded into the table, but the
        load process has not completed yet.
    LOAD_FAILED: The file load failed.
    PARTIALLY_LOADED: Some rows from this file were loaded successfully, but
        others were not loaded due to errors. Processing of this file is
        completed.
    """

    LOADED = "LOADED"
    LOAD_IN_PROGRESS = "LOAD_IN_PROGRESS"
    LOAD_FAILED = "LOAD_FAILED"
    PARTIALLY_LOADED = "PARTIALLY_LOADED"
