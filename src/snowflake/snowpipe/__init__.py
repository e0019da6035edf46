#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#
from __future__ import annotations

import logging
from logging import NullHandler

from .auth import KeyPairTokenSigner
from .constants import EndpointKind, LoadStatus
from .errors import Error, HttpError, ProgrammingError
from .history import APIEndpointHistory, RecordedCall, RecordedCallResponse, RequestSpec
from .logging_utils.filters import (
    SecretMaskingFilter,
    add_filter_to_logger_and_children,
)
from .models import (
    InsertFilesResponse,
    InsertReportResponse,
    LoadHistoryScanResponse,
    SnowpipeAPIResponse,
    SnowpipeFile,
)
from .snowpipe import SnowpipeAPI, SnowpipeAPIOptions, SnowpipeConfig
from .version import VERSION

logging.getLogger(__name__).addHandler(NullHandler())
add_filter_to_logger_and_children(__name__, SecretMaskingFilter())

__version__ = ".".join(str(v) for v in VERSION if v is not None)

__all__ = [
    "SnowpipeAPI",
    "SnowpipeAPIOptions",
    "SnowpipeConfig",
    "SnowpipeAPIResponse",
    "InsertFilesResponse",
    "InsertReportResponse",
    "LoadHistoryScanResponse",
    "SnowpipeFile",
    "LoadStatus",
    "EndpointKind",
    "APIEndpointHistory",
    "RecordedCall",
    "RecordedCallResponse",
    "RequestSpec",
    "KeyPairTokenSigner",
    "Error",
    "HttpError",
    "ProgrammingError",
]
