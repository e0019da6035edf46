#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

from __future__ import annotations

from .errorcode import ER_HTTP_GENERAL_ERROR


class Error(Exception):
    """Base Snowpipe exception class."""

    def __init__(
        self,
        msg: str | None = None,
        errno: int | None = None,
    ) -> None:
        self.msg = msg
        self.raw_msg = msg
        self.errno = errno or -1

        if not self.msg:
            self.msg = "Unknown error"

        if self.errno != -1:
            self.msg = f"{self.errno:06d}: {self.msg}"

        super().__init__(self.msg)

    def __repr__(self) -> str:
        return self.__str__()

    def __str__(self) -> str:
        return self.msg


class ProgrammingError(Error):
    """Exception for misconfiguration, such as an unusable private key."""

    pass


class HttpError(Error):
    """Exception for a response whose status code is outside of 2xx.

    The status code and the response body are kept verbatim so callers can
    inspect what Snowpipe sent back.
    """

    def __init__(self, status_code: int, body: str, msg: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(
            msg=msg or f"status code: {status_code}. '{body}'",
            errno=ER_HTTP_GENERAL_ERROR + status_code,
        )
