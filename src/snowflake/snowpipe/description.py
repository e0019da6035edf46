#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

"""Various constants."""

from __future__ import annotations

import platform
import sys

from .version import VERSION

SNOWPIPE_CLIENT_VERSION = ".".join(str(v) for v in VERSION[0:3])
PYTHON_VERSION = ".".join(str(v) for v in sys.version_info[:3])
PLATFORM = platform.platform()
IMPLEMENTATION = platform.python_implementation()

CLIENT_NAME = "snowpipe-ingest-python"

USER_AGENT = (
    f"{CLIENT_NAME}/{SNOWPIPE_CLIENT_VERSION} ({PLATFORM}) "
    f"{IMPLEMENTATION}/{PYTHON_VERSION}"
)
