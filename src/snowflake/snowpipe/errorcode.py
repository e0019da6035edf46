#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

from __future__ import annotations

# configuration
ER_INVALID_VALUE = 251001
ER_INVALID_PRIVATE_KEY = 251008
ER_FAILED_TO_SIGN_TOKEN = 251009

# network
ER_HTTP_GENERAL_ERROR = 290000
