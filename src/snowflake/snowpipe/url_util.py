#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

from __future__ import annotations

import secrets
import urllib.parse
from logging import getLogger
from typing import Iterable

from .constants import DOMAIN_SUFFIX, REQUEST_ID_NUM_BYTES

logger = getLogger(__name__)


def construct_hostname(
    account: str, region_id: str | None = None, cloud_provider: str | None = None
) -> str:
    """Constructs the Snowpipe hostname for an account.

    `{account}.snowflakecomputing.com` is the default US AWS deployment; other
    deployments need `{account}.{region_id}.{cloud_provider}.snowflakecomputing.com`.
    Empty or missing parts are skipped.
    """
    domain_parts = [part for part in (account, region_id, cloud_provider) if part]
    return ".".join(domain_parts + [DOMAIN_SUFFIX])


def url_encode_str(target: str | None) -> str:
    """Converts a target string into escaped URL safe string

    Args:
        target: string to be URL encoded

    Returns:
        URL encoded string
    """
    if target is None:
        logger.debug("The string to be URL encoded is None")
        return ""
    return urllib.parse.quote_plus(target, safe="")


def build_query_string(params: Iterable[tuple[str, str | None]]) -> str:
    """Builds a query string from ordered name/value pairs.

    Values are URL encoded. Pairs whose value is None or empty are omitted
    instead of being sent empty.
    """
    return "&".join(
        f"{url_encode_str(name)}={url_encode_str(value)}"
        for name, value in params
        if value
    )


def build_path(path: str, params: Iterable[tuple[str, str | None]]) -> str:
    query = build_query_string(params)
    return f"{path}?{query}" if query else path


def generate_request_id() -> str:
    """Returns a random request identifier, 16 random bytes hex encoded."""
    return secrets.token_hex(REQUEST_ID_NUM_BYTES)
