#!/usr/bin/env python
#
# Copyright (c) 2012-2023 Snowflake Computing Inc. All rights reserved.
#

"""The secret detector detects sensitive information.

It masks secrets that might be leaked through logging: the signed bearer
tokens attached to every request and the private key they are derived from.
"""
from __future__ import annotations

import logging
import re
from typing import NamedTuple


class MaskedMessageData(NamedTuple):
    is_masked: bool = False
    masked_text: str | None = None
    error_str: str | None = None


class SecretDetector(logging.Formatter):
    BEARER_TOKEN_PATTERN = re.compile(
        r"(Bearer\s+)([a-z0-9=/_\-\+\.]{8,})",
        flags=re.IGNORECASE,
    )
    CONNECTION_TOKEN_PATTERN = re.compile(
        r"(token|assertion content)" r"([\'\"\s:=]+)" r"([a-z0-9=/_\-\+\.]{8,})",
        flags=re.IGNORECASE,
    )
    PRIVATE_KEY_PATTERN = re.compile(
        r"-----BEGIN ((?:RSA |EC |ENCRYPTED )?PRIVATE KEY)-----"
        r"(?:\\n|\n|\s)*[a-z0-9/+=\s\\]{32,}?(?:\\n|\n|\s)*"
        r"-----END \1-----",
        flags=re.MULTILINE | re.IGNORECASE,
    )

    @staticmethod
    def mask_bearer_token(text: str) -> str:
        return SecretDetector.BEARER_TOKEN_PATTERN.sub(r"\1****", text)

    @staticmethod
    def mask_connection_token(text: str) -> str:
        return SecretDetector.CONNECTION_TOKEN_PATTERN.sub(r"\1\2****", text)

    @staticmethod
    def mask_private_key(text: str) -> str:
        return SecretDetector.PRIVATE_KEY_PATTERN.sub(
            r"-----BEGIN \1-----XXXX-----END \1-----", text
        )

    @staticmethod
    def mask_secrets(text: str | None) -> MaskedMessageData:
        """Masks any secrets. This is the method that should be used by outside classes.

        Args:
            text: A string which may contain a secret.

        Returns:
            The masked string, wrapped with a flag telling whether anything was masked.
        """
        if text is None:
            return MaskedMessageData()

        masked = False
        err_str = None
        try:
            masked_text = SecretDetector.mask_connection_token(
                SecretDetector.mask_bearer_token(
                    SecretDetector.mask_private_key(text)
                )
            )
            if masked_text != text:
                masked = True
        except Exception as ex:
            # We'll assume that the exception was raised during masking
            # to be safe consider that the log has sensitive information
            # and do not raise an exception.
            masked = True
            masked_text = str(ex)
            err_str = str(ex)

        return MaskedMessageData(masked, masked_text, err_str)

    @staticmethod
    def create_formatting_error_log(
        record: logging.LogRecord, error_message: str
    ) -> str:
        return "{} - {} {} - {} - {} - {}".format(
            getattr(record, "asctime", ""),
            record.threadName,
            "secret_detector.py",
            "sanitize_log_str",
            record.levelname,
            error_message,
        )

    def format(self, record: logging.LogRecord) -> str:
        """Wrapper around logging module's formatter.

        This will ensure that the formatted message is free from sensitive credentials.

        Args:
            record: The logging record.

        Returns:
            Formatted desensitized log string.
        """
        try:
            unsanitized_log = super().format(record)
            masked, sanitized_log, err_str = SecretDetector.mask_secrets(
                unsanitized_log
            )
            if masked and err_str is not None:
                sanitized_log = self.create_formatting_error_log(record, err_str)
        except Exception as ex:
            sanitized_log = self.create_formatting_error_log(
                record, "EXCEPTION - " + str(ex)
            )
        return sanitized_log
