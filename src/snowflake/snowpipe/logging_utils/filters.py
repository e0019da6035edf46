from __future__ import annotations

import logging

from snowflake.snowpipe.secret_detector import SecretDetector


def add_filter_to_logger_and_children(
    base_logger_name: str, filter_instance: logging.Filter
) -> None:
    # Ensure the base logger exists and apply filter
    base_logger = logging.getLogger(base_logger_name)
    if filter_instance not in base_logger.filters:
        base_logger.addFilter(filter_instance)

    all_loggers_pairs = logging.root.manager.loggerDict.items()
    for name, obj in all_loggers_pairs:
        if not name.startswith(base_logger_name + "."):
            continue

        if not isinstance(obj, logging.Logger):
            continue  # Skip placeholders

        if filter_instance not in obj.filters:
            obj.addFilter(filter_instance)


class SecretMaskingFilter(logging.Filter):
    """
    A logging filter that masks bearer tokens and private keys in log messages.

    Logging filters do not propagate down the logger hierarchy, so use
    `add_filter_to_logger_and_children` to cover a whole package.

    This filter formats the message early (`record.getMessage()`) and clears
    `record.args`, so it should be the last filter in the chain.

    Example:
        logger.addFilter(SecretMaskingFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
            record.msg = SecretDetector.mask_secrets(message).masked_text
        except Exception as ex:
            record.msg = SecretDetector.create_formatting_error_log(
                record, "EXCEPTION - " + str(ex)
            )
        finally:
            record.args = ()

        return True
