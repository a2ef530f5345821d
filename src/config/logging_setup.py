"""
Process-wide logging setup.

Shared by the API entry point and the operational scripts so both log in
the same format. Call once per process, before the first log record.
"""

import logging


def configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
