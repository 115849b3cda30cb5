# OAuthCore - OAuth 2.0 Authorization Server Engine
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Central logging utilities for the authorization server engine.

Every component obtains its logger through :func:`get_logger` so that the
root configuration is applied exactly once, whichever entry point (the
FastAPI app, a test session or an embedding application) is imported first.

Key Features
------------
1. configure_logging(): idempotent initialization of the root logger.
2. get_logger(name): typed helper that always returns a configured logger
   nested under the ``oauth_core`` namespace.

Protocol errors are logged at WARNING by the component that raises them.
Client secrets, passwords and token handles must never reach a log record.
"""

from __future__ import annotations

import logging
from typing import Final

from beartype import beartype

__all__: Final = [
    "configure_logging",
    "get_logger",
]

_ROOT_LOGGER_NAME: Final = "oauth_core"
_DEFAULT_LOG_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_is_configured: bool = False


@beartype
def configure_logging(
    *, level: int | str = logging.INFO, fmt: str = _DEFAULT_LOG_FORMAT
) -> None:
    """Configure the root logger exactly once.

    Calling this function multiple times is safe – configuration will only
    be applied on the first invocation.
    """
    global _is_configured
    if _is_configured:
        return

    logging.basicConfig(level=level, format=fmt)
    _is_configured = True


@beartype
def get_logger(name: str | None = None, *, level: int | str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the ``oauth_core`` namespace."""
    configure_logging()
    if name is None:
        logger_name = _ROOT_LOGGER_NAME
    elif name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        logger_name = name
    else:
        logger_name = f"{_ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(logger_name)
    if level is not None:
        logger.setLevel(level)
    return logger
