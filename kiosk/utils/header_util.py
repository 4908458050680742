"""Builders for the application alert headers.

The client UI reads `X-<app>-alert` / `X-<app>-error` together with
`X-<app>-params` to show toast notifications after a request.
"""

from __future__ import annotations

import logging

from ..config import settings

logger = logging.getLogger("kiosk.api")


def _prefix() -> str:
    return f"X-{settings.APP_NAME}"


def create_alert(message: str, param: str) -> dict[str, str]:
    return {
        f"{_prefix()}-alert": message,
        f"{_prefix()}-params": param,
    }


def create_entity_creation_alert(entity_name: str, param: str) -> dict[str, str]:
    return create_alert(f"{settings.APP_NAME}.{entity_name}.created", param)


def create_entity_update_alert(entity_name: str, param: str) -> dict[str, str]:
    return create_alert(f"{settings.APP_NAME}.{entity_name}.updated", param)


def create_entity_deletion_alert(entity_name: str, param: str) -> dict[str, str]:
    return create_alert(f"{settings.APP_NAME}.{entity_name}.deleted", param)


def create_failure_alert(entity_name: str, error_key: str, default_message: str) -> dict[str, str]:
    """Headers for a failed request.

    The human message is only logged; the client translates `error_key`.
    """
    logger.warning("Request for %s rejected: %s", entity_name, default_message)
    return {
        f"{_prefix()}-error": f"error.{error_key}",
        f"{_prefix()}-params": entity_name,
    }
