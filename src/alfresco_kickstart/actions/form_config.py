"""Form config actions - Share form module upload and removal."""

import logging
from dataclasses import dataclass

from ..constants import XML_CONTENT_TYPE
from ..errors import RemoteCallError
from ..repository import HttpGateway

logger = logging.getLogger(__name__)


@dataclass
class ModuleResult:
    """Result of a Share module call."""

    success: bool
    status_code: int | None = None
    error: str | None = None


def upload_form_config(http: HttpGateway, upload_url: str, form_config: str) -> ModuleResult:
    """
    Deploy a form configuration module to Share.

    Never raises: a failed upload leaves the workflow usable with default
    forms, so callers record the failure and carry on.
    """
    try:
        response = http.post(upload_url, form_config, XML_CONTENT_TYPE)
    except RemoteCallError as e:
        logger.error(f"Form config upload failed: {e}")
        return ModuleResult(success=False, error=str(e))

    logger.info(f"Form config upload response: {response.status_code}")
    logger.debug(f"Response body: {response.text}")
    if not response.ok:
        return ModuleResult(
            success=False, status_code=response.status_code, error=f"HTTP {response.status_code} from {upload_url}"
        )
    return ModuleResult(success=True, status_code=response.status_code)


def delete_form_config(http: HttpGateway, delete_url: str) -> ModuleResult:
    """
    Remove a form configuration module from Share.

    Share has no API for this; its module page deletes on GET.
    """
    try:
        response = http.get(delete_url)
    except RemoteCallError as e:
        logger.error(f"Form config delete failed: {e}")
        return ModuleResult(success=False, error=str(e))

    if not response.ok:
        logger.error(f"Form config delete failed: HTTP {response.status_code}")
        return ModuleResult(
            success=False, status_code=response.status_code, error=f"HTTP {response.status_code} from {delete_url}"
        )
    return ModuleResult(success=True, status_code=response.status_code)
