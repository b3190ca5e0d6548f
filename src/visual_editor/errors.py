# src/visual_editor/errors.py
import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

# Fixed user-facing messages for share/upload failures.
AUTH_FAILURE_MESSAGE = "The API key is invalid or its quota is exhausted. Please check the API key settings."
QUOTA_FAILURE_MESSAGE = "The upload quota is exhausted. Please configure a custom API key."
NETWORK_FAILURE_MESSAGE = "Network error. Please check your connection and try again."


class VisualEditorError(Exception):
    """Base class for all errors raised by the editor core."""


class InvalidInputError(VisualEditorError):
    """Raised when empty or malformed markup is handed to the parser."""


class UnknownShapeError(VisualEditorError):
    """Raised by mutating SyncEngine operations for a shape without sync state."""

    def __init__(self, shape_id: str, detail: str = "Sync state not found for shape"):
        self.shape_id = shape_id
        super().__init__(f"{detail}: {shape_id}")


class SelectorMissError(VisualEditorError):
    """
    Describes an override whose selector matched nothing in the bound DOM.

    Never raised: instances are logged and attached to apply results so a
    batch of independent page updates is not aborted by one missing target.
    """

    def __init__(self, selector: str, reason: str = "Element not found for selector"):
        self.selector = selector
        self.reason = reason
        super().__init__(f"{reason}: {selector!r}")


class UploadError(VisualEditorError):
    """Carries one of the fixed user-facing upload failure messages."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def describe_upload_failure(error: BaseException) -> UploadError:
    """
    Classifies a failure from an upload collaborator into an UploadError.

    Authentication problems (401/403) and exhausted quota (429) get their
    own message; connection problems and anything unrecognised are reported
    as a generic network error so raw transport text never reaches the user.
    """
    if isinstance(error, UploadError):
        return error

    if isinstance(error, requests.HTTPError):
        status = error.response.status_code if error.response is not None else None
        if status in (401, 403):
            return UploadError(AUTH_FAILURE_MESSAGE, status)
        if status == 429:
            return UploadError(QUOTA_FAILURE_MESSAGE, status)
        logger.warning("Upload failed with HTTP status %s", status)
        return UploadError(NETWORK_FAILURE_MESSAGE, status)

    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        logger.warning("Upload failed due to a network problem: %s", type(error).__name__)
    else:
        logger.error("Unexpected upload failure: %s", type(error).__name__)
    return UploadError(NETWORK_FAILURE_MESSAGE)
