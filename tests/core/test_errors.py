# tests/core/test_errors.py
import pytest
import requests

from visual_editor.errors import (
    AUTH_FAILURE_MESSAGE,
    NETWORK_FAILURE_MESSAGE,
    QUOTA_FAILURE_MESSAGE,
    SelectorMissError,
    UnknownShapeError,
    UploadError,
    VisualEditorError,
    describe_upload_failure,
)


def _http_error(status):
    response = requests.Response()
    response.status_code = status
    return requests.HTTPError(f"{status} error", response=response)


@pytest.mark.parametrize("status, message", [
    (401, AUTH_FAILURE_MESSAGE),
    (403, AUTH_FAILURE_MESSAGE),
    (429, QUOTA_FAILURE_MESSAGE),
    (500, NETWORK_FAILURE_MESSAGE),
])
def test_http_failures_map_to_fixed_messages(status, message):
    error = describe_upload_failure(_http_error(status))

    assert isinstance(error, UploadError)
    assert str(error) == message
    assert error.status_code == status


@pytest.mark.parametrize("failure", [
    requests.ConnectionError("refused"),
    requests.Timeout("slow"),
    RuntimeError("something else"),
])
def test_other_failures_are_network_errors(failure):
    error = describe_upload_failure(failure)

    assert str(error) == NETWORK_FAILURE_MESSAGE
    assert error.status_code is None


def test_upload_error_passes_through():
    original = UploadError(QUOTA_FAILURE_MESSAGE, 429)
    assert describe_upload_failure(original) is original


def test_error_hierarchy_and_messages():
    unknown = UnknownShapeError("shape-9")
    miss = SelectorMissError(".card")

    assert isinstance(unknown, VisualEditorError)
    assert isinstance(miss, VisualEditorError)
    assert str(unknown) == "Sync state not found for shape: shape-9"
    assert unknown.shape_id == "shape-9"
    assert miss.selector == ".card"
    assert "'.card'" in str(miss)
