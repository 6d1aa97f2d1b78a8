"""Shared fixtures and fake HTTP responses."""

from unittest.mock import MagicMock

import pytest
import requests


def make_response(status_code=200, text="", json_data=None, content=b""):
    """Build a stand-in for requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.content = content
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error"
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def sleeps(monkeypatch):
    """Record calls to time.sleep made by the metadata fetcher."""
    calls = []
    monkeypatch.setattr("paperfetch.metadata_fetcher.time.sleep", calls.append)
    return calls
