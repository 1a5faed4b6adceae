"""Unit tests for dualquery.core.text."""

import pytest

from dualquery.core.text import preview
from dualquery.dispatch import coordinator
from dualquery.providers import client


@pytest.mark.unit
def test_preview_truncates_with_ellipsis():
    assert preview("abcdef", 3) == "abc…"
    assert preview("abc", 3) == "abc"
    assert preview(12345, 2) == "12…"


@pytest.mark.unit
def test_client_and_coordinator_share_one_preview_helper():
    assert client.preview is preview
    assert coordinator.preview is preview
    assert not hasattr(client, "_preview") and not hasattr(coordinator, "_preview")
