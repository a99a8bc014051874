from __future__ import annotations

import pytest

from courier.core.errors import ContentTooLong
from courier.models.tables import CONTENT_MAX_LENGTH, Message


def test_content_at_limit_is_accepted():
    m = Message(to="+905551112233", content="x" * CONTENT_MAX_LENGTH)
    assert len(m.content) == 150


def test_content_over_limit_is_rejected_at_construction():
    with pytest.raises(ContentTooLong) as exc:
        Message(to="+905551112233", content="x" * (CONTENT_MAX_LENGTH + 1))
    assert exc.value.length == 151
    assert isinstance(exc.value, ValueError)


def test_limit_counts_characters_not_bytes():
    # 150 two-byte characters still fit.
    m = Message(to="+905551112233", content="ş" * CONTENT_MAX_LENGTH)
    assert m.content.startswith("ş")


def test_content_over_limit_is_rejected_on_assignment():
    m = Message(to="+905551112233", content="ok")
    with pytest.raises(ContentTooLong):
        m.content = "y" * 200
