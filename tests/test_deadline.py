from __future__ import annotations

from courier.util.time import Deadline


def test_child_never_outlives_parent():
    now = [100.0]
    parent = Deadline(10.0, clock=lambda: now[0])

    assert parent.child(5.0).remaining() == 5.0

    now[0] = 107.0
    assert parent.child(5.0).remaining() == 3.0

    now[0] = 111.0
    assert parent.expired
    assert parent.child(5.0).expired
