"""
Tests for the recording status lifecycle
"""

import pytest

from zoomvault.models import RecordingStatus

P, D, C, F = (
    RecordingStatus.PENDING,
    RecordingStatus.DOWNLOADING,
    RecordingStatus.COMPLETED,
    RecordingStatus.FAILED,
)


@pytest.mark.parametrize(
    ("source", "target", "allowed"),
    [
        (P, D, True),
        (P, C, False),
        (P, F, False),
        (D, C, True),
        (D, F, True),
        (D, P, False),
        (C, D, False),
        (C, F, False),
        (F, D, False),
        (F, P, False),
    ],
)
def test_transitions(source, target, allowed):
    assert source.can_transition_to(target) is allowed


def test_terminal_states():
    assert C.is_terminal
    assert F.is_terminal
    assert not P.is_terminal
    assert not D.is_terminal


def test_predecessors():
    assert D.predecessors() == {P}
    assert C.predecessors() == {D}
    assert F.predecessors() == {D}
    assert P.predecessors() == frozenset()


def test_values_match_stored_strings():
    assert [s.value for s in RecordingStatus] == ["pending", "downloading", "completed", "failed"]
