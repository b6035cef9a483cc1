import pytest

from place_trace.errors import AmbiguousCandidateError, SelectionError
from place_trace.services.resolver import resolve_candidate, select_candidate

CANDIDATES = ["alice", "bob", "carol"]


def test_select_by_index_and_text():
    assert select_candidate(CANDIDATES, 1) == "bob"
    assert select_candidate(CANDIDATES, " 2\n") == "carol"


@pytest.mark.parametrize("index", [3, -1, "7", "x", ""])
def test_select_rejects_bad_index(index):
    with pytest.raises(SelectionError):
        select_candidate(CANDIDATES, index)


def test_resolve_single_candidate_needs_no_index():
    assert resolve_candidate(["only"]) == "only"


def test_resolve_empty_is_none():
    assert resolve_candidate([]) is None


def test_resolve_ambiguous_without_index():
    with pytest.raises(AmbiguousCandidateError) as excinfo:
        resolve_candidate(CANDIDATES)

    assert excinfo.value.candidates == CANDIDATES


def test_resolve_with_index():
    assert resolve_candidate(CANDIDATES, "0") == "alice"
