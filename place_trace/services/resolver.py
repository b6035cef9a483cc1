"""Pick one author out of the scanner's candidate list."""
from __future__ import annotations

from typing import Optional, Sequence, Union

from place_trace.errors import AmbiguousCandidateError, SelectionError


def select_candidate(candidates: Sequence[str], index: Union[int, str]) -> str:
    """Return the candidate at a zero-based ``index`` (an int or its text form)."""
    if isinstance(index, str):
        text = index.strip()
        try:
            index = int(text)
        except ValueError as exc:
            raise SelectionError(
                "Give zero based index of user you want to select",
                {"input": text},
            ) from exc
    if index < 0 or index >= len(candidates):
        raise SelectionError("Index out of bounds", {"index": index, "count": len(candidates)})
    return candidates[index]


def resolve_candidate(candidates: Sequence[str], index: Optional[Union[int, str]] = None) -> Optional[str]:
    """``None`` for no candidates, the only one for a single match, else ``index`` is required."""
    if not candidates:
        return None
    if index is not None:
        return select_candidate(candidates, index)
    if len(candidates) == 1:
        return candidates[0]
    raise AmbiguousCandidateError(list(candidates))
