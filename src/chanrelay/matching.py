"""Name matcher: rank server/channel names against a typed fragment.

Scoring is a subsequence match in the style of skim/fzf: every query
character must appear in the candidate in order (case-insensitive).
Consecutive runs and matches at word starts score higher, skipped
characters between matches cost a little. Ranking inverts the score so
that lower sorts first, and candidates that do not match at all are kept
at the back with a fixed penalty.
"""

from __future__ import annotations

from collections.abc import Sequence

from chanrelay.core.constants import MAX_SUGGESTIONS, NO_MATCH_PENALTY
from chanrelay.core.errors import NoCandidates

SCORE_MATCH = 16
BONUS_CONSECUTIVE = 8
BONUS_BOUNDARY = 8
PENALTY_GAP = 1
_SEPARATORS = frozenset(" -_#/.")


def _score_from(query: str, candidate: str, start: int) -> int | None:
    score = 0
    prev = -1
    run = 0
    pos = start
    for ch in query:
        idx = candidate.find(ch, pos)
        if idx < 0:
            return None
        score += SCORE_MATCH
        if prev >= 0 and idx == prev + 1:
            run += 1
            score += BONUS_CONSECUTIVE * run
        else:
            run = 0
            if prev >= 0:
                score -= PENALTY_GAP * (idx - prev - 1)
        if idx == 0 or candidate[idx - 1] in _SEPARATORS:
            score += BONUS_BOUNDARY
        prev = idx
        pos = idx + 1
    return score


def fuzzy_score(query: str, candidate: str) -> int | None:
    """Closeness of ``candidate`` to ``query``; higher is closer, None if no match.

    The empty query matches every candidate with score 0.
    """
    q = query.strip().casefold()
    if not q:
        return 0
    c = candidate.casefold()
    best: int | None = None
    start = c.find(q[0])
    while start >= 0:
        score = _score_from(q, c, start)
        if score is None:
            # No later start can complete the match either
            break
        if best is None or score > best:
            best = score
        start = c.find(q[0], start + 1)
    return best


def rank(query: str, candidates: Sequence[str]) -> list[str]:
    """Return up to MAX_SUGGESTIONS candidates, best match first.

    Raises NoCandidates when ``candidates`` is empty.
    """
    if not candidates:
        raise NoCandidates("nothing to match against", code="no_candidates")

    keyed: list[tuple[int, str]] = []
    for candidate in candidates:
        score = fuzzy_score(query, candidate)
        keyed.append((NO_MATCH_PENALTY if score is None else -score, candidate))
    keyed.sort()
    return [candidate for _, candidate in keyed[:MAX_SUGGESTIONS]]
