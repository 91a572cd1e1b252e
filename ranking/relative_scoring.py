"""
Relative Score Normalization Module
===================================

Reframes absolute raw scores as rankings contextualized by how many
candidates compete for the same map view.

Pipeline stages:
    4. Relative normalization: rank → [0, 1] relative score, band chosen by N
    5. Stable descending sort by relative score

Why bands: a sparse map (a handful of events) should still look "good", so
every event stays near the top of the scale. A dense map needs sharp
separation, so scores spread over the full [0, 1] range, the percentile
curve steepens with N, and absolute quality is blended back in.

Bands are data (NORMALIZATION_BANDS), evaluated by one function of
(rank, N); there is no per-band code path.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Optional, Sequence

from ranking.event_scoring import ScoredEvent


# ===========================================================================
# Tunable constants
# ===========================================================================


class NormalizationBand(NamedTuple):
    """
    One breakpoint of the set-size-dependent normalization.

    Fields:
        max_size:      Largest N (inclusive) handled by this band. None means
                       unbounded and must be the last band.
        floor:         Relative score given to the worst rank; the best rank
                       always maps to 1.0 before quality blending.
        curved:        Raise the percentile to curve_exponent(N) before mapping.
        quality_blend: Blend in raw / max_raw with weight quality_weight(N).
    """
    max_size: Optional[int]
    floor: float
    curved: bool
    quality_blend: bool


NORMALIZATION_BANDS: tuple[NormalizationBand, ...] = (
    NormalizationBand(max_size=1, floor=1.0, curved=False, quality_blend=False),
    NormalizationBand(max_size=3, floor=0.6, curved=False, quality_blend=False),
    NormalizationBand(max_size=10, floor=0.3, curved=False, quality_blend=False),
    NormalizationBand(max_size=None, floor=0.0, curved=True, quality_blend=True),
)

# Quality blend weight = min(QUALITY_WEIGHT_CAP, N / QUALITY_WEIGHT_SCALE).
QUALITY_WEIGHT_CAP: float = 0.3
QUALITY_WEIGHT_SCALE: float = 100.0


def select_band(n: int, bands: Sequence[NormalizationBand] = NORMALIZATION_BANDS) -> NormalizationBand:
    """Return the first band whose max_size covers n."""
    for band in bands:
        if band.max_size is None or n <= band.max_size:
            return band
    raise ValueError(f"no normalization band covers N={n}; the last band must be unbounded")


def curve_exponent(n: int) -> float:
    """Percentile exponent; grows monotonically with N (1 + log10 N)."""
    return 1.0 + math.log10(n)


def quality_weight(n: int) -> float:
    return min(QUALITY_WEIGHT_CAP, n / QUALITY_WEIGHT_SCALE)


def percentile_for_rank(rank: int, n: int) -> float:
    """Map a 0-based rank (0 = best) onto [0, 1] with 1.0 for the best."""
    if n <= 1:
        return 1.0
    return (n - 1 - rank) / (n - 1)


def relative_score_for_rank(
    rank: int,
    n: int,
    raw_score: float,
    max_raw_score: float,
    bands: Sequence[NormalizationBand] = NORMALIZATION_BANDS,
) -> float:
    """
    Relative score for one event given its rank among N events.

    Formula:
        p      = (N - 1 - rank) / (N - 1)           (1.0 when N = 1)
        shaped = p ** (1 + log10 N)                 if the band is curved, else p
        score  = floor + (1 - floor) × shaped
        score  = score × (1 - q) + (raw / max_raw) × q    if the band blends quality

    The result is clamped to [0, 1].
    """
    band = select_band(n, bands)
    percentile = percentile_for_rank(rank, n)
    shaped = percentile ** curve_exponent(n) if band.curved else percentile
    score = band.floor + (1.0 - band.floor) * shaped

    if band.quality_blend:
        q = quality_weight(n)
        # All-zero raw scores carry no quality signal.
        quality = raw_score / max_raw_score if max_raw_score > 0.0 else 0.0
        score = score * (1.0 - q) + quality * q

    return max(0.0, min(1.0, score))


# ===========================================================================
# Stage 4: Relative normalization
# ===========================================================================


def competition_ranks(scored: Sequence[ScoredEvent]) -> list[int]:
    """
    0-based competition ranks by raw score, descending ("1224" ranking).

    Events with equal raw scores share the rank of the first of them, so
    ties in raw score stay ties in relative score.
    """
    order = sorted(range(len(scored)), key=lambda i: (-scored[i].raw_score, scored[i].input_index))
    ranks = [0] * len(scored)
    previous_raw: Optional[float] = None
    current_rank = 0
    for position, index in enumerate(order):
        raw = scored[index].raw_score
        if raw != previous_raw:
            current_rank = position
            previous_raw = raw
        ranks[index] = current_rank
    return ranks


def normalize_relative_scores(
    scored: list[ScoredEvent],
    bands: Sequence[NormalizationBand] = NORMALIZATION_BANDS,
) -> list[ScoredEvent]:
    """
    Populate percentile_rank and relative_score on every scored event.

    This mutates the ScoredEvent objects in place and returns the same list
    (same length, same order).
    """
    n = len(scored)
    if n == 0:
        return scored

    ranks = competition_ranks(scored)
    max_raw = max(event.raw_score for event in scored)

    for event, rank in zip(scored, ranks):
        event.percentile_rank = percentile_for_rank(rank, n)
        event.relative_score = relative_score_for_rank(rank, n, event.raw_score, max_raw, bands)

    return scored


# ===========================================================================
# Stage 5: Ranking
# ===========================================================================


def rank_scored_events(scored: Sequence[ScoredEvent]) -> list[ScoredEvent]:
    """
    Sort by relative score, highest first.

    Python's sort is stable (including with reverse=True), so exact ties keep
    their input order.
    """
    return sorted(scored, key=lambda event: event.relative_score, reverse=True)
