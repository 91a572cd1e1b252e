"""
Error taxonomy for the map ranking pipeline.

Both concrete errors subclass ValueError so callers that only care about
"bad input" can catch the builtin. An empty ranking is not an error.
"""

from typing import Optional


class RankingError(Exception):
    """Base class for all ranking pipeline errors."""


class InputValidationError(RankingError, ValueError):
    """
    The request context is malformed (viewport, weights, thresholds or
    reference point). Raised before any candidate is looked at.
    """


class CandidateDataError(RankingError, ValueError):
    """
    One candidate carries missing or invalid data.

    The offending candidate id is kept on the exception and always appears
    in the message, so a failing batch can be traced back to its record.
    """

    def __init__(self, candidate_id: Optional[str], reason: str) -> None:
        self.candidate_id = candidate_id
        self.reason = reason
        super().__init__(f"candidate id={candidate_id!r}: {reason}")
