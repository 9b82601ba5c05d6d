"""Risk tier helpers shared by scoring and summaries."""

from __future__ import annotations

from typing import Literal

RiskTier = Literal["low", "medium", "high"]

LOW_RISK_CEILING = 33
MEDIUM_RISK_CEILING = 66


def risk_tier(score: int) -> RiskTier:
    """Map a 0-100 score to its risk tier."""
    if score < LOW_RISK_CEILING:
        return "low"
    if score < MEDIUM_RISK_CEILING:
        return "medium"
    return "high"
