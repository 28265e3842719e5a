"""Household income normalization.

Survey answers come as bracket codes (``"050000_059999"``), as one of the
sentinels ``"dontKnow"`` / ``"refusal"``, or as a bare amount. Two views are
derived from them:

* an ordinal level (1..10) fed to the car ownership model, which needs *a*
  value and so falls back to "don't know" on anything unreadable;
* an annual amount used for the share-of-income figure, which needs a
  *correct* value and so gives up (``None``) on anything unreadable.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

INCOME_UNKNOWN = "dontKnow"
INCOME_DECLINED = "refusal"
INCOME_SENTINELS = (INCOME_UNKNOWN, INCOME_DECLINED)

# Upper bound meaning "and more"
OPEN_ENDED_UPPER_BOUND = 999999

LEVEL_DECLINED = 9
LEVEL_UNKNOWN = 10

INCOME_CHOICE_TO_MODEL_LEVEL: Dict[str, int] = {
    "000000_009999": 1,
    "010000_019999": 1,
    "020000_029999": 1,
    "030000_039999": 2,
    "040000_049999": 2,
    "050000_059999": 2,
    "060000_069999": 3,
    "070000_079999": 3,
    "080000_089999": 3,
    "090000_099999": 4,
    "100000_119999": 4,
    "120000_149999": 5,
    "150000_179999": 6,
    "180000_209999": 7,
    "210000_999999": 8,
    INCOME_DECLINED: LEVEL_DECLINED,
    INCOME_UNKNOWN: LEVEL_UNKNOWN,
}

# (exclusive upper bound, level), ascending; anything above is level 8
NUMERIC_LEVEL_THRESHOLDS = (
    (30000, 1),
    (60000, 2),
    (90000, 3),
    (120000, 4),
    (150000, 5),
    (180000, 6),
    (210000, 7),
)
TOP_NUMERIC_LEVEL = 8

_BRACKET_PATTERN = re.compile(r"^(\d+)_(\d+)$")
_NUMERIC_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)?$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def map_income_to_model_level(income: Any) -> int:
    """Return the model's ordinal income level, defaulting to "don't know"."""
    if _is_number(income):
        return _level_for_amount(float(income))

    text = str(income).strip() if income is not None else ""
    mapped = INCOME_CHOICE_TO_MODEL_LEVEL.get(text)
    if mapped is not None:
        return mapped

    amount = math.nan
    # float() would read digit separators, so "050000_054999" is not an amount
    if "_" not in text:
        try:
            amount = float(text)
        except ValueError:
            pass
    if math.isfinite(amount):
        return _level_for_amount(amount)

    logger.error("Unknown income format: %r", income)
    return LEVEL_UNKNOWN


def _level_for_amount(amount: float) -> int:
    if not math.isfinite(amount):
        return LEVEL_UNKNOWN
    for upper_bound, level in NUMERIC_LEVEL_THRESHOLDS:
        if amount < upper_bound:
            return level
    return TOP_NUMERIC_LEVEL


def estimate_annual_income(income: Any) -> Optional[float]:
    """Estimate a yearly income from the survey answer.

    Closed brackets give their midpoint. Open-ended brackets give their lower
    bound: the midpoint of ``210000_999999`` would make the share of income
    look several times smaller than it is for most respondents in it.
    """
    if income is None or income in INCOME_SENTINELS:
        return None

    if _is_number(income):
        amount = float(income)
    elif isinstance(income, str):
        amount = _parse_income_string(income)
        if amount is None:
            return None
    else:
        logger.error("Invalid income type: %r", income)
        return None

    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def _parse_income_string(income: str) -> Optional[float]:
    text = income.strip()
    if "_" in text:
        match = _BRACKET_PATTERN.match(text)
        if match is None:
            logger.error("Invalid income range values: %r", income)
            return None
        lower, upper = int(match.group(1)), int(match.group(2))
        if upper >= OPEN_ENDED_UPPER_BOUND:
            return float(lower)
        return (lower + upper) / 2

    if not _NUMERIC_PATTERN.match(text):
        logger.error("Invalid income format: %r", income)
        return None
    return float(text)
