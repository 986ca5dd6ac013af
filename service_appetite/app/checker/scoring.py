"""
Confidence scoring for NAICS classification.
"""

BASE_CONFIDENCE = 0.75
MAX_CONFIDENCE = 0.95

# (description keyword, NAICS prefix, bonus)
KEYWORD_BONUSES = (
    ("restaurant", "722", 0.15),
    ("store", "445", 0.12),
)


def confidence_score(naics_code: str, description: str) -> float:
    """Score how well ``description`` supports ``naics_code``.

    Starts at the base confidence, adds each matching keyword bonus and caps
    the result, so the score always lies in [0.75, 0.95].
    """
    text = (description or "").lower()
    code = naics_code or ""

    score = BASE_CONFIDENCE
    for keyword, prefix, bonus in KEYWORD_BONUSES:
        if keyword in text and code.startswith(prefix):
            score += bonus

    return round(min(score, MAX_CONFIDENCE), 4)
