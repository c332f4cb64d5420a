"""
Letter-grade classification and pass/fail decisions.
"""

import numbers
from typing import Any, Dict, Optional

from quizgrade.grading_scales import FALLBACK_BAND, normalize_grading_scale

DEFAULT_PASSING_GRADE = 70


def classify_grade(percentage: Any, scale: Any = None) -> Dict[str, Any]:
    """Map a percentage to the first matching band of a grading scale.

    Args:
        percentage: Score in the 0-100 range.
        scale: Scale dict, registry key, or None for the default scale.

    Returns:
        ``{"label", "color", "min", "max"}``.  Percentages no band covers
        (gaps, out-of-range or non-numeric values) get the fallback F band.
    """
    bands = normalize_grading_scale(scale)["bands"]
    if isinstance(percentage, numbers.Real) and not isinstance(percentage, bool):
        for band in bands:
            low, high = band.get("min"), band.get("max")
            if not isinstance(low, numbers.Real) or not isinstance(high, numbers.Real):
                continue
            if low <= percentage <= high:
                return {
                    "label": band.get("label"),
                    "color": band.get("color"),
                    "min": low,
                    "max": high,
                }
    return dict(FALLBACK_BAND)


def did_student_pass(percentage: Any, passing_grade: Optional[float] = DEFAULT_PASSING_GRADE) -> bool:
    """True when the percentage meets or exceeds the passing grade."""
    if passing_grade is None:
        passing_grade = DEFAULT_PASSING_GRADE
    if not isinstance(percentage, numbers.Real) or isinstance(percentage, bool):
        return False
    return percentage >= passing_grade


def grade_result(percentage: Any, scale: Any = None, passing_grade: Optional[float] = DEFAULT_PASSING_GRADE) -> Dict[str, Any]:
    """Label, colour and pass/fail verdict for a single result."""
    band = classify_grade(percentage, scale)
    return {
        "percentage": percentage,
        "label": band["label"],
        "color": band["color"],
        "passed": did_student_pass(percentage, passing_grade),
    }
