"""
Grading scale registry for QuizGrade.

A grading scale maps percentage ranges to labels (letter grades, pass/fail,
or any custom wording).  Scales are plain dicts of the form::

    {"key": "traditional", "name": "Traditional A-F",
     "bands": [{"label": "A", "min": 90, "max": 100, "color": "#10b981"}, ...]}

Bands are evaluated in list order and the first match wins, so overlapping
bands are resolved by position.  ``find_scale_issues`` reports overlaps and
gaps so a misconfigured custom scale can be spotted.
"""

import copy
import logging
import numbers
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_SCALE_KEY = "traditional"
NEUTRAL_COLOR = "#6b7280"

# Returned by the classifier when no band matches
FALLBACK_BAND = {"label": "F", "color": NEUTRAL_COLOR, "min": 0, "max": 59}

DEFAULT_GRADING_SCALES = {
    "traditional": {
        "key": "traditional",
        "name": "Traditional A-F",
        "bands": [
            {"label": "A", "min": 90, "max": 100, "color": "#10b981"},
            {"label": "B", "min": 80, "max": 89, "color": "#3b82f6"},
            {"label": "C", "min": 70, "max": 79, "color": "#f59e0b"},
            {"label": "D", "min": 60, "max": 69, "color": "#ef4444"},
            {"label": "F", "min": 0, "max": 59, "color": NEUTRAL_COLOR},
        ],
    },
    "plus_minus": {
        "key": "plus_minus",
        "name": "Plus/Minus System",
        "bands": [
            {"label": "A+", "min": 97, "max": 100, "color": "#10b981"},
            {"label": "A", "min": 93, "max": 96, "color": "#10b981"},
            {"label": "A-", "min": 90, "max": 92, "color": "#10b981"},
            {"label": "B+", "min": 87, "max": 89, "color": "#3b82f6"},
            {"label": "B", "min": 83, "max": 86, "color": "#3b82f6"},
            {"label": "B-", "min": 80, "max": 82, "color": "#3b82f6"},
            {"label": "C+", "min": 77, "max": 79, "color": "#f59e0b"},
            {"label": "C", "min": 73, "max": 76, "color": "#f59e0b"},
            {"label": "C-", "min": 70, "max": 72, "color": "#f59e0b"},
            {"label": "D+", "min": 67, "max": 69, "color": "#ef4444"},
            {"label": "D", "min": 63, "max": 66, "color": "#ef4444"},
            {"label": "D-", "min": 60, "max": 62, "color": "#ef4444"},
            {"label": "F", "min": 0, "max": 59, "color": NEUTRAL_COLOR},
        ],
    },
    "pass_fail": {
        "key": "pass_fail",
        "name": "Pass/Fail",
        "bands": [
            {"label": "Pass", "min": 70, "max": 100, "color": "#10b981"},
            {"label": "Fail", "min": 0, "max": 69, "color": "#ef4444"},
        ],
    },
    "excellence": {
        "key": "excellence",
        "name": "Excellence Scale",
        "bands": [
            {"label": "Excellent", "min": 95, "max": 100, "color": "#10b981"},
            {"label": "Very Good", "min": 85, "max": 94, "color": "#3b82f6"},
            {"label": "Good", "min": 75, "max": 84, "color": "#f59e0b"},
            {"label": "Satisfactory", "min": 65, "max": 74, "color": "#ef4444"},
            {"label": "Needs Improvement", "min": 0, "max": 64, "color": NEUTRAL_COLOR},
        ],
    },
}

# Key spellings used by older stored quizzes
LEGACY_SCALE_KEYS = {
    "plusMinus": "plus_minus",
    "passFail": "pass_fail",
    "excellent": "excellence",
}


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------


def list_grading_scales() -> List[Dict[str, Any]]:
    """Return copies of all built-in scales, in registry order."""
    return [copy.deepcopy(scale) for scale in DEFAULT_GRADING_SCALES.values()]


def get_grading_scale(key: Optional[str] = None) -> Dict[str, Any]:
    """Look up a built-in scale by key.

    Args:
        key: Registry key (e.g. "plus_minus"). None returns the default.

    Returns:
        A deep copy of the scale dict.

    Raises:
        ValueError: If the key is unknown.
    """
    if key is None:
        key = DEFAULT_SCALE_KEY
    key = LEGACY_SCALE_KEYS.get(key, key)
    if key not in DEFAULT_GRADING_SCALES:
        raise ValueError(f"Unknown grading scale '{key}'. Available: {list(DEFAULT_GRADING_SCALES.keys())}")
    return copy.deepcopy(DEFAULT_GRADING_SCALES[key])


def _bands_from_grades(grades: dict) -> List[Dict[str, Any]]:
    """Convert a legacy ``{label: {min, max, color}}`` mapping to a band list."""
    bands = []
    for label, bounds in grades.items():
        if not isinstance(bounds, dict):
            continue
        bands.append(
            {
                "label": label,
                "min": bounds.get("min"),
                "max": bounds.get("max"),
                "color": bounds.get("color", NEUTRAL_COLOR),
            }
        )
    return bands


def normalize_grading_scale(scale: Any = None) -> Dict[str, Any]:
    """Coerce any stored scale representation into the canonical dict form.

    Accepts None, a registry key, a legacy ``{"grades": {...}}`` dict, or a
    ``{"bands": [...]}`` dict.  Anything unusable falls back to the default
    scale so classification stays total.
    """
    if scale is None:
        return get_grading_scale()

    if isinstance(scale, str):
        try:
            return get_grading_scale(scale)
        except ValueError:
            logger.warning("normalize_grading_scale: unknown scale key %r, using default", scale)
            return get_grading_scale()

    if isinstance(scale, dict):
        if isinstance(scale.get("bands"), list):
            bands = [dict(b) for b in scale["bands"] if isinstance(b, dict)]
        elif isinstance(scale.get("grades"), dict):
            bands = _bands_from_grades(scale["grades"])
        else:
            bands = []
        if bands:
            return {
                "key": scale.get("key", "custom"),
                "name": scale.get("name", "Custom Scale"),
                "bands": bands,
            }

    logger.warning("normalize_grading_scale: unusable scale definition, using default")
    return get_grading_scale()


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def validate_grading_scale(scale: Dict[str, Any]) -> List[str]:
    """Check every band of a scale for structural problems.

    Returns:
        List of human-readable problems; empty when the scale is valid.
    """
    if not isinstance(scale, dict) or not isinstance(scale.get("bands"), list) or not scale["bands"]:
        return ["Scale must define at least one band."]

    problems = []
    seen_labels = set()
    for i, band in enumerate(scale["bands"], 1):
        label = band.get("label") if isinstance(band, dict) else None
        if not label:
            problems.append(f"Band {i}: missing label")
            continue
        if label in seen_labels:
            problems.append(f"Band {i}: duplicate label '{label}'")
        seen_labels.add(label)

        low, high = band.get("min"), band.get("max")
        if not _is_number(low) or not _is_number(high):
            problems.append(f"Band '{label}': min and max must be numbers")
            continue
        if low < 0 or high > 100:
            problems.append(f"Band '{label}': bounds must lie within 0-100")
        if low > high:
            problems.append(f"Band '{label}': min {low} is greater than max {high}")
    return problems


def find_scale_issues(scale: Dict[str, Any]) -> Dict[str, List]:
    """Report overlapping and uncovered whole percentages in a scale.

    Only structurally valid bands are considered.  Overlaps are resolved by
    band order at classification time; gaps fall through to the fallback band.

    Returns:
        ``{"overlaps": [(percentage, [labels...]), ...], "gaps": [percentage, ...]}``
    """
    bands = [
        b
        for b in scale.get("bands", [])
        if isinstance(b, dict) and _is_number(b.get("min")) and _is_number(b.get("max"))
    ]
    overlaps = []
    gaps = []
    for pct in range(0, 101):
        labels = [b.get("label") for b in bands if b["min"] <= pct <= b["max"]]
        if not labels:
            gaps.append(pct)
        elif len(labels) > 1:
            overlaps.append((pct, labels))
    return {"overlaps": overlaps, "gaps": gaps}


def build_custom_scale(name: str, bands: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Validate and assemble a teacher-defined grading scale.

    Overlaps and gaps are logged but accepted (first match wins).

    Raises:
        ValueError: If the name is empty or any band is malformed.
    """
    if not name or not name.strip():
        raise ValueError("Scale name is required.")

    scale = {
        "key": "custom",
        "name": name.strip(),
        "bands": [
            {
                "label": b.get("label"),
                "min": b.get("min"),
                "max": b.get("max"),
                "color": b.get("color", NEUTRAL_COLOR),
            }
            for b in bands
        ],
    }
    problems = validate_grading_scale(scale)
    if problems:
        raise ValueError("Invalid grading scale: " + "; ".join(problems))

    issues = find_scale_issues(scale)
    if issues["overlaps"]:
        logger.warning(
            "build_custom_scale: %r has %d overlapping percentages (first match wins)",
            scale["name"],
            len(issues["overlaps"]),
        )
    if issues["gaps"]:
        logger.warning(
            "build_custom_scale: %r leaves %d percentages uncovered (fallback band applies)",
            scale["name"],
            len(issues["gaps"]),
        )
    return scale
