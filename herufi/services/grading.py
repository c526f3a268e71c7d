"""
Grading Service - letter grades, remarks and score validation.

One grading scale is used everywhere a grade is stored or displayed:

    A >= 80, B >= 70, C >= 60, D >= 50, E >= 40, F below 40

Test marks are converted to a percentage of the test's max_marks first.
"""

from typing import Iterable, List, Optional


GRADE_BOUNDARIES = [
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
    (40, "E"),
]
FAIL_GRADE = "F"

REMARK_BOUNDARIES = [
    (90, "Excellent"),
    (80, "Very Good"),
    (70, "Good"),
    (60, "Satisfactory"),
    (50, "Needs Improvement"),
]
FAIL_REMARK = "Fail"

PASS_MARK = 50.0
MAX_EXAM_SCORE = 100.0


def grade_for_score(score: float) -> str:
    """Letter grade for a 0-100 score."""
    for boundary, grade in GRADE_BOUNDARIES:
        if score >= boundary:
            return grade
    return FAIL_GRADE


def remarks_for_score(score: float) -> str:
    """Teacher-style remark for a 0-100 score."""
    for boundary, remark in REMARK_BOUNDARIES:
        if score >= boundary:
            return remark
    return FAIL_REMARK


def percentage(marks: float, max_marks: Optional[float]) -> float:
    """Marks as a percentage of max_marks (max_marks defaults to 100)."""
    out_of = float(max_marks) if max_marks else MAX_EXAM_SCORE
    return float(marks) / out_of * 100


def grade_for_marks(marks: float, max_marks: float) -> str:
    """Letter grade for test marks out of max_marks."""
    return grade_for_score(percentage(marks, max_marks))


def is_valid_score(score: Optional[float], max_score: float = MAX_EXAM_SCORE) -> bool:
    """Blank scores are valid (they are skipped), otherwise 0 <= score <= max_score."""
    if score is None:
        return True
    return 0 <= score <= max_score


def count_invalid_scores(scores: Iterable[Optional[float]], max_score: float = MAX_EXAM_SCORE) -> int:
    return sum(1 for s in scores if not is_valid_score(s, max_score))


def grade_distribution(scores: Iterable[float]) -> dict:
    """Count of scores per letter grade, every grade present (zero if unused)."""
    distribution = {grade: 0 for grade in all_grades()}
    for score in scores:
        distribution[grade_for_score(score)] += 1
    return distribution


def all_grades() -> List[str]:
    return [grade for _, grade in GRADE_BOUNDARIES] + [FAIL_GRADE]
