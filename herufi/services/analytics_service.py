"""
Analytics Service

PURPOSE:
Aggregate stored scores into the numbers shown on dashboards:
- Examination result analysis (summary, grade distribution, rankings)
- Student performance (average, highest, passing rate, per subject)
- Teacher performance (one row per test or exam result, with filters
  and averages grouped by subject, class, type and month)

All scores are compared on a 0-100 scale. Test marks are converted to a
percentage of max_marks before they are mixed with exam scores.

Everything here is pure computation over rows already fetched by the routes.
"""

import numpy as np
from collections import OrderedDict
from typing import Dict, List, Optional

from herufi.services.grading import (
    PASS_MARK,
    grade_distribution,
    grade_for_score,
    percentage,
    remarks_for_score,
)

NOT_SPECIFIED = "Not specified"


def _round(value: float, digits: int = 2) -> float:
    return float(round(float(value), digits))


# ============================================================
# SCORE STATISTICS
# ============================================================

def score_statistics(scores: List[float]) -> dict:
    """
    Basic statistics for a list of 0-100 scores.

    Returns zeros for an empty list.
    """
    if not scores:
        return {"count": 0, "average": 0.0, "highest": 0.0, "lowest": 0.0, "pass_rate": 0.0}

    values = np.array(scores, dtype=float)
    return {
        "count": int(values.size),
        "average": _round(values.mean()),
        "highest": _round(values.max()),
        "lowest": _round(values.min()),
        "pass_rate": _round((values >= PASS_MARK).mean() * 100),
    }


def competition_positions(totals: List[float]) -> List[int]:
    """
    Positions for totals already sorted in descending order.
    Equal totals share a position and the next position skips (1, 1, 3).
    """
    positions = []
    for index, total in enumerate(totals):
        if index > 0 and np.isclose(total, totals[index - 1]):
            positions.append(positions[-1])
        else:
            positions.append(index + 1)
    return positions


# ============================================================
# EXAMINATION ANALYSIS
# ============================================================

def analyze_examination(rows: List[dict]) -> dict:
    """
    Analyze all results of one examination.

    Args:
        rows: dicts with student_id, admission_number, first_name, last_name,
              subject_id, subject_name, score (ordered by admission number)

    Returns:
        {results, summary, grade_distribution, subject_averages, rankings}
    """
    results = []
    by_subject: Dict[str, dict] = OrderedDict()
    by_student: Dict[str, dict] = OrderedDict()

    for row in rows:
        score = float(row["score"])
        student_name = f"{row['first_name']} {row['last_name']}"
        results.append({
            "student_id": str(row["student_id"]),
            "admission_number": row["admission_number"],
            "student_name": student_name,
            "subject_id": str(row["subject_id"]),
            "subject_name": row["subject_name"],
            "score": score,
            "grade": grade_for_score(score),
            "remarks": remarks_for_score(score),
        })

        subject = by_subject.setdefault(
            str(row["subject_id"]),
            {"subject_name": row["subject_name"], "scores": []}
        )
        subject["scores"].append(score)

        student = by_student.setdefault(
            str(row["student_id"]),
            {"admission_number": row["admission_number"], "student_name": student_name, "scores": []}
        )
        student["scores"].append(score)

    scores = [r["score"] for r in results]
    stats = score_statistics(scores)

    subject_averages = []
    for subject_id, data in by_subject.items():
        subject_stats = score_statistics(data["scores"])
        subject_averages.append({
            "subject_id": subject_id,
            "subject_name": data["subject_name"],
            "average": subject_stats["average"],
            "highest": subject_stats["highest"],
            "lowest": subject_stats["lowest"],
            "count": subject_stats["count"],
        })
    subject_averages.sort(key=lambda s: s["average"], reverse=True)

    return {
        "results": results,
        "summary": {
            "total_results": stats["count"],
            "total_students": len(by_student),
            "average": stats["average"],
            "highest": stats["highest"],
            "lowest": stats["lowest"],
            "pass_rate": stats["pass_rate"],
        },
        "grade_distribution": grade_distribution(scores),
        "subject_averages": subject_averages,
        "rankings": rank_students(by_student),
    }


def rank_students(by_student: Dict[str, dict]) -> List[dict]:
    """Rank students by total score; ties on the total share a position."""
    rankings = []
    for student_id, data in by_student.items():
        values = np.array(data["scores"], dtype=float)
        average = float(values.mean())
        rankings.append({
            "student_id": student_id,
            "admission_number": data["admission_number"],
            "student_name": data["student_name"],
            "total": _round(values.sum()),
            "average": _round(average),
            "subject_count": int(values.size),
            "grade": grade_for_score(average),
            "remarks": remarks_for_score(average),
        })

    # Stable sort keeps admission-number order within a tie
    rankings.sort(key=lambda r: r["total"], reverse=True)
    for ranking, position in zip(rankings, competition_positions([r["total"] for r in rankings])):
        ranking["position"] = position
    return rankings


# ============================================================
# STUDENT ANALYTICS
# ============================================================

def student_performance(exam_results: List[dict], test_results: List[dict]) -> dict:
    """
    Performance summary for one student.

    Args:
        exam_results: dicts with subject_name, score (0-100)
        test_results: dicts with subject_name, marks, max_marks

    Returns:
        {total_results, average, highest, passing_rate, subjects}
    """
    entries = [(r["subject_name"], float(r["score"])) for r in exam_results]
    entries += [
        (r["subject_name"], percentage(r["marks"], r["max_marks"]))
        for r in test_results
    ]

    if not entries:
        return {"total_results": 0, "average": 0.0, "highest": 0.0, "passing_rate": 0.0, "subjects": []}

    stats = score_statistics([score for _, score in entries])

    per_subject: Dict[str, List[float]] = OrderedDict()
    for subject, score in entries:
        per_subject.setdefault(subject, []).append(score)

    subjects = []
    for subject, scores in per_subject.items():
        subject_stats = score_statistics(scores)
        subjects.append({
            "subject": subject,
            "average": subject_stats["average"],
            "highest": subject_stats["highest"],
            "lowest": subject_stats["lowest"],
            "count": subject_stats["count"],
        })

    return {
        "total_results": stats["count"],
        "average": stats["average"],
        "highest": stats["highest"],
        "passing_rate": stats["pass_rate"],
        "subjects": subjects,
    }


def group_exam_results(rows: List[dict]) -> List[dict]:
    """
    Group a student's exam results per examination with totals and averages.

    Args:
        rows: dicts with examination_id, examination_name, year, term_name,
              subject_name, score
    """
    groups: Dict[str, dict] = OrderedDict()
    for row in rows:
        score = float(row["score"])
        group = groups.setdefault(str(row["examination_id"]), {
            "examination_id": str(row["examination_id"]),
            "examination_name": row["examination_name"],
            "year": row.get("year"),
            "term_name": row.get("term_name"),
            "results": [],
        })
        group["results"].append({
            "examination_id": str(row["examination_id"]),
            "examination_name": row["examination_name"],
            "subject_name": row["subject_name"],
            "score": score,
            "grade": row.get("grade") or grade_for_score(score),
            "remarks": remarks_for_score(score),
        })

    for group in groups.values():
        values = np.array([r["score"] for r in group["results"]], dtype=float)
        group["total"] = _round(values.sum())
        group["average"] = _round(values.mean())
        group["grade"] = grade_for_score(group["average"])
    return list(groups.values())


# ============================================================
# TEACHER ANALYTICS
# ============================================================

def _month(value) -> Optional[str]:
    return value.strftime("%Y-%m") if value is not None else None


def build_performance_rows(tests: List[dict], exam_results: List[dict]) -> List[dict]:
    """
    Turn a teacher's tests and exam results into performance rows.

    Args:
        tests: dicts with name, type, max_marks, subject_name, class_name,
               created_at and marks (list of submitted marks)
        exam_results: dicts with examination_name, year, term_name, score,
               subject_name, class_name, created_at
    """
    rows = []
    for test in tests:
        marks = [percentage(m, test["max_marks"]) for m in test.get("marks") or []]
        created = test.get("created_at")
        rows.append({
            "kind": "test",
            "name": test["name"],
            "type": test["type"],
            "subject": test["subject_name"],
            "class_name": test.get("class_name") or "-",
            "year": created.year if created else None,
            "term": NOT_SPECIFIED,
            "month": _month(created),
            "submissions": len(marks),
            "average": _round(np.mean(marks), 1) if marks else None,
            "highest": _round(max(marks), 1) if marks else None,
            "lowest": _round(min(marks), 1) if marks else None,
        })

    for result in exam_results:
        score = float(result["score"])
        created = result.get("created_at")
        rows.append({
            "kind": "exam",
            "name": result["examination_name"],
            "type": "exam",
            "subject": result["subject_name"],
            "class_name": result.get("class_name") or "-",
            "year": result.get("year"),
            "term": result.get("term_name") or NOT_SPECIFIED,
            "month": _month(created),
            "submissions": 1,
            "average": score,
            "highest": score,
            "lowest": score,
        })
    return rows


def filter_options(rows: List[dict]) -> Dict[str, list]:
    """Distinct values available for each analytics filter."""
    def distinct(key):
        return sorted({r[key] for r in rows if r.get(key) is not None}, key=str)

    return {
        "years": distinct("year"),
        "terms": distinct("term"),
        "types": distinct("type"),
        "subjects": distinct("subject"),
        "classes": distinct("class_name"),
    }


def apply_filters(
    rows: List[dict],
    year: Optional[int] = None,
    term: Optional[str] = None,
    type: Optional[str] = None,
    subject: Optional[str] = None,
    class_name: Optional[str] = None
) -> List[dict]:
    filters = {"year": year, "term": term, "type": type, "subject": subject, "class_name": class_name}
    return [
        r for r in rows
        if all(value is None or r.get(key) == value for key, value in filters.items())
    ]


def group_averages(rows: List[dict], key: str, sort_by_name: bool = False) -> List[dict]:
    """Average of row averages grouped by key. Rows without an average are skipped."""
    groups: Dict[str, List[float]] = OrderedDict()
    for row in rows:
        if row.get("average") is None or row.get(key) is None:
            continue
        groups.setdefault(str(row[key]), []).append(row["average"])

    averages = [
        {"name": name, "average": _round(np.mean(values), 1), "count": len(values)}
        for name, values in groups.items()
    ]
    if sort_by_name:
        averages.sort(key=lambda g: g["name"])
    return averages


def performance_summary(rows: List[dict]) -> dict:
    scored = [r["average"] for r in rows if r.get("average") is not None]
    by_subject = group_averages(rows, "subject")

    best = max(by_subject, key=lambda g: g["average"]) if by_subject else None
    weakest = min(by_subject, key=lambda g: g["average"]) if by_subject else None

    return {
        "total_assessments": len(rows),
        "total_submissions": sum(r["submissions"] for r in rows),
        "overall_average": _round(np.mean(scored), 1) if scored else 0.0,
        "best_subject": best["name"] if best else None,
        "weakest_subject": weakest["name"] if weakest else None,
    }


def teacher_analytics(rows: List[dict], **filters) -> dict:
    """Filter performance rows and compute every teacher analytics widget."""
    filtered = apply_filters(rows, **filters)
    return {
        "filters": filter_options(rows),
        "summary": performance_summary(filtered),
        "rows": filtered,
        "by_subject": group_averages(filtered, "subject"),
        "by_class": group_averages(filtered, "class_name"),
        "by_type": group_averages(filtered, "type"),
        "by_month": group_averages(filtered, "month", sort_by_name=True),
    }
