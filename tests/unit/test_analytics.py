"""Unit tests for examination, student and teacher analytics."""

from datetime import datetime

from herufi.services.analytics_service import (
    analyze_examination,
    build_performance_rows,
    competition_positions,
    group_exam_results,
    score_statistics,
    student_performance,
    teacher_analytics,
)


def _result(student, subject, score, admission=None):
    return {
        "student_id": student,
        "admission_number": admission or f"AHS/{student}",
        "first_name": student.title(),
        "last_name": "Test",
        "subject_id": subject,
        "subject_name": subject.title(),
        "score": score,
    }


class TestScoreStatistics:

    def test_empty(self):
        assert score_statistics([]) == {
            "count": 0, "average": 0.0, "highest": 0.0, "lowest": 0.0, "pass_rate": 0.0
        }

    def test_values(self):
        stats = score_statistics([40, 60, 80])

        assert stats["average"] == 60.0
        assert stats["highest"] == 80.0
        assert stats["pass_rate"] == 66.67

    def test_pass_mark_is_inclusive(self):
        assert score_statistics([50, 49.9])["pass_rate"] == 50.0


class TestPositions:

    def test_ties_share_position(self):
        assert competition_positions([180, 180, 150, 120, 120, 90]) == [1, 1, 3, 4, 4, 6]

    def test_empty(self):
        assert competition_positions([]) == []


class TestAnalyzeExamination:

    def test_summary_and_rankings(self):
        rows = [
            _result("amina", "math", 90),
            _result("amina", "english", 70),
            _result("brian", "math", 80),
            _result("brian", "english", 80),
            _result("cate", "math", 45),
        ]

        analysis = analyze_examination(rows)

        assert analysis["summary"]["total_results"] == 5
        assert analysis["summary"]["total_students"] == 3
        assert analysis["summary"]["pass_rate"] == 80.0
        assert analysis["grade_distribution"]["A"] == 3
        assert analysis["grade_distribution"]["E"] == 1

        positions = [(r["student_name"], r["position"]) for r in analysis["rankings"]]
        assert positions == [("Amina Test", 1), ("Brian Test", 1), ("Cate Test", 3)]

        assert analysis["subject_averages"][0]["subject_name"] == "English"
        assert analysis["results"][0]["grade"] == "A"
        assert analysis["results"][0]["remarks"] == "Excellent"

    def test_no_results(self):
        analysis = analyze_examination([])

        assert analysis["summary"]["total_results"] == 0
        assert analysis["rankings"] == []


class TestStudentPerformance:

    def test_no_results_gives_zeros(self):
        assert student_performance([], []) == {
            "total_results": 0, "average": 0.0, "highest": 0.0, "passing_rate": 0.0, "subjects": []
        }

    def test_test_marks_count_as_percentages(self):
        performance = student_performance(
            [{"subject_name": "Math", "score": 60}],
            [{"subject_name": "Math", "marks": 18, "max_marks": 20}],
        )

        assert performance["total_results"] == 2
        assert performance["average"] == 75.0
        assert performance["highest"] == 90.0
        assert performance["subjects"] == [
            {"subject": "Math", "average": 75.0, "highest": 90.0, "lowest": 60.0, "count": 2}
        ]


def test_group_exam_results():
    groups = group_exam_results([
        {"examination_id": "e1", "examination_name": "Mid Term", "year": 2024,
         "term_name": "Term 1", "subject_name": "Math", "score": 80},
        {"examination_id": "e1", "examination_name": "Mid Term", "year": 2024,
         "term_name": "Term 1", "subject_name": "English", "score": 60},
    ])

    assert len(groups) == 1
    assert groups[0]["total"] == 140.0
    assert groups[0]["average"] == 70.0
    assert groups[0]["grade"] == "B"


class TestTeacherAnalytics:

    def _rows(self):
        tests = [
            {"name": "CAT 1", "type": "cat", "max_marks": 20, "subject_name": "Math",
             "class_name": "Form 1", "created_at": datetime(2024, 2, 10), "marks": [10, 20]},
            {"name": "Quiz", "type": "quiz", "max_marks": 10, "subject_name": "Math",
             "class_name": "Form 2", "created_at": datetime(2024, 1, 5), "marks": []},
        ]
        exams = [
            {"examination_name": "End Term", "year": 2024, "term_name": "Term 1", "score": 60,
             "subject_name": "English", "class_name": "Form 1", "created_at": datetime(2024, 3, 1)},
        ]
        return build_performance_rows(tests, exams)

    def test_rows(self):
        rows = self._rows()

        assert rows[0]["average"] == 75.0
        assert rows[0]["term"] == "Not specified"
        assert rows[1]["average"] is None
        assert rows[2]["kind"] == "exam"

    def test_summary_and_groups(self):
        analytics = teacher_analytics(self._rows())

        assert analytics["summary"]["total_assessments"] == 3
        assert analytics["summary"]["total_submissions"] == 3
        assert analytics["summary"]["best_subject"] == "Math"
        assert analytics["summary"]["weakest_subject"] == "English"
        assert [g["name"] for g in analytics["by_month"]] == ["2024-02", "2024-03"]
        assert analytics["filters"]["classes"] == ["Form 1", "Form 2"]

    def test_filters(self):
        analytics = teacher_analytics(self._rows(), class_name="Form 1", type="exam")

        assert len(analytics["rows"]) == 1
        assert analytics["summary"]["overall_average"] == 60.0
        # options always describe the unfiltered rows
        assert analytics["filters"]["types"] == ["cat", "exam", "quiz"]
