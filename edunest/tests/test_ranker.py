"""
Tests for RankingEngine

Tests relevance scoring, the comparator chain and ordering guarantees.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

TODAY = date(2024, 3, 15)
DONE = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _material(id, title, **kwargs):
    from edunest.common.schemas.material import Material
    kwargs.setdefault("content_type", "worksheet")
    return Material(id=id, title=title, **kwargs)


@pytest.fixture
def classify():
    from edunest.retriever.intent_classifier import IntentClassifier
    return IntentClassifier().classify


@pytest.fixture
def engine():
    from edunest.retriever.ranker import RankingEngine
    return RankingEngine()


class TestRelevanceScore:
    """Tests for the additive relevance bonuses"""

    def test_content_type_bonus_for_unrestricted_intent(self, engine, classify):
        score = engine.relevance_score(_material("a", "Anything"), classify("dinosaurs"), TODAY)

        assert score == 10

    def test_content_type_bonus_requires_membership(self, engine, classify):
        intent = classify("chapter")  # content_type lesson

        assert engine.relevance_score(_material("a", "x", content_type="lesson"), intent, TODAY) == 10
        assert engine.relevance_score(_material("b", "x", content_type="quiz"), intent, TODAY) == 0

    def test_keyword_hits_compound(self, engine, classify):
        intent = classify("fractions decimals percentages")
        material = _material("a", "Fractions, Decimals and Percentages")

        # 10 (no content restriction) + 3 keywords * 5
        assert engine.relevance_score(material, intent, TODAY) == 25

    def test_subject_bonus(self, engine, classify):
        intent = classify("algebra")
        with_subject = _material("a", "Math: linear equations")
        without = _material("b", "Linear equations")

        assert engine.relevance_score(with_subject, intent, TODAY) - engine.relevance_score(without, intent, TODAY) == 8

    def test_status_bonus(self, engine, classify):
        incomplete = classify("unfinished")
        completed = classify("completed")

        todo = _material("a", "x", content_type="other")
        done = _material("b", "x", content_type="other", completed_at=DONE)

        assert engine.relevance_score(todo, incomplete, TODAY) - engine.relevance_score(done, incomplete, TODAY) == 15
        assert engine.relevance_score(done, completed, TODAY) - engine.relevance_score(todo, completed, TODAY) == 15

    def test_low_score_bonus(self, engine, classify):
        intent = classify("low scores")
        low = _material("a", "x", completed_at=DONE, grade_value=6, grade_max_value=10)
        high = _material("b", "x", completed_at=DONE, grade_value=9, grade_max_value=10)

        assert engine.relevance_score(low, intent, TODAY) - engine.relevance_score(high, intent, TODAY) == 20

    def test_urgency_bonuses(self, engine, classify):
        late = _material("a", "x", due_date=TODAY - timedelta(days=1))
        soon = _material("b", "x", due_date=TODAY + timedelta(days=2))
        later = _material("c", "x", due_date=TODAY + timedelta(days=10))

        overdue_intent = classify("late")
        soon_intent = classify("upcoming")

        assert engine.relevance_score(late, overdue_intent, TODAY) - engine.relevance_score(later, overdue_intent, TODAY) == 25
        assert engine.relevance_score(soon, soon_intent, TODAY) - engine.relevance_score(later, soon_intent, TODAY) == 12

    def test_primary_lesson_bonus_only_for_lesson_intent(self, engine, classify):
        primary = _material("a", "x", content_type="lesson", is_primary_lesson=True)
        derived = _material("b", "x", content_type="lesson", is_primary_lesson=False)

        lesson_intent = classify("explain")
        mixed_intent = classify("dinosaurs")

        assert engine.relevance_score(primary, lesson_intent, TODAY) - engine.relevance_score(derived, lesson_intent, TODAY) == 8
        assert engine.relevance_score(primary, mixed_intent, TODAY) == engine.relevance_score(derived, mixed_intent, TODAY)

    def test_ungraded_material_gets_no_grade_bonus(self, engine, classify):
        intent = classify("low scores")
        broken = _material("a", "x", completed_at=DONE, grade_value=5, grade_max_value=0)

        assert engine.relevance_score(broken, intent, TODAY) == 10


class TestOrdering:
    """Tests for the comparator chain"""

    def test_overdue_math_worksheets_scenario(self, engine, classify):
        intent = classify("overdue math worksheets")
        on_time = _material("on-time", "Math Worksheet 5", due_date=TODAY + timedelta(days=5))
        overdue = _material("overdue", "Math Worksheet 4", due_date=TODAY - timedelta(days=3))

        ranked = engine.rank([on_time, overdue], intent, TODAY)

        assert [m.id for m in ranked] == ["overdue", "on-time"]

    def test_overdue_dominates_any_score(self, engine, classify):
        intent = classify("upcoming fractions quiz")
        perfect = _material(
            "perfect", "Fractions quiz", content_type="quiz", due_date=TODAY + timedelta(days=1)
        )
        overdue = _material("late", "Spelling list", content_type="notes", due_date=TODAY - timedelta(days=1))

        ranked = engine.rank_with_scores([perfect, overdue], intent, TODAY)

        assert ranked[0].material.id == "late"
        assert ranked[0].relevance_score < ranked[1].relevance_score

    def test_review_low_scores_scenario(self, engine, classify):
        intent = classify("review low scores")
        strong = _material("strong", "Fractions quiz", content_type="quiz", completed_at=DONE,
                           grade_value=95, grade_max_value=100)
        weak = _material("weak", "Decimals quiz", content_type="quiz", completed_at=DONE,
                         grade_value=60, grade_max_value=100)

        ranked = engine.rank([strong, weak], intent, TODAY)

        assert [m.id for m in ranked] == ["weak", "strong"]

    def test_lower_grade_first_on_equal_scores(self, engine, classify):
        intent = classify("low scores")
        a = _material("a", "A quiz", completed_at=DONE, grade_value=70, grade_max_value=100)
        b = _material("b", "B quiz", completed_at=DONE, grade_value=50, grade_max_value=100)

        assert [m.id for m in engine.rank([a, b], intent, TODAY)] == ["b", "a"]

    def test_homework_incomplete_before_completed(self, engine, classify):
        intent = classify("homework")
        done = _material("done", "A worksheet", completed_at=DONE)
        todo = _material("todo", "B worksheet")

        assert [m.id for m in engine.rank([done, todo], intent, TODAY)] == ["todo", "done"]

    def test_earlier_due_date_first(self, engine, classify):
        intent = classify("dinosaurs")
        later = _material("later", "A", due_date=TODAY + timedelta(days=9))
        sooner = _material("sooner", "B", due_date=TODAY + timedelta(days=6))

        assert [m.id for m in engine.rank([later, sooner], intent, TODAY)] == ["sooner", "later"]

    def test_title_fallback_is_case_insensitive(self, engine, classify):
        intent = classify("dinosaurs")
        materials = [_material("c", "cello"), _material("b", "Banjo"), _material("a", "accordion")]

        assert [m.title for m in engine.rank(materials, intent, TODAY)] == ["accordion", "Banjo", "cello"]

    def test_rank_is_deterministic_and_non_mutating(self, engine, classify):
        intent = classify("overdue math worksheets")
        materials = [
            _material("1", "Math Worksheet 1", due_date=TODAY - timedelta(days=1)),
            _material("2", "Math worksheet 2", due_date=TODAY + timedelta(days=2)),
            _material("3", "Reading log", content_type="reading"),
            _material("4", "Math worksheet 3", completed_at=DONE, grade_value=3, grade_max_value=10),
            _material("5", "math worksheet 1", due_date=TODAY - timedelta(days=1)),
        ]
        original = list(materials)

        first = [m.id for m in engine.rank(materials, intent, TODAY)]
        second = [m.id for m in engine.rank(list(reversed(materials)), intent, TODAY)]

        assert first == second
        assert materials == original

    def test_positions_start_at_one(self, engine, classify):
        ranked = engine.rank_with_scores(
            [_material("a", "A"), _material("b", "B")], classify("dinosaurs"), TODAY
        )

        assert [r.position for r in ranked] == [1, 2]
        assert ranked[0].id == "a"
        assert ranked[0].title == "A"

    def test_empty_candidates(self, engine, classify):
        assert engine.rank([], classify("overdue math worksheets"), TODAY) == []
