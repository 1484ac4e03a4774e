import pytest

from liuyao.focus import (
    FOCUS_RULES, QUESTION_SUBTYPES, FocusTarget, QuestionCategory, Relationship, focus_line,
    override_focus, resolve_subtype, select_focus,
)
from liuyao.symbols import FamilialRole


@pytest.mark.parametrize("category,subtype,relationship,expected", [
    ("career", None, None, "career_job"),
    ("career", "business", None, "career_business"),
    ("career", "career_interview", None, "career_interview"),
    ("career", "promotion", None, "career_promotion"),
    ("love", None, None, "love_male"),
    ("love", None, "female", "love_female"),
    ("love", None, Relationship.SAME_SEX, "love_samesex"),
    ("love", "relationship", None, "love_relationship"),
    ("wealth", None, None, "wealth_general"),
    ("health", None, None, "health_self"),
    ("health", "other", None, "health_other"),
    ("lost", "person", None, "lost_person"),
    ("lost", None, None, "lost_item"),
    ("study", None, None, "study_exam"),
    ("other", None, None, "other_general"),
    (QuestionCategory.TRAVEL, "nonsense", None, "travel_self"),
])
def test_resolve_subtype(category, subtype, relationship, expected):
    assert resolve_subtype(category, subtype, relationship) == expected


def test_every_category_has_a_default_subtype():
    for category in QuestionCategory:
        assert resolve_subtype(category) in {key for key, _ in QUESTION_SUBTYPES[category]}


def test_career_focuses_the_officer(qian_lines):
    selection, step = select_focus(qian_lines, resolve_subtype("career"))
    assert selection.role is FamilialRole.OFFICER
    assert selection.role.chinese == "官鬼"
    assert selection.positions == (4,)
    assert selection.auto_selected
    assert step.conclusion == FOCUS_RULES["career_job"].rationale


def test_wealth_focuses_the_wealth_line(qian_lines):
    selection, _ = select_focus(qian_lines, resolve_subtype("wealth"))
    assert selection.role is FamilialRole.WEALTH
    assert selection.positions == (2,)


def test_self_rules_use_the_self_line(qian_lines):
    selection, _ = select_focus(qian_lines, "travel_self")
    assert selection.target is FocusTarget.SELF
    assert selection.positions == (6,)
    assert selection.role is FamilialRole.PARENT


def test_other_rule_uses_the_other_line(qian_lines):
    selection, _ = select_focus(qian_lines, "love_relationship")
    assert selection.target is FocusTarget.OTHER
    assert selection.positions == (3,)
    assert selection.alternatives[0].target is FocusTarget.SELF


def test_unknown_subtype_falls_back_to_self(qian_lines):
    selection, _ = select_focus(qian_lines, "love_samesex")
    assert selection.target is FocusTarget.SELF
    assert selection.positions == (6,)


def test_proxy_questions_fall_back_to_self(qian_lines):
    selection, _ = select_focus(qian_lines, "health_other")
    assert selection.target is FocusTarget.SELF
    assert "未指明所问之人" in selection.rationale
    assert selection.alternatives[0].role is FamilialRole.OFFICER


def test_absent_role_is_reported_hidden(install):
    lines = install("011111")  # 天风姤 has no wood line, so no wealth
    selection, _ = select_focus(lines, "wealth_general")
    assert selection.hidden
    assert selection.positions == ()
    assert "伏神" in selection.rationale
    assert focus_line(lines, selection) is None


def test_secondary_role_is_offered_as_alternative(qian_lines):
    selection, _ = select_focus(qian_lines, "study_exam")
    assert selection.role is FamilialRole.PARENT
    assert selection.positions == (3, 6)
    assert selection.alternatives[0].role is FamilialRole.OFFICER
    assert selection.alternatives[0].positions == (4,)


def test_manual_override(qian_lines):
    selection, _ = override_focus(qian_lines, FamilialRole.OFFSPRING)
    assert not selection.auto_selected
    assert selection.positions == (1,)


def test_focus_line_prefers_a_moving_candidate(install):
    lines = install("111111", active=(6,))
    selection, _ = select_focus(lines, "study_learning")
    assert selection.positions == (3, 6)
    assert focus_line(lines, selection).position == 6
