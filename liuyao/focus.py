"""
Focus-element selector (用神).

Handles:
- Question categories and their subtypes
- Subtype resolution from category, optional subtype and relationship flag
- The subtype -> focus rule table (familial role, self line, other line)
- Locating the focus line(s), or reporting the role as hidden
- Manual override of the automatic choice
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from liuyao.najia import Line, lines_with_role, other_line, self_line
from liuyao.reasoning import Evidence, ReasoningStep
from liuyao.symbols import FamilialRole

logger = logging.getLogger(__name__)


class QuestionCategory(Enum):
    CAREER = "career"
    LOVE = "love"
    WEALTH = "wealth"
    HEALTH = "health"
    STUDY = "study"
    LAWSUIT = "lawsuit"
    TRAVEL = "travel"
    LOST = "lost"
    OTHER = "other"

    @property
    def chinese(self) -> str:
        return CATEGORY_CHINESE[self]


CATEGORY_CHINESE = {
    QuestionCategory.CAREER: "事业",
    QuestionCategory.LOVE: "感情",
    QuestionCategory.WEALTH: "财运",
    QuestionCategory.HEALTH: "健康",
    QuestionCategory.STUDY: "学业",
    QuestionCategory.LAWSUIT: "诉讼",
    QuestionCategory.TRAVEL: "出行",
    QuestionCategory.LOST: "失物",
    QuestionCategory.OTHER: "其他",
}


class Relationship(Enum):
    MALE = "male"
    FEMALE = "female"
    SAME_SEX = "same_sex"


class FocusTarget(Enum):
    ROLE = "role"    # a familial role
    SELF = "self"    # the self (世) line
    OTHER = "other"  # the other (应) line
    PROXY = "proxy"  # the person asked about; resolved as self


# category -> [(subtype, description)], first entry is the default
QUESTION_SUBTYPES = {
    QuestionCategory.CAREER: [
        ("career_job", "求职/找工作"),
        ("career_business", "经商/创业"),
        ("career_promotion", "升职/晋升"),
        ("career_interview", "面试"),
    ],
    QuestionCategory.LOVE: [
        ("love_male", "男问婚恋"),
        ("love_female", "女问婚恋"),
        ("love_samesex", "同性感情"),
        ("love_relationship", "感情发展"),
    ],
    QuestionCategory.WEALTH: [
        ("wealth_general", "求财"),
        ("wealth_investment", "投资"),
        ("wealth_business", "生意买卖"),
    ],
    QuestionCategory.HEALTH: [
        ("health_self", "自己问病"),
        ("health_other", "代问他人"),
    ],
    QuestionCategory.STUDY: [
        ("study_exam", "考试"),
        ("study_learning", "学习"),
    ],
    QuestionCategory.LAWSUIT: [
        ("lawsuit_plaintiff", "原告/主动方"),
        ("lawsuit_defendant", "被告/被动方"),
    ],
    QuestionCategory.TRAVEL: [
        ("travel_self", "自己出行"),
        ("travel_safety", "出行安全"),
    ],
    QuestionCategory.LOST: [
        ("lost_item", "寻物"),
        ("lost_person", "寻人"),
    ],
    QuestionCategory.OTHER: [
        ("other_general", "其他事项"),
    ],
}

SUBTYPE_KEYS = {key for entries in QUESTION_SUBTYPES.values() for key, _ in entries}

Target = Union[FamilialRole, FocusTarget]


@dataclass(frozen=True)
class FocusRule:
    primary: Target
    secondary: Optional[Target]
    rationale: str


FOCUS_RULES = {
    "career_job": FocusRule(FamilialRole.OFFICER, None, "求官、求职以官鬼为用神"),
    "career_business": FocusRule(FamilialRole.WEALTH, None, "经商求财以妻财为用神"),
    "career_promotion": FocusRule(FamilialRole.OFFICER, None, "升迁以官鬼为用神"),
    "career_interview": FocusRule(FamilialRole.OFFICER, None, "面试以官鬼为用神"),
    "love_male": FocusRule(FamilialRole.WEALTH, None, "男问婚姻以妻财为用神"),
    "love_female": FocusRule(FamilialRole.OFFICER, None, "女问婚姻以官鬼为用神"),
    "love_relationship": FocusRule(FocusTarget.OTHER, FocusTarget.SELF, "问感情发展以应爻为对方"),
    "wealth_general": FocusRule(FamilialRole.WEALTH, None, "求财以妻财为用神"),
    "wealth_investment": FocusRule(FamilialRole.WEALTH, None, "投资以妻财为用神"),
    "wealth_business": FocusRule(FamilialRole.WEALTH, None, "生意以妻财为用神"),
    "health_self": FocusRule(FocusTarget.SELF, FamilialRole.OFFICER, "自己问病以世爻为主，官鬼为病"),
    "health_other": FocusRule(FocusTarget.PROXY, FamilialRole.OFFICER, "代问病以六亲用神为主，官鬼为病"),
    "study_exam": FocusRule(FamilialRole.PARENT, FamilialRole.OFFICER, "考试以父母为用神（文书），官鬼次之"),
    "study_learning": FocusRule(FamilialRole.PARENT, None, "学习以父母为用神"),
    "lawsuit_plaintiff": FocusRule(FocusTarget.SELF, FamilialRole.OFFICER, "原告以世爻为自己，官鬼为官司"),
    "lawsuit_defendant": FocusRule(FocusTarget.SELF, FamilialRole.OFFSPRING, "被告以世爻为自己，子孙制官为吉"),
    "travel_self": FocusRule(FocusTarget.SELF, None, "自己出行以世爻为用神"),
    "travel_safety": FocusRule(FocusTarget.SELF, FamilialRole.OFFICER, "问出行安全以世爻为主，官鬼为险"),
    "lost_item": FocusRule(FamilialRole.WEALTH, None, "寻物以妻财为用神"),
    "lost_person": FocusRule(FocusTarget.PROXY, None, "寻人以六亲用神（如子孙、父母等）"),
    "other_general": FocusRule(FocusTarget.SELF, None, "杂占以世爻为主"),
}

SELF_RATIONALE = "以世爻为用神，代表自己或事情的主体"


@dataclass(frozen=True)
class FocusAlternative:
    target: FocusTarget
    role: FamilialRole
    positions: tuple
    reason: str

    def to_dict(self):
        return {
            "target": self.target.value,
            "role": self.role.value,
            "role_chinese": self.role.chinese,
            "positions": list(self.positions),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class FocusSelection:
    subtype: str
    target: FocusTarget
    role: FamilialRole
    positions: tuple  # empty when the role is hidden
    rationale: str
    alternatives: tuple = ()
    auto_selected: bool = True

    @property
    def hidden(self) -> bool:
        return not self.positions

    def to_dict(self):
        return {
            "subtype": self.subtype,
            "target": self.target.value,
            "role": self.role.value,
            "role_chinese": self.role.chinese,
            "positions": list(self.positions),
            "hidden": self.hidden,
            "rationale": self.rationale,
            "alternatives": [a.to_dict() for a in self.alternatives],
            "auto_selected": self.auto_selected,
        }


# ============================================================
# SUBTYPE RESOLUTION
# ============================================================

def resolve_subtype(category: Union[QuestionCategory, str],
                    subtype: Optional[str] = None,
                    relationship: Union[Relationship, str, None] = None) -> str:
    """
    Pick the rule key for a question.

    Args:
        category: question category
        subtype: full key ("career_business") or its suffix ("business")
        relationship: querent gender/relationship flag for love questions

    Returns:
        Subtype key; love questions without a recognised subtype follow the
        relationship flag and default to the male reading
    """
    category = QuestionCategory(category)
    if isinstance(relationship, Relationship):
        relationship = relationship.value

    if subtype:
        if subtype in SUBTYPE_KEYS and subtype.startswith(category.value + "_"):
            return subtype
        prefixed = f"{category.value}_{subtype}"
        if prefixed in SUBTYPE_KEYS:
            return prefixed

    if category is QuestionCategory.LOVE:
        flag = relationship or subtype
        if flag == Relationship.FEMALE.value:
            return "love_female"
        if flag == Relationship.SAME_SEX.value:
            return "love_samesex"
        return "love_male"
    if category is QuestionCategory.CAREER:
        return "career_business" if subtype == "business" else "career_job"
    if category is QuestionCategory.HEALTH:
        return "health_other" if subtype == "other" else "health_self"
    if category is QuestionCategory.LOST:
        return "lost_person" if subtype == "person" else "lost_item"
    return QUESTION_SUBTYPES[category][0][0]


# ============================================================
# SELECTION
# ============================================================

def _line_target(lines: Sequence[Line], target: FocusTarget) -> Line:
    return other_line(lines) if target is FocusTarget.OTHER else self_line(lines)


def _alternative(lines: Sequence[Line], target: Optional[Target]) -> tuple:
    if target is None:
        return ()
    if isinstance(target, FamilialRole):
        found = lines_with_role(lines, target)
        return (FocusAlternative(FocusTarget.ROLE, target,
                                 tuple(line.position for line in found), "备选用神"),)
    line = _line_target(lines, target)
    return (FocusAlternative(target, line.role, (line.position,), "备选用神"),)


def select_focus(lines: Sequence[Line], subtype: str) -> tuple:
    """
    Choose the focus element for a resolved subtype.

    An unknown subtype, a self-line rule, and a proxy rule all focus the
    self line. A familial role absent from the six lines gives a hidden
    selection with no positions.

    Returns:
        (FocusSelection, ReasoningStep)
    """
    rule = FOCUS_RULES.get(subtype)

    if rule is None or rule.primary in (FocusTarget.SELF, FocusTarget.PROXY):
        line = self_line(lines)
        rationale = SELF_RATIONALE
        if rule is not None and rule.primary is FocusTarget.PROXY:
            rationale = f"{rule.rationale}；未指明所问之人，{SELF_RATIONALE}"
        elif rule is not None:
            rationale = rule.rationale
        selection = FocusSelection(
            subtype=subtype,
            target=FocusTarget.SELF,
            role=line.role,
            positions=(line.position,),
            rationale=rationale,
            alternatives=_alternative(lines, rule.secondary) if rule else (),
        )
    elif rule.primary is FocusTarget.OTHER:
        line = other_line(lines)
        selection = FocusSelection(
            subtype=subtype,
            target=FocusTarget.OTHER,
            role=line.role,
            positions=(line.position,),
            rationale=rule.rationale,
            alternatives=_alternative(lines, rule.secondary),
        )
    else:
        found = lines_with_role(lines, rule.primary)
        rationale = rule.rationale
        if not found:
            rationale = f"{rule.rationale}，但用神{rule.primary.chinese}不在卦中显现，需查伏神"
        selection = FocusSelection(
            subtype=subtype,
            target=FocusTarget.ROLE,
            role=rule.primary,
            positions=tuple(line.position for line in found),
            rationale=rationale,
            alternatives=_alternative(lines, rule.secondary),
        )

    logger.debug("Focus for %s: %s at %s", subtype, selection.role.chinese, selection.positions)
    return selection, focus_step(selection)


def override_focus(lines: Sequence[Line], role: FamilialRole, reason: str = "手动指定用神") -> tuple:
    found = lines_with_role(lines, role)
    selection = FocusSelection(
        subtype="override",
        target=FocusTarget.ROLE,
        role=role,
        positions=tuple(line.position for line in found),
        rationale=reason,
        auto_selected=False,
    )
    return selection, focus_step(selection)


def focus_step(selection: FocusSelection) -> ReasoningStep:
    return ReasoningStep(
        rule="用神选取",
        description="根据问事类别确定最关键的爻位",
        facts={
            "subtype": selection.subtype,
            "role": selection.role.chinese,
            "positions": list(selection.positions),
            "auto_selected": selection.auto_selected,
        },
        conclusion=selection.rationale,
        strength=Evidence.STRONG,
        source="《增删卜易》：用神者，用事之神也",
    )


def focus_line(lines: Sequence[Line], selection: FocusSelection) -> Optional[Line]:
    """The line the reading hinges on: a moving candidate first, else the lowest."""
    candidates = [lines[p - 1] for p in selection.positions]
    if not candidates:
        return None
    for line in candidates:
        if line.active:
            return line
    return candidates[0]
