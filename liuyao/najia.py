"""
Line installer (纳甲装卦).

Handles:
- Najia stems and branches for each line from the trigram tables
- Line element and familial role against the palace element
- Self (世) and other (应) line flags
- Transformation descriptors for moving lines (进神/退神/回头生/回头克)

Lines are immutable. Later stages (guardians, strength) return enriched
copies built with dataclasses.replace.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence

from liuyao.errors import MissingResponseLine, MissingWorldLine
from liuyao.hexagram import Hexagram, LineState, changed_key, trigram_for
from liuyao.reasoning import Evidence, ReasoningStep
from liuyao.symbols import (
    EARTHLY_BRANCHES, HEAVENLY_STEMS, ROLE_BY_RELATIONSHIP, EarthlyBranch, Element,
    FamilialRole, Guardian, HeavenlyStem, MonthTier, Polarity, element_relationship,
)

logger = logging.getLogger(__name__)


class TransformationKind(Enum):
    ADVANCING = "advancing"
    RETREATING = "retreating"
    RETURN_BIRTH = "return_birth"
    RETURN_CLASH = "return_clash"
    NORMAL = "normal"

    @property
    def chinese(self) -> str:
        return TRANSFORMATION_CHINESE[self]


TRANSFORMATION_CHINESE = {
    TransformationKind.ADVANCING: "化进神",
    TransformationKind.RETREATING: "化退神",
    TransformationKind.RETURN_BIRTH: "回头生",
    TransformationKind.RETURN_CLASH: "回头克",
    TransformationKind.NORMAL: "变",
}


@dataclass(frozen=True)
class Transformation:
    polarity: Polarity
    branch: EarthlyBranch
    element: Element
    role: FamilialRole
    kind: TransformationKind

    def to_dict(self):
        return {
            "polarity": self.polarity.value,
            "branch": self.branch.chinese,
            "element": self.element.value,
            "role": self.role.value,
            "role_chinese": self.role.chinese,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class Line:
    position: int  # 1-6, bottom to top
    polarity: Polarity
    active: bool
    draw: Optional[int]
    stem: HeavenlyStem
    branch: EarthlyBranch
    role: FamilialRole
    is_self: bool = False
    is_other: bool = False
    transformation: Optional[Transformation] = None
    # filled by the guardian assigner
    guardian: Optional[Guardian] = None
    # filled by the strength analyzer
    month_tier: Optional[MonthTier] = None
    strength_score: Optional[float] = None
    void: bool = False
    void_filled: bool = False
    filled_by: Optional[str] = None
    day_clash: bool = False
    month_clash: bool = False

    @property
    def element(self) -> Element:
        return self.branch.element

    @property
    def label(self) -> str:
        """Short technical label, e.g. 4爻午."""
        return f"{self.position}爻{self.branch.chinese}"

    def __str__(self):
        marks = "世" if self.is_self else ("应" if self.is_other else "")
        return f"{self.role.chinese}{self.branch.chinese}{self.element.chinese}{marks}"

    def to_dict(self):
        return {
            "position": self.position,
            "polarity": self.polarity.value,
            "active": self.active,
            "draw": self.draw,
            "stem": self.stem.chinese,
            "branch": self.branch.chinese,
            "element": self.element.value,
            "role": self.role.value,
            "role_chinese": self.role.chinese,
            "is_self": self.is_self,
            "is_other": self.is_other,
            "guardian": self.guardian.chinese if self.guardian else None,
            "transformation": self.transformation.to_dict() if self.transformation else None,
            "month_tier": self.month_tier.value if self.month_tier else None,
            "strength_score": self.strength_score,
            "void": self.void,
            "void_filled": self.void_filled,
            "filled_by": self.filled_by,
            "day_clash": self.day_clash,
            "month_clash": self.month_clash,
        }


# ============================================================
# NAJIA LOOKUPS
# ============================================================

def najia_branch(hexagram_key: str, position: int) -> EarthlyBranch:
    """
    Branch for a line position of any hexagram key.

    Lower lines read positions 1-3 of the lower trigram's list, upper lines
    read positions 4-6 of the upper trigram's list.
    """
    half = hexagram_key[:3] if position <= 3 else hexagram_key[3:]
    trigram = trigram_for(half)
    return EARTHLY_BRANCHES[trigram.branches[position - 1]]


def najia_stem(hexagram_key: str, position: int) -> HeavenlyStem:
    if position <= 3:
        return HEAVENLY_STEMS[trigram_for(hexagram_key[:3]).inner_stem]
    return HEAVENLY_STEMS[trigram_for(hexagram_key[3:]).outer_stem]


def role_for(palace_element: Element, line_element: Element) -> FamilialRole:
    return ROLE_BY_RELATIONSHIP[element_relationship(palace_element, line_element)]


def classify_transformation(original: EarthlyBranch, changed: EarthlyBranch) -> TransformationKind:
    """
    One step forward on the branch cycle advances, one step back retreats.
    Otherwise the changed element decides: producing the original line is
    return-birth, controlling it is return-clash.
    """
    if original.steps_to(changed) == 1:
        return TransformationKind.ADVANCING
    if changed.steps_to(original) == 1:
        return TransformationKind.RETREATING
    relation = element_relationship(original.element, changed.element)
    if relation == "produces_me":
        return TransformationKind.RETURN_BIRTH
    if relation == "controls_me":
        return TransformationKind.RETURN_CLASH
    return TransformationKind.NORMAL


def transformation_for(hexagram: Hexagram, position: int, state: LineState,
                       target_key: Optional[str] = None,
                       palace_element: Optional[Element] = None) -> Transformation:
    """
    Describe what a moving line turns into.

    The changed branch is read from the changed hexagram (`target_key`,
    every moving line flipped); without it only this line is flipped.
    Roles stay measured against the primary palace.
    """
    if target_key is None:
        key = list(hexagram.key)
        key[position - 1] = state.polarity.flipped().bit
        target_key = "".join(key)
    home = palace_element or hexagram.element
    changed_branch = najia_branch(target_key, position)
    original_branch = najia_branch(hexagram.key, position)
    return Transformation(
        polarity=state.polarity.flipped(),
        branch=changed_branch,
        element=changed_branch.element,
        role=role_for(home, changed_branch.element),
        kind=classify_transformation(original_branch, changed_branch),
    )


# ============================================================
# INSTALLATION
# ============================================================

def install_lines(states: Sequence[LineState], hexagram: Hexagram,
                  palace_element: Optional[Element] = None) -> tuple:
    """
    Build the six Lines of a hexagram.

    Args:
        states: six line states, bottom to top
        hexagram: the hexagram those states resolve to
        palace_element: element roles are measured against; defaults to
            the hexagram's own palace element

    Returns:
        Tuple of six Line values
    """
    home = palace_element or hexagram.element
    target_key = changed_key(states)
    lines = []
    for position, state in enumerate(states, start=1):
        branch = najia_branch(hexagram.key, position)
        lines.append(Line(
            position=position,
            polarity=state.polarity,
            active=state.active,
            draw=state.draw,
            stem=najia_stem(hexagram.key, position),
            branch=branch,
            role=role_for(home, branch.element),
            is_self=position == hexagram.self_position,
            is_other=position == hexagram.other_position,
            transformation=(transformation_for(hexagram, position, state, target_key, home)
                            if state.active else None),
        ))
    logger.debug("Installed %s: %s", hexagram.name, " ".join(str(line) for line in lines))
    return tuple(lines)


def install_changed_lines(states: Sequence[LineState], changed: Hexagram) -> tuple:
    """Lines of the changed hexagram, at rest, against its own palace."""
    settled = [LineState(s.polarity.flipped() if s.active else s.polarity) for s in states]
    return install_lines(settled, changed)


def install_step(hexagram: Hexagram, lines: Sequence[Line]) -> ReasoningStep:
    return ReasoningStep(
        rule="纳甲装卦",
        description="按八宫纳甲配地支，以宫五行定六亲，按世数定世应",
        facts={
            "hexagram": hexagram.name,
            "palace": hexagram.palace.chinese,
            "palace_element": hexagram.element,
            "generation": hexagram.generation_name,
            "branches": [line.branch for line in lines],
            "roles": [line.role.chinese for line in lines],
        },
        conclusion=f"{hexagram.name}属{hexagram.palace.chinese}宫{hexagram.element.chinese}，"
                   f"世在{hexagram.self_position}爻，应在{hexagram.other_position}爻",
        strength=Evidence.STRONG,
        source="《卜筮正宗》",
    )


def with_updates(lines: Sequence[Line], updates: dict) -> tuple:
    """Copy lines, applying {position: {field: value}} updates."""
    return tuple(replace(line, **updates.get(line.position, {})) for line in lines)


# ============================================================
# LOOKUPS OVER INSTALLED LINES
# ============================================================

def self_line(lines: Sequence[Line]) -> Line:
    for line in lines:
        if line.is_self:
            return line
    raise MissingWorldLine()


def other_line(lines: Sequence[Line]) -> Line:
    for line in lines:
        if line.is_other:
            return line
    raise MissingResponseLine()


def lines_with_role(lines: Sequence[Line], role: FamilialRole) -> list[Line]:
    return [line for line in lines if line.role is role]
