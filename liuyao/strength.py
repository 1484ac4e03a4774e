"""
Strength analyzer (旺衰).

Handles:
- Month tier (旺/相/休/囚/死) from the line element against the month element
- Day support or restraint from the day element
- Void (旬空), day clash (日破) and month clash (月破) flags
- Filled void (填实 by the month, 冲空 by a day clash): the line is not
  effectively void and the clash does not break it
- Twelve life stages at the month and day branches (advisory weight)
- A bounded score in [-10, 10] with the facts that produced it

Weights:
    month tier   旺 +5, 相 +3, 休 0, 囚 -2, 死 -4
    day          support +2, restrain -2
    void -3 (none when filled), day clash -4 (none when it fills the void)
    month clash -5
    month life stage score x 0.5
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from liuyao.astro_calendar import CalendarTime
from liuyao.najia import Line, with_updates
from liuyao.reasoning import Evidence, ReasoningStep
from liuyao.symbols import (
    STAGE_SCORES, TWELVE_STAGES, EarthlyBranch, Element, MonthTier, element_relationship, life_stage,
)

logger = logging.getLogger(__name__)


class DayInfluence(Enum):
    SUPPORT = "support"
    RESTRAIN = "restrain"
    NEUTRAL = "neutral"


# Line element's view of the month element -> tier
MONTH_TIER_BY_RELATIONSHIP = {
    "same": MonthTier.PEAK,
    "produces_me": MonthTier.SUPPORTED,
    "i_produce": MonthTier.RESTING,
    "i_control": MonthTier.CONSTRAINED,
    "controls_me": MonthTier.WEAKEST,
}

TIER_WEIGHTS = {
    MonthTier.PEAK: 5,
    MonthTier.SUPPORTED: 3,
    MonthTier.RESTING: 0,
    MonthTier.CONSTRAINED: -2,
    MonthTier.WEAKEST: -4,
}

DAY_WEIGHTS = {
    DayInfluence.SUPPORT: 2,
    DayInfluence.RESTRAIN: -2,
    DayInfluence.NEUTRAL: 0,
}

VOID_WEIGHT = -3
DAY_CLASH_WEIGHT = -4
MONTH_CLASH_WEIGHT = -5
STAGE_WEIGHT = 0.5
SCORE_MIN, SCORE_MAX = -10.0, 10.0

STRONG_TIERS = (MonthTier.PEAK, MonthTier.SUPPORTED)


@dataclass(frozen=True)
class StrengthReport:
    position: int
    month_tier: MonthTier
    day_influence: DayInfluence
    void: bool
    day_clash: bool
    month_clash: bool
    month_stage: str
    day_stage: str
    score: float
    level: str
    steps: tuple
    void_filled: bool = False
    filled_by: Optional[str] = None

    @property
    def seasonal(self) -> bool:
        """At peak or supported tier."""
        return self.month_tier in STRONG_TIERS

    @property
    def effectively_void(self) -> bool:
        return self.void and not self.void_filled

    @property
    def day_broken(self) -> bool:
        """Day clash on a weak line; a seasonal line is only stirred, a void one filled."""
        return self.day_clash and not self.seasonal and not self.void_filled

    @property
    def broken(self) -> bool:
        return self.day_broken or self.month_clash

    def to_dict(self):
        return {
            "position": self.position,
            "month_tier": self.month_tier.value,
            "month_tier_chinese": self.month_tier.chinese,
            "day_influence": self.day_influence.value,
            "void": self.void,
            "void_filled": self.void_filled,
            "filled_by": self.filled_by,
            "day_clash": self.day_clash,
            "month_clash": self.month_clash,
            "month_stage": self.month_stage,
            "day_stage": self.day_stage,
            "score": self.score,
            "level": self.level,
        }


def month_tier(line_element: Element, month_element: Element) -> MonthTier:
    return MONTH_TIER_BY_RELATIONSHIP[element_relationship(line_element, month_element)]


def day_influence(line_element: Element, day_element: Element) -> DayInfluence:
    relation = element_relationship(line_element, day_element)
    if relation in ("same", "produces_me"):
        return DayInfluence.SUPPORT
    if relation == "controls_me":
        return DayInfluence.RESTRAIN
    return DayInfluence.NEUTRAL


def strength_level(score: float) -> str:
    if score >= 5:
        return "strong"
    if score >= 2:
        return "medium"
    if score >= -2:
        return "weak"
    return "very_weak"


def void_filler(branch: EarthlyBranch, calendar: CalendarTime) -> Optional[str]:
    """What fills a void branch at this casting time, or None when it stays void."""
    if branch == calendar.day.branch:
        return f"日辰{calendar.day.branch.chinese}"
    if branch == calendar.month.branch:
        return f"月建{calendar.month.branch.chinese}"
    if branch.opposite == calendar.day.branch:
        return f"日辰{calendar.day.branch.chinese}冲空"
    return None


def analyze_line(line: Line, calendar: CalendarTime) -> StrengthReport:
    """
    Score one line against the casting's month and day.

    Args:
        line: installed line
        calendar: resolved calendar time

    Returns:
        StrengthReport with one reasoning step per contributing factor
    """
    steps = []
    month_branch = calendar.month.branch
    day_branch = calendar.day.branch

    tier = month_tier(line.element, calendar.month_element)
    score = float(TIER_WEIGHTS[tier])
    steps.append(ReasoningStep(
        rule="月令旺衰",
        description="以月建五行论爻之旺相休囚死",
        facts={"line": line.branch, "month": month_branch, "tier": tier.chinese},
        conclusion=f"{line.branch.chinese}{line.element.chinese}于{month_branch.chinese}月为{tier.chinese}",
        strength=Evidence.STRONG,
        source="《增删卜易》",
    ))

    influence = day_influence(line.element, calendar.day_element)
    score += DAY_WEIGHTS[influence]
    if influence is not DayInfluence.NEUTRAL:
        steps.append(ReasoningStep(
            rule="日辰生克",
            description="日辰生扶或克制爻",
            facts={"line": line.branch, "day": day_branch, "influence": influence},
            conclusion=f"{line.branch.chinese}{'得日辰生扶' if influence is DayInfluence.SUPPORT else '被日辰克制'}",
            strength=Evidence.STRONG,
        ))

    void = calendar.is_void(line.branch)
    day_clash = line.branch.opposite == day_branch
    filled_by = void_filler(line.branch, calendar) if void else None
    if filled_by:
        steps.append(ReasoningStep(
            rule="冲空" if filled_by.endswith("冲空") else "填实",
            description="空亡之爻逢日月填实或日辰冲起，虽空不空",
            facts={"line": line.branch, "void": list(calendar.void_branches), "filled_by": filled_by},
            conclusion=f"{line.branch.chinese}空而{filled_by}，虽空不空",
            strength=Evidence.STRONG,
            source="《增删卜易》：旬空逢冲为实",
        ))
    elif void:
        score += VOID_WEIGHT
        steps.append(ReasoningStep(
            rule="旬空",
            description="爻支落入日旬空亡",
            facts={"line": line.branch, "void": list(calendar.void_branches)},
            conclusion=f"{line.branch.chinese}空亡",
            strength=Evidence.STRONG,
            source="《增删卜易》：空者，无也",
        ))

    if day_clash and not filled_by:
        score += DAY_CLASH_WEIGHT
        steps.append(ReasoningStep(
            rule="日冲",
            description="爻支与日支相冲",
            facts={"line": line.branch, "day": day_branch},
            conclusion=f"{day_branch.chinese}日冲{line.branch.chinese}",
            strength=Evidence.STRONG,
        ))

    month_clash = line.branch.opposite == month_branch
    if month_clash:
        score += MONTH_CLASH_WEIGHT
        steps.append(ReasoningStep(
            rule="月破",
            description="爻支与月建相冲",
            facts={"line": line.branch, "month": month_branch},
            conclusion=f"{line.branch.chinese}月破",
            strength=Evidence.STRONG,
        ))

    stage_index = life_stage(line.element, month_branch)
    day_stage_index = life_stage(line.element, day_branch)
    stage_score = STAGE_SCORES[stage_index] * STAGE_WEIGHT
    score += stage_score
    steps.append(ReasoningStep(
        rule="十二长生",
        description="爻五行于月支之长生状态（参考权重）",
        facts={"element": line.element, "month": month_branch,
               "stage": TWELVE_STAGES[stage_index], "day_stage": TWELVE_STAGES[day_stage_index]},
        conclusion=f"{line.element.chinese}于{month_branch.chinese}为{TWELVE_STAGES[stage_index]}",
        strength=Evidence.WEAK,
    ))

    score = max(SCORE_MIN, min(SCORE_MAX, score))
    return StrengthReport(
        position=line.position,
        month_tier=tier,
        day_influence=influence,
        void=void,
        day_clash=day_clash,
        month_clash=month_clash,
        month_stage=TWELVE_STAGES[stage_index],
        day_stage=TWELVE_STAGES[day_stage_index],
        score=score,
        level=strength_level(score),
        steps=tuple(steps),
        void_filled=filled_by is not None,
        filled_by=filled_by,
    )


def apply_strength(lines: Sequence[Line], calendar: CalendarTime) -> tuple:
    """
    Enrich lines with their strength fields.

    Returns:
        (new lines, {position: StrengthReport})
    """
    reports = {line.position: analyze_line(line, calendar) for line in lines}
    enriched = with_updates(lines, {
        pos: {
            "month_tier": r.month_tier,
            "strength_score": r.score,
            "void": r.void,
            "void_filled": r.void_filled,
            "filled_by": r.filled_by,
            "day_clash": r.day_clash,
            "month_clash": r.month_clash,
        }
        for pos, r in reports.items()
    })
    logger.debug("Strength scores: %s",
                 ", ".join(f"{p}:{r.score:+.1f}" for p, r in sorted(reports.items())))
    return enriched, reports


def strength_summary_step(reports: dict) -> ReasoningStep:
    return ReasoningStep(
        rule="旺衰总评",
        description="综合月令、日辰、空亡、冲破与长生得分",
        facts={str(p): {"tier": r.month_tier.chinese, "score": r.score} for p, r in sorted(reports.items())},
        conclusion="、".join(f"{p}爻{r.month_tier.chinese}({r.score:+.1f})" for p, r in sorted(reports.items())),
        strength=Evidence.MEDIUM,
    )
