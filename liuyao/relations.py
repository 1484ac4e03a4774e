"""
Relation analyzer.

Finds branch relations among the six lines, between each line and the
day/month branches, and between a moving line and what it changes into.

Checked for every pair: six clash (opposition), six combination (union),
six harm, punishment (mutual injury, with self-punishment for 辰午酉亥).
Three-harmony sets are matched once over the whole line set, first match
in scan order wins.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from liuyao.astro_calendar import CalendarTime
from liuyao.najia import Line
from liuyao.reasoning import Evidence, ReasoningStep
from liuyao.strength import STRONG_TIERS
from liuyao.symbols import (
    EARTHLY_BRANCHES, THREE_HARMONY, EarthlyBranch, LineRelationKind,
    branches_clash, branches_combine, branches_harm, branches_punish, combination_element,
)

logger = logging.getLogger(__name__)


class Impact(Enum):
    FAVORABLE = "favorable"
    UNFAVORABLE = "unfavorable"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class RelationFinding:
    kind: LineRelationKind
    parties: tuple  # labels, e.g. ("2爻寅", "日辰申")
    impact: Impact
    justification: str
    positions: tuple = ()  # line positions involved
    pillar: Optional[str] = None  # "day", "month" or "changed"
    complete: Optional[bool] = None  # three harmony only

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "kind_chinese": self.kind.chinese,
            "parties": list(self.parties),
            "impact": self.impact.value,
            "justification": self.justification,
            "positions": list(self.positions),
            "pillar": self.pillar,
            "complete": self.complete,
        }


PILLAR_LABELS = {"day": "日辰", "month": "月建", "changed": "变爻"}

DEFAULT_IMPACT = {
    LineRelationKind.OPPOSITION: Impact.UNFAVORABLE,
    LineRelationKind.UNION: Impact.FAVORABLE,
    LineRelationKind.TRIAD_UNION: Impact.FAVORABLE,
    LineRelationKind.MUTUAL_INJURY: Impact.UNFAVORABLE,
    LineRelationKind.HARM: Impact.UNFAVORABLE,
}


def pair_relations(a: EarthlyBranch, b: EarthlyBranch) -> list[LineRelationKind]:
    """Pairwise kinds in checking order: clash, combination, harm, punishment."""
    kinds = []
    if branches_clash(a, b):
        kinds.append(LineRelationKind.OPPOSITION)
    if branches_combine(a, b):
        kinds.append(LineRelationKind.UNION)
    if branches_harm(a, b):
        kinds.append(LineRelationKind.HARM)
    if branches_punish(a, b):
        kinds.append(LineRelationKind.MUTUAL_INJURY)
    return kinds


def _describe(kind: LineRelationKind, left: str, right: str, a: EarthlyBranch, b: EarthlyBranch) -> str:
    if kind is LineRelationKind.OPPOSITION:
        return f"{left}与{right}相冲"
    if kind is LineRelationKind.UNION:
        element = combination_element(a, b)
        return f"{left}与{right}相合（合{element.chinese}）"
    if kind is LineRelationKind.HARM:
        return f"{left}与{right}相害"
    if a.index == b.index:
        return f"{left}与{right}自刑"
    return f"{left}与{right}相刑"


def line_pair_findings(lines: Sequence[Line]) -> list[RelationFinding]:
    findings = []
    for i in range(len(lines)):
        for j in range(i + 1, len(lines)):
            a, b = lines[i], lines[j]
            for kind in pair_relations(a.branch, b.branch):
                findings.append(RelationFinding(
                    kind=kind,
                    parties=(a.label, b.label),
                    impact=DEFAULT_IMPACT[kind],
                    justification=_describe(kind, a.label, b.label, a.branch, b.branch),
                    positions=(a.position, b.position),
                ))
    return findings


def pillar_findings(lines: Sequence[Line], branch: EarthlyBranch, pillar: str) -> list[RelationFinding]:
    """
    Each line against the day or month branch.

    A day clash on a line at peak or supported tier stirs it (暗动)
    instead of breaking it.
    """
    label = f"{PILLAR_LABELS[pillar]}{branch.chinese}"
    findings = []
    for line in lines:
        for kind in pair_relations(line.branch, branch):
            impact = DEFAULT_IMPACT[kind]
            text = _describe(kind, line.label, label, line.branch, branch)
            if kind is LineRelationKind.OPPOSITION:
                if pillar == "day" and line.month_tier in STRONG_TIERS:
                    impact = Impact.NEUTRAL
                    text = f"{label}冲{line.label}，爻旺相逢冲为暗动"
                elif pillar == "day":
                    text = f"{label}冲{line.label}，日破"
                else:
                    text = f"{label}冲{line.label}，月破"
            findings.append(RelationFinding(
                kind=kind,
                parties=(line.label, label),
                impact=impact,
                justification=text,
                positions=(line.position,),
                pillar=pillar,
            ))
    return findings


def transformation_findings(lines: Sequence[Line]) -> list[RelationFinding]:
    """A moving line against the branch it changes into (回头冲 / 化合)."""
    findings = []
    for line in lines:
        if not line.transformation:
            continue
        changed = line.transformation.branch
        changed_label = f"变{changed.chinese}"
        if branches_clash(line.branch, changed):
            findings.append(RelationFinding(
                kind=LineRelationKind.OPPOSITION,
                parties=(line.label, changed_label),
                impact=Impact.UNFAVORABLE,
                justification=f"{line.label}动化{changed.chinese}，化冲",
                positions=(line.position,),
                pillar="changed",
            ))
        elif branches_combine(line.branch, changed):
            findings.append(RelationFinding(
                kind=LineRelationKind.UNION,
                parties=(line.label, changed_label),
                impact=Impact.FAVORABLE,
                justification=f"{line.label}动化{changed.chinese}，化合",
                positions=(line.position,),
                pillar="changed",
            ))
    return findings


def triad_finding(lines: Sequence[Line]) -> Optional[RelationFinding]:
    """
    First three-harmony set with at least two members among the lines.

    All three present is a complete union, two present a half union.
    """
    present = {}
    for line in lines:
        present.setdefault(line.branch.index, line)

    for members, element in THREE_HARMONY:
        found = [present[idx] for idx in members if idx in present]
        if len(found) < 2:
            continue
        complete = len(found) == 3
        names = "".join(EARTHLY_BRANCHES[idx].chinese for idx in members)
        if complete:
            text = f"{names}三合{element.chinese}局"
        else:
            missing = "".join(EARTHLY_BRANCHES[idx].chinese for idx in members if idx not in present)
            text = f"{names}半合{element.chinese}局（缺{missing}）"
        return RelationFinding(
            kind=LineRelationKind.TRIAD_UNION,
            parties=tuple(line.label for line in found),
            impact=Impact.FAVORABLE,
            justification=text,
            positions=tuple(line.position for line in found),
            complete=complete,
        )
    return None


def analyze_relations(lines: Sequence[Line], calendar: CalendarTime) -> tuple:
    """
    All relation findings for a casting.

    Args:
        lines: six lines with strength applied (month tier decides
            whether a day clash stirs or breaks)
        calendar: resolved calendar time

    Returns:
        (list of RelationFinding, ReasoningStep)
    """
    findings = line_pair_findings(lines)
    triad = triad_finding(lines)
    if triad:
        findings.append(triad)
    findings.extend(pillar_findings(lines, calendar.day.branch, "day"))
    findings.extend(pillar_findings(lines, calendar.month.branch, "month"))
    findings.extend(transformation_findings(lines))

    counts = {}
    for f in findings:
        counts[f.kind.value] = counts.get(f.kind.value, 0) + 1
    step = ReasoningStep(
        rule="刑冲合害",
        description="检查爻与爻、爻与日月、动爻与变爻之间的冲合刑害及三合",
        facts={"counts": counts},
        conclusion=f"共发现{len(findings)}项关系" if findings else "无明显冲合刑害",
        strength=Evidence.MEDIUM,
    )
    logger.debug("Relations: %s", counts)
    return findings, step
