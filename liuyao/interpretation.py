"""
Interpretation generator.

Composes the stage outputs into a reading, in a fixed order:

1. focus status            -> item (+ note when void or hidden)
2. self/other comparison   -> item
3. moving lines            -> item (4+ moving lines: one risk item + note)
4. relation narratives     -> up to N items, focus-related first
5. void / broken focus     -> item
6. timing                  -> up to N predictions (+ note when chaotic)
7. trend                   -> tally of supports, obstacles and risks
8. advice                  -> lookup by (category, trend)
9. summaries               -> technical and plain registers
10. causal tree            -> self → focus → trend → advice

Every text comes from the template tables below.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from liuyao.astro_calendar import (
    CalendarTime, MonthWindow, next_days_with_branch, next_months_with_branch,
)
from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.focus import FocusSelection, QuestionCategory, focus_line
from liuyao.guardians import plain_meaning
from liuyao.hexagram import Hexagram
from liuyao.najia import Line, TransformationKind, other_line, self_line
from liuyao.reasoning import Evidence, ReasoningChain, ReasoningStep, chain_of
from liuyao.relations import Impact, RelationFinding
from liuyao.strength import DayInfluence
from liuyao.symbols import (
    ROLE_PLAIN_TEXT, TERM_DICTIONARY, EarthlyBranch, LineRelationKind, element_relationship, explain_term,
)

logger = logging.getLogger(__name__)


# ============================================================
# DATA STRUCTURES
# ============================================================

class ItemKind(Enum):
    TREND = "trend"
    OBSTACLE = "obstacle"
    SUPPORT = "support"
    TIMING = "timing"
    ADVICE = "advice"
    RISK = "risk"


class Trend(Enum):
    VERY_FAVORABLE = "very_favorable"
    FAVORABLE = "favorable"
    NEUTRAL = "neutral"
    UNFAVORABLE = "unfavorable"
    VERY_UNFAVORABLE = "very_unfavorable"
    UNCERTAIN = "uncertain"


@dataclass(frozen=True)
class InterpretationItem:
    kind: ItemKind
    technical: str
    plain: str
    rationale: ReasoningChain
    positions: tuple = ()

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "technical": self.technical,
            "plain": self.plain,
            "rationale": self.rationale.to_dict(),
            "positions": list(self.positions),
        }


@dataclass(frozen=True)
class UncertaintyNote:
    description: str
    plain: str
    suggestions: tuple = ()

    def to_dict(self):
        return {
            "description": self.description,
            "plain": self.plain,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class TimingPrediction:
    window: str
    basis: str
    confidence: Evidence
    rationale: ReasoningChain
    branches: tuple = ()
    next_day: Optional[date] = None
    next_month: Optional[MonthWindow] = None

    def to_dict(self):
        return {
            "window": self.window,
            "basis": self.basis,
            "confidence": self.confidence.value,
            "branches": [b.chinese for b in self.branches],
            "next_day": self.next_day.isoformat() if self.next_day else None,
            "next_month": self.next_month.to_dict() if self.next_month else None,
            "rationale": self.rationale.to_dict(),
        }


@dataclass(frozen=True)
class CausalNode:
    id: str
    kind: str
    technical: str
    plain: str
    connection: Optional[str] = None
    children: tuple = ()

    def to_dict(self):
        return {
            "id": self.id,
            "kind": self.kind,
            "technical": self.technical,
            "plain": self.plain,
            "connection": self.connection,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass(frozen=True)
class Interpretation:
    trend: Trend
    summary_technical: str
    summary_plain: str
    advice_technical: str
    advice_plain: str
    items: tuple
    timings: tuple
    uncertainties: tuple
    causal_tree: CausalNode

    def items_of(self, kind: ItemKind) -> list[InterpretationItem]:
        return [item for item in self.items if item.kind is kind]

    def glossary(self) -> dict:
        """Plain glosses for the technical terms used in this reading."""
        texts = [self.summary_technical] + [item.technical for item in self.items]
        return {term: explain_term(term) for term in TERM_DICTIONARY if any(term in t for t in texts)}

    def to_dict(self):
        return {
            "trend": self.trend.value,
            "summary_technical": self.summary_technical,
            "summary_plain": self.summary_plain,
            "advice_technical": self.advice_technical,
            "advice_plain": self.advice_plain,
            "items": [i.to_dict() for i in self.items],
            "timings": [t.to_dict() for t in self.timings],
            "uncertainties": [u.to_dict() for u in self.uncertainties],
            "causal_tree": self.causal_tree.to_dict(),
            "glossary": self.glossary(),
        }


# ============================================================
# TEXT TABLES
# ============================================================

# trend -> (technical summary, plain summary, short technical, short plain)
TREND_TEXTS = {
    Trend.VERY_FAVORABLE: ("卦象大吉", "整体趋势非常顺利", "大吉", "情况非常有利"),
    Trend.FAVORABLE: ("卦象偏吉", "整体趋势偏顺", "偏吉", "情况比较顺利"),
    Trend.NEUTRAL: ("卦象平和", "整体趋势平稳", "平和", "情况平稳"),
    Trend.UNFAVORABLE: ("卦象偏凶", "整体趋势有阻碍", "偏凶", "有一些阻碍"),
    Trend.VERY_UNFAVORABLE: ("卦象不利", "整体趋势不太顺利", "不利", "阻碍较多"),
    Trend.UNCERTAIN: ("卦象待定", "情况还不明朗，存在较多不确定因素", "待定", "情况还不明朗"),
}

TREND_REASON_PLAIN = {
    Trend.VERY_FAVORABLE: "主要是因为关键因素比较有力，环境也比较配合。",
    Trend.FAVORABLE: "主要是因为关键因素比较有力，环境也比较配合。",
    Trend.NEUTRAL: "好坏因素都有，需要具体分析各方面的影响。",
    Trend.UNFAVORABLE: "主要是因为关键因素力量不足，或者受到了阻碍。",
    Trend.VERY_UNFAVORABLE: "主要是因为关键因素力量不足，或者受到了阻碍。",
    Trend.UNCERTAIN: "主要是因为有些重要信息还不确定，建议先观察再做决定。",
}

ADVICE_TECHNICAL = {
    Trend.VERY_FAVORABLE: "可积极行动",
    Trend.FAVORABLE: "可稳步推进",
    Trend.NEUTRAL: "宜观望等待",
    Trend.UNFAVORABLE: "宜谨慎行事",
    Trend.VERY_UNFAVORABLE: "宜暂缓行动",
    Trend.UNCERTAIN: "宜再占或等待",
}

DEFAULT_ADVICE = {
    Trend.VERY_FAVORABLE: "可以积极行动",
    Trend.FAVORABLE: "可以稳步推进",
    Trend.NEUTRAL: "建议观察等待",
    Trend.UNFAVORABLE: "建议谨慎行事",
    Trend.VERY_UNFAVORABLE: "建议暂缓行动",
    Trend.UNCERTAIN: "建议等待更多信息",
}

# Order of trends in each row below
_TREND_ROW = [Trend.VERY_FAVORABLE, Trend.FAVORABLE, Trend.NEUTRAL,
              Trend.UNFAVORABLE, Trend.VERY_UNFAVORABLE, Trend.UNCERTAIN]

_ADVICE_ROWS = {
    QuestionCategory.CAREER: [
        "事业时机成熟，可以主动争取机会，积极推进计划",
        "事业整体顺利，可以稳步推进，注意把握时机",
        "事业暂时平稳，宜做好准备，等待更明确的信号",
        "事业上有阻力，行动前多做准备，避免冒进",
        "事业阻碍较多，建议暂缓重大决定，先稳住现状",
        "事业方向尚不明朗，建议多收集信息后再决定",
    ],
    QuestionCategory.LOVE: [
        "感情缘分较好，可以主动表达心意",
        "感情发展顺利，用心经营即可",
        "感情平稳，多沟通少猜测，顺其自然",
        "感情中有些阻碍，需要耐心沟通，避免冲动",
        "感情阻力较大，建议冷静一段时间，不宜强求",
        "对方态度还不明朗，建议先观察再做决定",
    ],
    QuestionCategory.WEALTH: [
        "财运较旺，可以把握机会，但仍需量力而行",
        "求财较顺，可稳步推进，注意控制风险",
        "财运平平，宜守不宜攻，保持现有节奏",
        "求财有阻，谨慎投资，避免大额支出",
        "财运不佳，建议暂停投资，守住本金",
        "财务情况不明朗，暂缓决策，等待更多信息",
    ],
    QuestionCategory.HEALTH: [
        "身体状况较好，保持良好作息即可",
        "健康趋于好转，坚持调养",
        "健康状况平稳，注意日常保养",
        "健康有隐患，建议及时就医检查",
        "健康状况需要重视，请尽快就医，遵从医嘱",
        "病情尚不明朗，建议进一步检查确认",
    ],
    QuestionCategory.STUDY: [
        "学业运势很好，全力以赴会有好结果",
        "学业较顺，保持努力即可",
        "学业平稳，按计划复习，查漏补缺",
        "学业有阻力，需要加倍努力，调整方法",
        "学业压力较大，建议调整目标和节奏",
        "结果尚难判断，专注准备，不必过度担心",
    ],
    QuestionCategory.LAWSUIT: [
        "诉讼形势有利，可积极主张自身权益",
        "诉讼较为有利，准备充分证据稳步推进",
        "诉讼胜负未分，宜寻求专业意见",
        "诉讼形势不利，考虑和解或调整策略",
        "诉讼风险较大，建议尽量和解，避免扩大损失",
        "诉讼局势不明，先咨询专业人士再做决定",
    ],
    QuestionCategory.TRAVEL: [
        "出行顺利，可以按计划出发",
        "出行较顺，注意常规安全即可",
        "出行平稳，做好行程准备",
        "出行有阻，注意安全，预留弹性时间",
        "出行不宜，如非必要建议改期",
        "出行情况不明，出发前再确认行程安排",
    ],
    QuestionCategory.LOST: [
        "失物有望找回，可在附近仔细寻找",
        "找回的可能性较大，抓紧寻找",
        "找回机会一般，扩大范围多方询问",
        "寻找难度较大，需要耐心和外部帮助",
        "找回希望不大，做好其他打算",
        "线索不明，回想最后出现的地点再寻找",
    ],
}

ADVICE_TEXTS = {
    category: dict(zip(_TREND_ROW, row)) for category, row in _ADVICE_ROWS.items()
}

SELF_OTHER_TEXTS = {
    "i_produce": "世生应，主动付出",
    "produces_me": "应生世，得到帮助",
    "i_control": "世克应，可以掌控",
    "controls_me": "应克世，受到制约",
    "same": "世应比和，势均力敌",
}

TRANSFORMATION_PLAIN = {
    TransformationKind.RETURN_BIRTH: "变化带来帮助",
    TransformationKind.RETURN_CLASH: "变化带来阻力",
    TransformationKind.ADVANCING: "往好的方向发展",
    TransformationKind.RETREATING: "力量在减弱",
    TransformationKind.NORMAL: "正在发生变化",
}

RELATION_PLAIN = {
    LineRelationKind.OPPOSITION: "在互相拉扯，可能造成变动或阻碍",
    LineRelationKind.UNION: "在互相配合，有利于稳定和推进",
    LineRelationKind.TRIAD_UNION: "形成合力，有利于聚集和成事",
    LineRelationKind.HARM: "之间暗中有不利因素干扰",
    LineRelationKind.MUTUAL_INJURY: "之间存在内部矛盾或自我消耗",
}

# salience order for relation narratives
RELATION_PRIORITY = {
    LineRelationKind.OPPOSITION: 0,
    LineRelationKind.UNION: 1,
    LineRelationKind.TRIAD_UNION: 2,
    LineRelationKind.MUTUAL_INJURY: 3,
    LineRelationKind.HARM: 4,
}

CHAOTIC_THRESHOLD = 4  # moving lines
UNCERTAIN_THRESHOLD = 2  # uncertainty notes


def advice_for(category: QuestionCategory, trend: Trend) -> str:
    return ADVICE_TEXTS.get(category, DEFAULT_ADVICE).get(trend, DEFAULT_ADVICE[trend])


# ============================================================
# SUB-ANALYSES
# ============================================================

def assess_focus(lines: Sequence[Line], focus: FocusSelection, reports: dict) -> tuple:
    """Focus status item, plus a note when the focus is hidden or void."""
    if focus.hidden:
        step = ReasoningStep(
            rule="用神不现",
            description="用神不在六爻中出现",
            facts={"role": focus.role.chinese},
            conclusion="用神伏藏，力量难以直接发挥",
            strength=Evidence.STRONG,
            source="《增删卜易》：用神不现，事难成也",
        )
        item = InterpretationItem(
            kind=ItemKind.OBSTACLE,
            technical=f"用神{focus.role.chinese}不在卦中显现，需查伏神",
            plain="关键因素目前没有直接显现出来，情况还不明朗，需要等待更多信息",
            rationale=chain_of(step, conclusion="用神不现，需查伏神", confidence=Evidence.WEAK),
        )
        note = UncertaintyNote(
            description="用神不在卦中显现",
            plain="最关键的因素目前看不到，这增加了判断的难度",
            suggestions=("可以考虑重新起卦", "或者等待时机变化后再看"),
        )
        return item, note

    line = focus_line(lines, focus)
    report = reports[line.position]

    technical = [f"用神{focus.role.chinese}在{line.position}爻，{line.branch.chinese}{line.element.chinese}"]
    plain = ["关键因素"]
    if report.seasonal:
        technical.append(f"得月令{report.month_tier.chinese}")
        plain.append("目前力量较强")
    else:
        technical.append(f"月令{report.month_tier.chinese}")
        plain.append("目前力量不够强")

    if report.day_influence is DayInfluence.SUPPORT:
        technical.append("得日辰生扶")
        plain.append("，且有当前环境的支持")
    elif report.day_influence is DayInfluence.RESTRAIN:
        technical.append("被日辰克制")
        plain.append("，但受到当前环境的一些限制")

    note = None
    if report.void_filled:
        technical.append(f"临空而{report.filled_by}，虽空不空")
        plain.append("，虽然一度落空，但已被当前时机激活")
    elif report.void:
        technical.append("临空亡")
        plain.append("，不过暂时还无法完全发挥作用")
        note = UncertaintyNote(
            description="用神临空亡",
            plain="关键因素虽然存在，但目前还没有真正落地，结论需要等待确认",
            suggestions=("等待出空之时（空亡被填实或被冲）", "不宜急于行动"),
        )

    if report.broken:
        technical.append("日破" if report.day_broken else "月破")
        plain.append("，而且受到较大的阻力和消耗")

    if line.guardian:
        technical.append(f"临{line.guardian.chinese}")
        plain.append(f"（{plain_meaning(line.guardian)}）")

    supportive = report.seasonal and not report.effectively_void and not report.broken
    item = InterpretationItem(
        kind=ItemKind.SUPPORT if supportive else ItemKind.OBSTACLE,
        technical="，".join(technical),
        plain="".join(plain),
        rationale=ReasoningChain(report.steps).concluded(
            f"用神{'有力' if report.seasonal else '力弱'}",
            Evidence.MEDIUM if report.effectively_void else Evidence.STRONG,
        ),
        positions=(line.position,),
    )
    return item, note


def compare_self_other(lines: Sequence[Line], reports: dict) -> InterpretationItem:
    me = self_line(lines)
    them = other_line(lines)
    my_report, their_report = reports[me.position], reports[them.position]
    me_strong = my_report.score > 0
    them_strong = their_report.score > 0

    relation = SELF_OTHER_TEXTS[element_relationship(me.element, them.element)]
    technical = (f"世爻{me.branch.chinese}{me.element.chinese}{my_report.month_tier.chinese}，"
                 f"应爻{them.branch.chinese}{them.element.chinese}{their_report.month_tier.chinese}，{relation}")

    plain = "你的位置" + ("目前比较有利" if me_strong else "目前力量一般")
    plain += "；外部环境" + ("比较强势" if them_strong else "力量有限")
    if me_strong and not them_strong:
        plain += "。整体来说，你占据主动"
    elif them_strong and not me_strong:
        plain += "。整体来说，外部因素影响更大"
    else:
        plain += "。双方力量相当，需要看其他因素"

    step = ReasoningStep(
        rule="世应分析",
        description="世爻代表自己，应爻代表对方或外部",
        facts={
            "self": {"position": me.position, "tier": my_report.month_tier.chinese, "score": my_report.score},
            "other": {"position": them.position, "tier": their_report.month_tier.chinese, "score": their_report.score},
        },
        conclusion=f"世{my_report.month_tier.chinese}应{their_report.month_tier.chinese}，{relation}",
        strength=Evidence.STRONG,
    )
    return InterpretationItem(
        kind=ItemKind.SUPPORT if me_strong else ItemKind.OBSTACLE,
        technical=technical,
        plain=plain,
        rationale=chain_of(step, conclusion="世爻有力，自身条件不错" if me_strong else "世爻力弱，需借助外力",
                           confidence=Evidence.STRONG),
        positions=(me.position, them.position),
    )


def narrate_active_lines(lines: Sequence[Line], focus: FocusSelection) -> tuple:
    moving = [line for line in lines if line.active]
    if not moving:
        return None, None

    positions = tuple(line.position for line in moving)
    if len(moving) >= CHAOTIC_THRESHOLD:
        step = ReasoningStep(
            rule="多爻齐动",
            description="动爻超过三爻，局面不稳",
            facts={"moving_count": len(moving)},
            conclusion="多爻乱动，难以判断",
            strength=Evidence.STRONG,
            source="《增删卜易》：爻动过多，难以定论",
        )
        item = InterpretationItem(
            kind=ItemKind.RISK,
            technical=f"动爻过多（{len(moving)}爻动），局面混乱",
            plain="变化因素太多，情况比较复杂，暂时看不清楚明确的方向",
            rationale=chain_of(step, conclusion="局面复杂，需观望", confidence=Evidence.WEAK),
            positions=positions,
        )
        note = UncertaintyNote(
            description="动爻过多",
            plain="变化因素太多，情况还在发展中，很难给出确定的结论",
            suggestions=("建议等待情况稳定后再做判断", "或者重新起卦"),
        )
        return item, note

    technical, plain, steps = [], [], []
    for line in moving:
        change = line.transformation
        text = f"{line.position}爻{line.role.chinese}{line.branch.chinese}动"
        if change.kind is TransformationKind.NORMAL:
            text += f"，化{change.role.chinese}{change.branch.chinese}"
        else:
            text += f"，{change.kind.chinese}"
        described = TRANSFORMATION_PLAIN[change.kind]
        if line.position in focus.positions:
            text += "（用神发动）"
            described = "关键因素" + described
        technical.append(text)
        plain.append(described)
        steps.append(ReasoningStep(
            rule="动爻分析",
            description="分析动爻的变化方向",
            facts={"position": line.position, "original": line.branch,
                   "changed": change.branch, "kind": change.kind},
            conclusion=f"{line.position}爻动{change.kind.chinese}",
            strength=Evidence.MEDIUM,
        ))

    item = InterpretationItem(
        kind=ItemKind.TREND,
        technical="；".join(technical),
        plain="；".join(plain),
        rationale=ReasoningChain(tuple(steps)).concluded(f"共{len(moving)}爻发动", Evidence.MEDIUM),
        positions=positions,
    )
    return item, None


def _relation_salience(finding: RelationFinding, focus_positions: set) -> tuple:
    touches_focus = bool(focus_positions.intersection(finding.positions))
    return (0 if touches_focus else 1, RELATION_PRIORITY[finding.kind])


def narrate_relations(findings: Sequence[RelationFinding], focus: FocusSelection,
                      limit: int = 3) -> list[InterpretationItem]:
    """The most salient findings: those touching the focus line first, clashes before unions."""
    focus_positions = set(focus.positions)
    ranked = sorted(enumerate(findings), key=lambda pair: (_relation_salience(pair[1], focus_positions), pair[0]))

    items = []
    for _, finding in ranked[:limit]:
        if finding.impact is Impact.FAVORABLE:
            kind = ItemKind.SUPPORT
        elif finding.impact is Impact.UNFAVORABLE:
            kind = ItemKind.OBSTACLE
        else:
            kind = ItemKind.TREND

        if finding.impact is Impact.NEUTRAL:
            plain = f"{'和'.join(finding.parties)}受到触动，事情有被激发的迹象"
        else:
            plain = f"{'和'.join(finding.parties)}{RELATION_PLAIN[finding.kind]}"

        step = ReasoningStep(
            rule=finding.kind.chinese,
            description="冲则动散，合则聚绊，刑害主暗损",
            facts={"parties": list(finding.parties), "impact": finding.impact},
            conclusion=finding.justification,
            strength=Evidence.MEDIUM,
        )
        items.append(InterpretationItem(
            kind=kind,
            technical=finding.justification,
            plain=plain,
            rationale=chain_of(step, conclusion=finding.justification, confidence=Evidence.MEDIUM),
            positions=finding.positions,
        ))
    return items


def narrate_void_or_broken(lines: Sequence[Line], focus: FocusSelection,
                           calendar: CalendarTime, reports: dict) -> Optional[InterpretationItem]:
    line = focus_line(lines, focus)
    if line is None:
        return None
    report = reports[line.position]

    if report.effectively_void:
        voids = "".join(b.chinese for b in calendar.void_branches)
        step = ReasoningStep(
            rule="用神空亡",
            description="用神临空，力量暂时不能发挥",
            facts={"branch": line.branch, "void": list(calendar.void_branches)},
            conclusion="用神空亡待实",
            strength=Evidence.STRONG,
            source="《增删卜易》：空者，无也",
        )
        return InterpretationItem(
            kind=ItemKind.OBSTACLE,
            technical=f"用神{line.branch.chinese}落入旬空（{voids}空）",
            plain="关键因素目前还没有真正落地，暂时发挥不了作用。需要等待时机成熟",
            rationale=chain_of(step, conclusion="需等出空之时", confidence=Evidence.MEDIUM),
            positions=(line.position,),
        )

    if report.broken:
        kind = "月破" if report.month_clash else "日破"
        step = ReasoningStep(
            rule=kind,
            description="被日月冲克，力量大损",
            facts={"branch": line.branch, "kind": kind},
            conclusion=f"用神{kind}，力弱",
            strength=Evidence.STRONG,
        )
        return InterpretationItem(
            kind=ItemKind.OBSTACLE,
            technical=f"用神{line.branch.chinese}{kind}",
            plain="关键因素受到较大的冲击和消耗，目前难以发挥正常作用",
            rationale=chain_of(step, conclusion="用神受破，不利", confidence=Evidence.STRONG),
            positions=(line.position,),
        )
    return None


def _nearest(calendar: CalendarTime, branches: Sequence[EarthlyBranch], config: EngineConfig) -> tuple:
    days, months = [], []
    for branch in branches:
        days.extend(next_days_with_branch(calendar.pillar_date, branch, config.timing_horizon_days))
        months.extend(next_months_with_branch(calendar.moment, branch, config.timing_horizon_months,
                                              config=config))
    next_day = min(days) if days else None
    next_month = min(months, key=lambda m: m.start) if months else None
    return next_day, next_month


def _window_text(branches: Sequence[EarthlyBranch], next_day, next_month) -> str:
    text = "或".join(f"逢{b.chinese}日/月" for b in branches)
    nearest = []
    if next_day:
        nearest.append(f"最近{next_day.isoformat()}")
    if next_month:
        nearest.append(f"{next_month.start:%Y-%m-%d}起之{next_month.branch.chinese}月")
    if nearest:
        text += f"（{'，'.join(nearest)}）"
    return text


def predict_timing(lines: Sequence[Line], focus: FocusSelection, calendar: CalendarTime,
                   reports: dict, config: EngineConfig = DEFAULT_CONFIG) -> tuple:
    """
    Timing predictions for the focus line.

    Returns:
        (list of TimingPrediction, optional UncertaintyNote when too many
        lines move for timing to be reliable)
    """
    line = focus_line(lines, focus)
    predictions = []
    note = None

    if sum(1 for l in lines if l.active) >= CHAOTIC_THRESHOLD:
        note = UncertaintyNote(
            description="应期难定",
            plain="变化的因素太多，事情发生的时间点暂时无法确定",
            suggestions=("关注近期局势变化", "情况明朗后可再占"),
        )

    if line is None:
        return predictions, note
    report = reports[line.position]

    candidates = []
    if report.effectively_void:
        clash = line.branch.opposite
        candidates.append((
            (line.branch, clash),
            "用神空亡，待填实或冲空而出",
            Evidence.MEDIUM,
            ReasoningStep(rule="空亡应期", description="空亡之爻逢本支填实或被冲而出空",
                          facts={"void": line.branch, "clash": clash},
                          conclusion=f"{line.branch.chinese}或{clash.chinese}时应验", strength=Evidence.MEDIUM),
        ))
    if not report.effectively_void and not report.broken:
        candidates.append((
            (line.branch,),
            "用神地支值日值月之时",
            Evidence.MEDIUM,
            ReasoningStep(rule="地支应期", description="用神地支当值之时",
                          facts={"branch": line.branch},
                          conclusion=f"{line.branch.chinese}时应验", strength=Evidence.MEDIUM),
        ))
    if line.active and line.transformation:
        changed = line.transformation.branch
        candidates.append((
            (changed,),
            "动爻变化后地支当值之时",
            Evidence.WEAK,
            ReasoningStep(rule="变爻应期", description="动爻化出之支当值",
                          facts={"changed": changed},
                          conclusion=f"{changed.chinese}时应验", strength=Evidence.WEAK),
        ))

    for branches, basis, confidence, step in candidates[:config.max_timing_predictions]:
        next_day, next_month = _nearest(calendar, branches, config)
        predictions.append(TimingPrediction(
            window=_window_text(branches, next_day, next_month),
            basis=basis,
            confidence=confidence,
            rationale=chain_of(step, conclusion=step.conclusion, confidence=confidence),
            branches=tuple(branches),
            next_day=next_day,
            next_month=next_month,
        ))
    return predictions, note


def judge_trend(items: Sequence[InterpretationItem], focus_item: InterpretationItem,
                uncertainty_count: int) -> Trend:
    """
    Weighted tally: support +1, obstacle -1, risk -2, and the focus
    item counts a further 2 its own way. Two or more uncertainty notes
    make the reading uncertain whatever the tally says.
    """
    if uncertainty_count >= UNCERTAIN_THRESHOLD:
        return Trend.UNCERTAIN

    balance = 0
    for item in items:
        if item.kind is ItemKind.SUPPORT:
            balance += 1
        elif item.kind is ItemKind.OBSTACLE:
            balance -= 1
        elif item.kind is ItemKind.RISK:
            balance -= 2

    if focus_item.kind is ItemKind.SUPPORT:
        balance += 2
    elif focus_item.kind is ItemKind.OBSTACLE:
        balance -= 2

    if balance >= 4:
        return Trend.VERY_FAVORABLE
    if balance >= 2:
        return Trend.FAVORABLE
    if balance <= -4:
        return Trend.VERY_UNFAVORABLE
    if balance <= -2:
        return Trend.UNFAVORABLE
    return Trend.NEUTRAL


def build_causal_tree(lines: Sequence[Line], focus: FocusSelection, trend: Trend,
                      advice_technical: str, advice_plain: str, reports: dict) -> CausalNode:
    me = self_line(lines)
    line = focus_line(lines, focus)
    strong = line is not None and reports[line.position].seasonal
    _, _, trend_short, trend_plain = TREND_TEXTS[trend]

    advice = CausalNode("advice", "advice", advice_technical, advice_plain)
    result = CausalNode("result", "result", trend_short, trend_plain, "因此", (advice,))
    factor = CausalNode("focus", "factor", f"用神{focus.role.chinese}", "关键因素",
                        "力量较强" if strong else "力量不足", (result,))
    return CausalNode("self", "self", f"世爻（{me.position}爻{me.branch.chinese}）", "你的位置", "关注", (factor,))


# ============================================================
# COMPOSITION
# ============================================================

def interpret(primary: Hexagram, changed: Optional[Hexagram], lines: Sequence[Line],
              focus: FocusSelection, findings: Sequence[RelationFinding], reports: dict,
              calendar: CalendarTime, category: QuestionCategory,
              config: EngineConfig = DEFAULT_CONFIG) -> tuple:
    """
    Compose the full interpretation.

    Args:
        primary: primary hexagram
        changed: changed hexagram, None without moving lines
        lines: primary lines with guardians and strength applied
        focus: focus selection
        findings: relation findings
        reports: {position: StrengthReport}
        calendar: resolved calendar time
        category: question category (advice lookup)
        config: engine configuration (limits and horizons)

    Returns:
        (Interpretation, ReasoningStep)
    """
    items = []
    notes = []

    focus_item, note = assess_focus(lines, focus, reports)
    items.append(focus_item)
    if note:
        notes.append(note)

    items.append(compare_self_other(lines, reports))

    moving_item, note = narrate_active_lines(lines, focus)
    if moving_item:
        items.append(moving_item)
    if note:
        notes.append(note)

    items.extend(narrate_relations(findings, focus, config.max_relation_items))

    void_item = narrate_void_or_broken(lines, focus, calendar, reports)
    if void_item:
        items.append(void_item)

    timings, note = predict_timing(lines, focus, calendar, reports, config)
    if note:
        notes.append(note)

    trend = judge_trend(items, focus_item, len(notes))
    advice_technical = ADVICE_TECHNICAL[trend]
    advice_plain = advice_for(category, trend)

    for timing in timings:
        items.append(InterpretationItem(
            kind=ItemKind.TIMING,
            technical=timing.window,
            plain=f"可能应验的时间：{timing.window}",
            rationale=timing.rationale,
        ))
    items.append(InterpretationItem(
        kind=ItemKind.ADVICE,
        technical=advice_technical,
        plain=advice_plain,
        rationale=chain_of(conclusion=f"{category.chinese}·{TREND_TEXTS[trend][2]}", confidence=Evidence.MEDIUM),
    ))

    trend_technical, trend_plain, _, _ = TREND_TEXTS[trend]
    summary_technical = primary.name
    if changed:
        summary_technical += f"之{changed.name}"
    summary_technical += f"，{trend_technical}。用神{focus.role.chinese}，{focus_item.technical}。"
    summary_plain = f"{trend_plain}。{TREND_REASON_PLAIN[trend]}"
    if not focus.hidden:
        summary_plain += f"这件事的关键在于{focus.role.chinese}（{ROLE_PLAIN_TEXT[focus.role]}）。"

    interpretation = Interpretation(
        trend=trend,
        summary_technical=summary_technical,
        summary_plain=summary_plain,
        advice_technical=advice_technical,
        advice_plain=advice_plain,
        items=tuple(items),
        timings=tuple(timings),
        uncertainties=tuple(notes),
        causal_tree=build_causal_tree(lines, focus, trend, advice_technical, advice_plain, reports),
    )

    counts = {kind.value: len(interpretation.items_of(kind)) for kind in ItemKind}
    step = ReasoningStep(
        rule="综合断卦",
        description="汇总用神、世应、动爻、刑冲合害与空破，按权重判断趋势",
        facts={"items": counts, "uncertainties": len(notes)},
        conclusion=f"{trend_technical}，{advice_technical}",
        strength=Evidence.MEDIUM if trend is not Trend.UNCERTAIN else Evidence.WEAK,
    )
    logger.debug("Trend %s from %s with %d uncertainties", trend.value, counts, len(notes))
    return interpretation, step
