"""
Liuyao reading orchestrator.

Runs the stages in order and threads one ReasoningChain through them:

    calendar → hexagrams → najia → guardians → strength
             → relations → focus → interpretation

Usage from Python:
    from liuyao.engine import CastingInput, cast
    result = cast(CastingInput.from_dict({
        "method": "coin",
        "lines": [9, 8, 7, 7, 8, 8],
        "timestamp": "2024-03-15T10:30",
        "category": "career",
    }))
    print(result.interpretation.summary_plain)

The pipeline is deterministic: identical input gives identical output,
apart from the result id and creation time.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from liuyao.astro_calendar import CalendarTime, resolve_calendar
from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.errors import InputValidationError, InvariantViolation, ReadingFailed
from liuyao.focus import (
    FocusSelection, QuestionCategory, Relationship, override_focus, resolve_subtype, select_focus,
)
from liuyao.guardians import assign_guardians
from liuyao.hexagram import (
    DRAW_VALUES, Hexagram, LineState, active_positions, resolve_changed, resolve_nuclear,
    resolve_opposite, resolve_primary, resolve_reversed,
)
from liuyao.interpretation import Interpretation, interpret
from liuyao.najia import install_changed_lines, install_lines, install_step
from liuyao.reasoning import Evidence, ReasoningChain, ReasoningStep
from liuyao.relations import analyze_relations
from liuyao.strength import StrengthReport, apply_strength, strength_summary_step
from liuyao.symbols import ROLE_BY_CHINESE, FamilialRole, Polarity

logger = logging.getLogger(__name__)


# ============================================================
# INPUT
# ============================================================

class CastingMethod(Enum):
    COIN = "coin"
    TIME = "time"
    MANUAL = "manual"


MSG_LINE_COUNT = "必须提供6个爻的状态"
MSG_TIMESTAMP = "必须提供起卦时间"
MSG_CATEGORY = "必须选择问事类别"


def bad_line_message(position: int, value) -> str:
    return f"第{position}爻的状态无效：{value!r}（应为6、7、8或9）"


@dataclass(frozen=True)
class CastingInput:
    lines: tuple  # six LineState, bottom to top
    timestamp: datetime
    category: QuestionCategory
    method: CastingMethod = CastingMethod.MANUAL
    subtype: Optional[str] = None
    relationship: Optional[Relationship] = None
    question: Optional[str] = None
    focus_override: Optional[FamilialRole] = None

    def problems(self) -> list[str]:
        messages = []
        if self.lines is None or len(self.lines) != 6:
            messages.append(MSG_LINE_COUNT)
        else:
            for position, line in enumerate(self.lines, start=1):
                if not isinstance(line, LineState):
                    messages.append(bad_line_message(position, line))
        if not isinstance(self.timestamp, datetime):
            messages.append(MSG_TIMESTAMP)
        if not isinstance(self.category, QuestionCategory):
            messages.append(MSG_CATEGORY)
        return messages

    @property
    def draws(self) -> str:
        """Draw digits bottom to top, e.g. '987878'."""
        return "".join(str(line.draw_value) for line in self.lines)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CastingInput":
        """
        Build a validated input from a raw payload.

        Lines may be draw values (6/7/8/9), a draw-digit string, or
        {"polarity": "yang"|"yin", "active": bool} mappings. The timestamp
        may be a datetime or an ISO 8601 string.

        Raises:
            InputValidationError: with every problem found
        """
        messages = validate_payload(payload)
        if messages:
            raise InputValidationError(messages)

        relationship = payload.get("relationship")
        focus_override = payload.get("focus_override")
        return cls(
            lines=_parse_lines(payload["lines"]),
            timestamp=_parse_timestamp(payload["timestamp"]),
            category=QuestionCategory(_value_of(payload["category"])),
            method=CastingMethod(_value_of(payload.get("method")) or CastingMethod.MANUAL.value),
            subtype=payload.get("subtype") or None,
            relationship=Relationship(_value_of(relationship)) if relationship else None,
            question=payload.get("question"),
            focus_override=_parse_role(focus_override) if focus_override else None,
        )

    def to_dict(self):
        return {
            "method": self.method.value,
            "lines": [line.to_dict() for line in self.lines],
            "draws": self.draws,
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "subtype": self.subtype,
            "relationship": self.relationship.value if self.relationship else None,
            "question": self.question,
            "focus_override": self.focus_override.value if self.focus_override else None,
        }


def _parse_line(value) -> LineState:
    if isinstance(value, LineState):
        return value
    if isinstance(value, Mapping):
        if value.get("draw") is not None:
            return LineState.from_draw(int(value["draw"]))
        return LineState(Polarity(value["polarity"]), bool(value.get("active", False)))
    return LineState.from_draw(int(value))


def _parse_lines(raw) -> tuple:
    if isinstance(raw, str):
        raw = list(raw)
    return tuple(_parse_line(v) for v in raw)


def _parse_timestamp(raw) -> datetime:
    if isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(raw)


def _parse_role(raw) -> FamilialRole:
    if isinstance(raw, FamilialRole):
        return raw
    if raw in ROLE_BY_CHINESE:
        return ROLE_BY_CHINESE[raw]
    return FamilialRole(raw)


def _value_of(raw):
    return raw.value if isinstance(raw, Enum) else raw


def validate_payload(payload: Mapping[str, Any]) -> list[str]:
    """Every problem with a raw casting payload; empty when it is usable."""
    messages = []

    lines = payload.get("lines")
    if not isinstance(lines, (str, list, tuple)) or len(lines) != 6:
        messages.append(MSG_LINE_COUNT)
    else:
        for position, value in enumerate(lines, start=1):
            try:
                _parse_line(value)
            except (ValueError, TypeError, KeyError):
                messages.append(bad_line_message(position, value))

    raw_time = payload.get("timestamp")
    if raw_time is None or raw_time == "":
        messages.append(MSG_TIMESTAMP)
    else:
        try:
            _parse_timestamp(raw_time)
        except (ValueError, TypeError):
            messages.append(f"起卦时间格式无效：{raw_time!r}")

    category = _value_of(payload.get("category"))
    if not category:
        messages.append(MSG_CATEGORY)
    elif category not in {c.value for c in QuestionCategory}:
        messages.append(f"未知的问事类别：{category!r}")

    method = _value_of(payload.get("method"))
    if method and method not in {m.value for m in CastingMethod}:
        messages.append(f"未知的起卦方式：{method!r}")

    relationship = _value_of(payload.get("relationship"))
    if relationship and relationship not in {r.value for r in Relationship}:
        messages.append(f"未知的关系标记：{relationship!r}")

    focus_override = payload.get("focus_override")
    if focus_override:
        try:
            _parse_role(focus_override)
        except ValueError:
            messages.append(f"未知的用神：{focus_override!r}")

    return messages


# ============================================================
# RESULT
# ============================================================

@dataclass(frozen=True)
class DivinationResult:
    input: CastingInput
    calendar: CalendarTime
    primary: Hexagram
    lines: tuple
    changed: Optional[Hexagram]
    changed_lines: Optional[tuple]
    nuclear: Hexagram
    opposite: Hexagram
    reversed: Hexagram
    focus: FocusSelection
    relations: tuple
    strength: Mapping[int, StrengthReport]
    interpretation: Interpretation
    reasoning: ReasoningChain
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "strength", MappingProxyType(dict(self.strength)))

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "input": self.input.to_dict(),
            "calendar": self.calendar.to_dict(),
            "primary": self.primary.to_dict(),
            "lines": [line.to_dict() for line in self.lines],
            "changed": self.changed.to_dict() if self.changed else None,
            "changed_lines": [line.to_dict() for line in self.changed_lines] if self.changed_lines else None,
            "nuclear": self.nuclear.to_dict(),
            "opposite": self.opposite.to_dict(),
            "reversed": self.reversed.to_dict(),
            "focus": self.focus.to_dict(),
            "relations": [r.to_dict() for r in self.relations],
            "strength": {str(p): r.to_dict() for p, r in sorted(self.strength.items())},
            "interpretation": self.interpretation.to_dict(),
            "reasoning": self.reasoning.to_dict(),
        }


# ============================================================
# PIPELINE
# ============================================================

def _calendar_step(calendar: CalendarTime) -> ReasoningStep:
    voids = "".join(b.chinese for b in calendar.void_branches)
    return ReasoningStep(
        rule="起卦时间",
        description="将起卦时间换算为年月日时四柱及日旬空亡",
        facts={"moment": calendar.moment.isoformat(), "void": list(calendar.void_branches)},
        conclusion=f"{calendar}，旬空{voids}",
        strength=Evidence.STRONG,
    )


def _hexagram_step(primary: Hexagram, changed: Optional[Hexagram], states) -> ReasoningStep:
    moving = active_positions(states)
    conclusion = f"得{primary.name}"
    if changed:
        conclusion += f"，{''.join(str(p) for p in moving)}爻动，变{changed.name}"
    else:
        conclusion += "，六爻安静"
    return ReasoningStep(
        rule="成卦",
        description="由下而上取六爻阴阳得本卦，动爻变而得之卦",
        facts={"key": primary.key, "moving": list(moving),
               "draws": [DRAW_VALUES[s.draw_value][0] for s in states]},
        conclusion=conclusion,
        strength=Evidence.STRONG,
    )


def _choose_focus(casting: CastingInput, lines) -> tuple:
    if casting.focus_override is not None:
        return override_focus(lines, casting.focus_override)
    subtype = resolve_subtype(casting.category, casting.subtype, casting.relationship)
    return select_focus(lines, subtype)


def _run(casting: CastingInput, config: EngineConfig) -> DivinationResult:
    states = casting.lines
    chain = ReasoningChain()

    calendar = resolve_calendar(casting.timestamp, config)
    chain = chain.append(_calendar_step(calendar))

    primary = resolve_primary(states)
    changed = resolve_changed(states)
    chain = chain.append(_hexagram_step(primary, changed, states))

    lines = install_lines(states, primary)
    chain = chain.append(install_step(primary, lines))

    lines, step = assign_guardians(lines, calendar.day.stem)
    chain = chain.append(step)

    lines, reports = apply_strength(lines, calendar)
    chain = chain.append(strength_summary_step(reports))

    changed_lines = None
    if changed:
        changed_lines = install_changed_lines(states, changed)
        changed_lines, _ = assign_guardians(changed_lines, calendar.day.stem)
        changed_lines, _ = apply_strength(changed_lines, calendar)

    findings, step = analyze_relations(lines, calendar)
    chain = chain.append(step)

    focus, step = _choose_focus(casting, lines)
    chain = chain.append(step)

    interpretation, step = interpret(
        primary, changed, lines, focus, findings, reports, calendar, casting.category, config,
    )
    chain = chain.append(step).concluded(
        interpretation.summary_technical,
        Evidence.WEAK if interpretation.uncertainties else Evidence.MEDIUM,
    )

    return DivinationResult(
        input=casting,
        calendar=calendar,
        primary=primary,
        lines=lines,
        changed=changed,
        changed_lines=changed_lines,
        nuclear=resolve_nuclear(states),
        opposite=resolve_opposite(states),
        reversed=resolve_reversed(states),
        focus=focus,
        relations=tuple(findings),
        strength=reports,
        interpretation=interpretation,
        reasoning=chain,
    )


def cast(casting: CastingInput, config: Optional[EngineConfig] = None) -> DivinationResult:
    """
    Produce a full reading for one casting.

    Args:
        casting: validated casting input
        config: engine configuration (defaults to DEFAULT_CONFIG)

    Returns:
        DivinationResult

    Raises:
        InputValidationError: the input is incomplete; no stage has run
        ReadingFailed: a static table produced an impossible state
    """
    messages = casting.problems()
    if messages:
        raise InputValidationError(messages)

    config = config or DEFAULT_CONFIG

    try:
        result = _run(casting, config)
    except InvariantViolation as exc:
        logger.exception("Invariant violated while casting %s", casting.draws)
        raise ReadingFailed() from exc

    logger.info("Cast %s %s → %s%s, focus %s, trend %s",
                result.id, casting.draws, result.primary.name,
                f"之{result.changed.name}" if result.changed else "",
                result.focus.role.chinese, result.interpretation.trend.value)
    return result


def cast_payload(payload: Mapping[str, Any], config: Optional[EngineConfig] = None) -> DivinationResult:
    return cast(CastingInput.from_dict(payload), config)
