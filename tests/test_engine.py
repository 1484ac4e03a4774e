import json
from datetime import datetime

import pytest

from liuyao.config import EngineConfig
from liuyao.engine import (
    MSG_CATEGORY, MSG_LINE_COUNT, MSG_TIMESTAMP, CastingInput, CastingMethod, bad_line_message, cast,
    cast_payload, validate_payload,
)
from liuyao.errors import InputValidationError, ReadingFailed, UnknownHexagram
from liuyao.focus import QuestionCategory
from liuyao.interpretation import Trend
from liuyao.symbols import FamilialRole

CAST_TIME = datetime(2024, 3, 15, 10, 30)


def payload(**overrides):
    base = {"lines": "777777", "timestamp": "2024-03-15T10:30", "category": "career"}
    base.update(overrides)
    return base


def comparable(result):
    data = result.to_dict()
    del data["id"], data["created_at"]
    return data


# ============================================================
# INPUT
# ============================================================

def test_from_dict_accepts_every_line_form():
    casting = CastingInput.from_dict(payload(
        lines=[9, "8", {"draw": 7}, {"polarity": "yin", "active": True}, 7, 8],
        method="coin",
        relationship="female",
        focus_override="官鬼",
    ))
    assert casting.draws == "987678"
    assert casting.timestamp == CAST_TIME
    assert casting.method is CastingMethod.COIN
    assert casting.category is QuestionCategory.CAREER
    assert casting.focus_override is FamilialRole.OFFICER


def test_missing_fields_are_all_reported():
    messages = validate_payload({"lines": "77777", "timestamp": "", "category": ""})
    assert messages == [MSG_LINE_COUNT, MSG_TIMESTAMP, MSG_CATEGORY]


def test_bad_values_are_reported():
    messages = validate_payload(payload(lines="77a775", timestamp="yesterday", category="fortune",
                                        method="dice", focus_override="祖先"))
    assert messages[0].startswith("第3爻的状态无效")
    assert messages[1].startswith("第6爻的状态无效")
    assert any(m.startswith("起卦时间格式无效") for m in messages)
    assert any(m.startswith("未知的问事类别") for m in messages)
    assert any(m.startswith("未知的起卦方式") for m in messages)
    assert any(m.startswith("未知的用神") for m in messages)


def test_from_dict_raises_with_messages():
    with pytest.raises(InputValidationError) as excinfo:
        CastingInput.from_dict(payload(lines=[7, 7, 7, 7, 7]))
    assert excinfo.value.messages == [MSG_LINE_COUNT]


def test_cast_rejects_incomplete_input_before_running():
    casting = CastingInput(lines=(), timestamp=CAST_TIME, category=QuestionCategory.CAREER)
    with pytest.raises(InputValidationError):
        cast(casting)


# ============================================================
# PIPELINE
# ============================================================

def test_reading_is_deterministic():
    first = cast_payload(payload(lines="987878"))
    second = cast_payload(payload(lines="987878"))
    assert first.id != second.id
    assert comparable(first) == comparable(second)


def test_reasoning_follows_the_stage_order():
    result = cast_payload(payload())
    assert result.reasoning.rules() == [
        "起卦时间", "成卦", "纳甲装卦", "安六神", "旺衰总评", "刑冲合害", "用神选取", "综合断卦",
    ]
    assert result.reasoning.conclusion == result.interpretation.summary_technical


def test_quiet_reading():
    result = cast_payload(payload())
    assert result.primary.name == "乾为天"
    assert result.changed is None
    assert result.changed_lines is None
    assert str(result.calendar.day) == "戊寅"
    assert result.focus.positions == (4,)
    assert result.interpretation.trend is Trend.NEUTRAL
    assert all(line.guardian is not None and line.month_tier is not None for line in result.lines)


def test_changed_hexagram_lines_are_installed():
    result = cast_payload(payload(lines="688777"))  # 天地否, bottom line moving
    assert result.primary.name == "天地否"
    assert result.changed.name == "天雷无妄"
    assert result.lines[0].transformation.branch.chinese == "子"

    changed_first = result.changed_lines[0]
    assert changed_first.branch.chinese == "子"
    assert changed_first.role is FamilialRole.PARENT
    assert all(line.guardian is not None for line in result.changed_lines)
    assert all(line.month_tier is not None for line in result.changed_lines)


def test_focus_override():
    result = cast_payload(payload(focus_override="sibling"))
    assert result.focus.role is FamilialRole.SIBLING
    assert not result.focus.auto_selected
    assert result.focus.positions == (5,)


def test_hidden_focus_does_not_raise():
    result = cast_payload(payload(lines="877777", category="wealth"))
    assert result.focus.hidden
    assert [n.description for n in result.interpretation.uncertainties] == ["用神不在卦中显现"]
    assert result.reasoning.confidence.value == "weak"


def test_result_serialises_to_json():
    result = cast_payload(payload(lines="999999", question="今年换工作是否顺利？"))
    text = json.dumps(result.to_dict(), ensure_ascii=False)
    data = json.loads(text)
    assert data["changed"]["name"] == "坤为地"
    assert data["input"]["question"] == "今年换工作是否顺利？"
    assert set(data["strength"]) == {"1", "2", "3", "4", "5", "6"}
    assert data["interpretation"]["trend"] == "uncertain"


def test_invariant_violation_surfaces_as_reading_failed(monkeypatch, caplog):
    def broken(states):
        raise UnknownHexagram("111111")

    monkeypatch.setattr("liuyao.engine.resolve_primary", broken)
    with pytest.raises(ReadingFailed) as excinfo:
        cast_payload(payload())
    assert isinstance(excinfo.value.__cause__, UnknownHexagram)
    assert "Invariant violated" in caplog.text


def test_cast_rejects_lines_that_are_not_line_states():
    casting = CastingInput(lines=(7, 7, 7, 7, 7, 7), timestamp=CAST_TIME, category=QuestionCategory.CAREER)
    assert casting.problems() == [bad_line_message(position, 7) for position in range(1, 7)]
    with pytest.raises(InputValidationError):
        cast(casting)


def test_result_mappings_are_read_only():
    result = cast_payload(payload())
    with pytest.raises(TypeError):
        result.strength[1] = None

    calendar_step, strength_step = result.reasoning.steps[0], result.reasoning.steps[4]
    assert isinstance(calendar_step.facts["void"], tuple)
    with pytest.raises(TypeError):
        calendar_step.facts["moment"] = "2000-01-01T00:00"
    with pytest.raises(TypeError):
        strength_step.facts["1"]["score"] = 10.0
    assert result.to_dict()["reasoning"]["steps"][0]["facts"]["void"] == ["申", "酉"]


def test_cast_leaves_the_ephemeris_path_alone(monkeypatch):
    calls = []
    monkeypatch.setattr("liuyao.astro_calendar.swe.set_ephe_path", calls.append)
    cast_payload(payload(), EngineConfig(ephemeris_path="/tmp/liuyao-ephe"))
    assert calls == []
