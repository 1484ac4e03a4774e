from liuyao.hexagram import lines_from_draws, resolve_primary
from liuyao.najia import install_lines, with_updates
from liuyao.relations import (
    Impact, analyze_relations, line_pair_findings, pair_relations, pillar_findings,
    transformation_findings, triad_finding,
)
from liuyao.strength import apply_strength
from liuyao.symbols import BRANCH_BY_CHINESE, LineRelationKind, MonthTier

B = BRANCH_BY_CHINESE


def kinds(findings):
    return [(f.kind, f.positions) for f in findings]


def test_pair_relations():
    assert pair_relations(B["子"], B["午"]) == [LineRelationKind.OPPOSITION]
    assert pair_relations(B["寅"], B["申"]) == [LineRelationKind.OPPOSITION, LineRelationKind.MUTUAL_INJURY]
    assert pair_relations(B["卯"], B["戌"]) == [LineRelationKind.UNION]
    assert pair_relations(B["卯"], B["辰"]) == [LineRelationKind.HARM]
    assert pair_relations(B["子"], B["卯"]) == [LineRelationKind.MUTUAL_INJURY]


def test_self_punishment_needs_identical_branches():
    assert pair_relations(B["午"], B["午"]) == [LineRelationKind.MUTUAL_INJURY]
    assert pair_relations(B["寅"], B["寅"]) == []


def test_line_pairs_of_qian(qian_lines):
    findings = line_pair_findings(qian_lines)
    assert kinds(findings) == [
        (LineRelationKind.OPPOSITION, (1, 4)),
        (LineRelationKind.OPPOSITION, (2, 5)),
        (LineRelationKind.MUTUAL_INJURY, (2, 5)),
        (LineRelationKind.OPPOSITION, (3, 6)),
    ]
    assert all(f.impact is Impact.UNFAVORABLE for f in findings)
    assert findings[0].justification == "1爻子与4爻午相冲"


def test_complete_water_triad(qian_lines):
    finding = triad_finding(qian_lines)
    assert finding.kind is LineRelationKind.TRIAD_UNION
    assert finding.complete is True
    assert sorted(finding.positions) == [1, 3, 5]
    assert finding.impact is Impact.FAVORABLE
    assert "三合水局" in finding.justification


def test_half_fire_triad(install):
    finding = triad_finding(install("000111"))  # 未巳卯午申戌
    assert finding.complete is False
    assert finding.positions == (4, 6)
    assert "缺寅" in finding.justification


def test_day_clash_breaks_a_weak_line(qian_lines, calendar):
    lines, _ = apply_strength(qian_lines, calendar)
    findings = pillar_findings(lines, calendar.day.branch, "day")
    assert kinds(findings) == [
        (LineRelationKind.OPPOSITION, (5,)),
        (LineRelationKind.MUTUAL_INJURY, (5,)),
    ]
    assert findings[0].impact is Impact.UNFAVORABLE
    assert findings[0].justification.endswith("日破")


def test_day_clash_on_a_seasonal_line_only_stirs_it(qian_lines):
    lines = with_updates(qian_lines, {5: {"month_tier": MonthTier.PEAK}})
    findings = pillar_findings(lines, B["寅"], "day")
    assert findings[0].kind is LineRelationKind.OPPOSITION
    assert findings[0].impact is Impact.NEUTRAL
    assert "暗动" in findings[0].justification


def test_month_relations(qian_lines, calendar):
    findings = pillar_findings(qian_lines, calendar.month.branch, "month")
    assert kinds(findings) == [
        (LineRelationKind.MUTUAL_INJURY, (1,)),
        (LineRelationKind.HARM, (3,)),
        (LineRelationKind.UNION, (6,)),
    ]
    assert all(f.pillar == "month" for f in findings)


def test_moving_line_against_its_changed_branch():
    # 乾 line 4 午 moving: upper becomes 巽 and line 4 turns into 未, 午未 combine
    states = lines_from_draws([7, 7, 7, 9, 7, 7])
    lines = install_lines(states, resolve_primary(states))
    findings = transformation_findings(lines)
    assert len(findings) == 1
    assert findings[0].kind is LineRelationKind.UNION
    assert findings[0].pillar == "changed"


def test_analyze_relations_orders_findings(qian_lines, calendar):
    lines, _ = apply_strength(qian_lines, calendar)
    findings, step = analyze_relations(lines, calendar)
    assert len(findings) == 10
    assert findings[4].kind is LineRelationKind.TRIAD_UNION
    assert [f.pillar for f in findings[5:]] == ["day", "day", "month", "month", "month"]
    assert step.conclusion == "共发现10项关系"
