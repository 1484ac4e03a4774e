import logging
from datetime import date, datetime, timezone

import pytest

from liuyao.astro_calendar import (
    MonthWindow, apply_lmt, day_count, day_pillar, find_jie_dates, li_chun_date, lmt_correction,
    month_term, next_days_with_branch, next_months_with_branch, resolve_calendar, void_branches,
    year_pillar,
)
from liuyao.config import EngineConfig
from liuyao.symbols import BRANCH_BY_CHINESE


def test_reference_day_count():
    assert day_count(date(2000, 1, 7)) == 0
    assert day_count(date(2024, 3, 15)) == 8834
    assert day_count(date(2000, 1, 1)) == -6


@pytest.mark.parametrize("moment,expected", [
    (datetime(2000, 1, 7, 12), "甲子"),
    (datetime(2000, 1, 1, 12), "戊午"),
    (datetime(1949, 10, 1, 12), "甲子"),
    (datetime(2024, 3, 15, 10, 30), "戊寅"),
    (datetime(2024, 3, 15, 23, 30), "己卯"),
])
def test_day_pillar(moment, expected):
    assert str(day_pillar(moment)) == expected


def test_four_pillars(calendar):
    assert str(calendar.year) == "甲辰"
    assert str(calendar.month) == "丁卯"
    assert str(calendar.day) == "戊寅"
    assert str(calendar.hour) == "丁巳"
    assert "".join(b.chinese for b in calendar.void_branches) == "申酉"


def test_zi_hour_after_23_belongs_to_the_next_day():
    cal = resolve_calendar(datetime(2024, 3, 15, 23, 30))
    assert str(cal.day) == "己卯"
    assert str(cal.hour) == "甲子"


@pytest.mark.parametrize("moment,expected", [
    (datetime(2024, 2, 3, 12), "癸卯"),
    (datetime(2024, 2, 4, 12), "甲辰"),
    (datetime(2025, 2, 3, 12), "乙巳"),
    (datetime(2025, 2, 2, 12), "甲辰"),
])
def test_year_turns_at_spring_begins(moment, expected):
    assert str(year_pillar(moment)) == expected


@pytest.mark.parametrize("moment,expected", [
    (datetime(2024, 1, 15, 12), "乙丑"),
    (datetime(2023, 12, 10, 12), "甲子"),
    (datetime(2024, 3, 5, 12), "丙寅"),
    (datetime(2024, 3, 6, 12), "丁卯"),
])
def test_month_pillar(moment, expected):
    assert str(resolve_calendar(moment).month) == expected


def test_month_term_is_latest_boundary_before_the_moment():
    term = month_term(datetime(2024, 3, 15, 10, 30))
    assert term.name == "惊蛰"
    assert term.moment == datetime(2024, 3, 6)


def test_jia_zi_day_voids_xu_and_hai():
    assert "".join(b.chinese for b in void_branches(0, 0)) == "戌亥"


def test_void_pair_is_adjacent_for_every_day_of_the_cycle():
    for n in range(60):
        first, second = void_branches(n % 10, n % 12)
        assert (second.index - first.index) % 12 == 1


def test_aware_timestamps_are_converted_to_the_configured_zone():
    aware = datetime(2024, 3, 15, 2, 30, tzinfo=timezone.utc)
    cal = resolve_calendar(aware)
    assert cal.moment == datetime(2024, 3, 15, 10, 30)
    assert str(cal.hour) == "丁巳"


def test_lmt_correction():
    assert lmt_correction(120.0) == 0
    assert lmt_correction(108.37) == pytest.approx(-46.52)
    assert apply_lmt(datetime(2024, 3, 15, 12, 0), 105.0) == datetime(2024, 3, 15, 11, 0)


def test_longitude_shifts_the_hour_pillar():
    # 90°E runs two hours behind the 120°E clock
    config = EngineConfig(longitude=90.0)
    cal = resolve_calendar(datetime(2024, 3, 15, 23, 30), config)
    assert str(cal.day) == "戊寅"
    assert str(cal.hour) == "癸亥"


def test_li_chun_table():
    assert li_chun_date(2024) == date(2024, 2, 4)
    assert li_chun_date(2025) == date(2025, 2, 3)


def test_li_chun_outside_the_table_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="liuyao.astro_calendar"):
        assert li_chun_date(1890) == date(1890, 2, 4)
    assert "1890" in caplog.text


def test_table_mode_has_twelve_terms_per_year():
    terms = find_jie_dates(2024)
    assert len(terms) == 12
    assert [t.name for t in terms][:2] == ["小寒", "立春"]


def test_ephemeris_mode_finds_spring_begins():
    terms = find_jie_dates(2024, "ephemeris", "Asia/Shanghai")
    li_chun = next(t for t in terms if t.name == "立春")
    assert li_chun.moment.date() == date(2024, 2, 4)


def test_next_day_with_branch():
    assert next_days_with_branch(date(2024, 3, 15), BRANCH_BY_CHINESE["午"]) == [date(2024, 3, 19)]
    assert next_days_with_branch(date(2024, 3, 15), BRANCH_BY_CHINESE["寅"]) == [date(2024, 3, 27)]
    assert next_days_with_branch(date(2024, 3, 15), BRANCH_BY_CHINESE["午"], horizon_days=3) == []


def test_next_month_with_branch():
    windows = next_months_with_branch(datetime(2024, 3, 15, 10, 30), BRANCH_BY_CHINESE["午"])
    assert windows == [MonthWindow(datetime(2024, 6, 6), datetime(2024, 7, 7), BRANCH_BY_CHINESE["午"])]
