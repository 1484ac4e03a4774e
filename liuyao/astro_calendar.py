"""
Calendar resolver for Liuyao castings.

Handles:
- Gregorian timestamp to four stem-branch pillars (year/month/day/hour)
- Void branches (旬空) for the day pillar
- Jie solar-term month boundaries, from a fixed table or Swiss Ephemeris
- Timezone resolution from coordinates and LMT correction for the hour
- Forward search for days/months carrying a given branch (timing)

Timestamps are treated as local wall-clock time. Aware datetimes are
first converted into the configured zone.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

import swisseph as swe
from timezonefinder import TimezoneFinder

from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.symbols import (
    EARTHLY_BRANCHES, HEAVENLY_STEMS, EarthlyBranch, Element, HeavenlyStem,
)

logger = logging.getLogger(__name__)

# Point Swiss Ephemeris to data files (Moshier fallback when absent)
_ephe_path = os.environ.get("LIUYAO_EPHE_PATH") or str(Path(__file__).parent.parent / "ephe")
swe.set_ephe_path(_ephe_path)


def configure_ephemeris(path: Optional[str]) -> None:
    """Point Swiss Ephemeris at `path`. Process-wide; call once at start-up, as the CLI does."""
    global _ephe_path
    if path and path != _ephe_path:
        _ephe_path = path
        swe.set_ephe_path(path)
        find_jie_dates.cache_clear()


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class Pillar:
    stem: HeavenlyStem
    branch: EarthlyBranch
    position: str  # "year", "month", "day", "hour"

    def __str__(self):
        return f"{self.stem.chinese}{self.branch.chinese}"

    def to_dict(self):
        return {
            "position": self.position,
            "stem": self.stem.to_dict(),
            "branch": self.branch.to_dict(),
            "combined": str(self),
        }


@dataclass(frozen=True)
class CalendarTime:
    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar
    void_branches: tuple  # two cyclically adjacent EarthlyBranch values
    moment: datetime  # local wall-clock time the pillars were derived from
    day_date: Optional[date] = None  # civil date carrying the day pillar

    @property
    def month_element(self) -> Element:
        return self.month.branch.element

    @property
    def day_element(self) -> Element:
        return self.day.branch.element

    @property
    def pillar_date(self) -> date:
        return self.day_date or self.moment.date()

    def is_void(self, branch: EarthlyBranch) -> bool:
        return branch in self.void_branches

    def __str__(self):
        return f"{self.year}年 {self.month}月 {self.day}日 {self.hour}时"

    def to_dict(self):
        return {
            "moment": self.moment.isoformat(),
            "day_date": self.pillar_date.isoformat(),
            "pillars": {p.position: p.to_dict() for p in (self.year, self.month, self.day, self.hour)},
            "void_branches": [b.chinese for b in self.void_branches],
            "month_element": self.month_element.value,
            "day_element": self.day_element.value,
            "description": str(self),
        }


@dataclass(frozen=True)
class SolarTerm:
    name: str
    branch_index: int
    moment: datetime  # local wall-clock time of the boundary


@dataclass(frozen=True)
class MonthWindow:
    start: datetime
    end: datetime
    branch: EarthlyBranch

    def to_dict(self):
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "branch": self.branch.chinese,
        }


# ============================================================
# LOCAL TIME
# ============================================================

@lru_cache(maxsize=1)
def _timezone_finder() -> TimezoneFinder:
    return TimezoneFinder()


def resolve_timezone(latitude: float, longitude: float) -> str:
    """
    IANA timezone name for a pair of coordinates.

    Raises:
        ValueError: when no zone covers the coordinates (open ocean)
    """
    tz_name = _timezone_finder().timezone_at(lat=latitude, lng=longitude)
    if tz_name is None:
        raise ValueError(f"Could not determine timezone for ({latitude}, {longitude})")
    return tz_name


def to_local(moment: datetime, zone: ZoneInfo) -> datetime:
    """Naive wall-clock time in `zone`; naive inputs are already local."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(zone).replace(tzinfo=None)


def standard_meridian(moment: datetime, zone: ZoneInfo) -> float:
    """Meridian of the zone's standard (non-DST) offset at `moment`."""
    local_dt = moment.replace(tzinfo=zone)
    offset = local_dt.utcoffset() or timedelta(0)
    dst = local_dt.dst() or timedelta(0)
    return (offset - dst).total_seconds() / 3600 * 15.0


def lmt_correction(longitude: float, meridian: float = 120.0) -> float:
    """
    Local Mean Time correction in minutes.

    China keeps one clock on 120°E; a casting at 108.37°E runs about
    46 minutes ahead of the sun.

    Args:
        longitude: location longitude in degrees (east positive)
        meridian: standard meridian of the clock time

    Returns:
        Correction in minutes (negative = subtract from clock time)
    """
    return (longitude - meridian) * 4.0


def apply_lmt(clock_time: datetime, longitude: float, meridian: float = 120.0) -> datetime:
    return clock_time + timedelta(minutes=lmt_correction(longitude, meridian))


# ============================================================
# SOLAR TERMS
# ============================================================
#
# The 12 Jie (节) terms mark month boundaries. Li Chun opens the Tiger
# month and the year; each later Jie advances the branch by one.

# (longitude, term name, approximate (month, day), branch index)
JIE_DEFINITIONS = [
    (285, "小寒", (1, 6), 1),
    (315, "立春", (2, 4), 2),
    (345, "惊蛰", (3, 6), 3),
    (15, "清明", (4, 5), 4),
    (45, "立夏", (5, 6), 5),
    (75, "芒种", (6, 6), 6),
    (105, "小暑", (7, 7), 7),
    (135, "立秋", (8, 8), 8),
    (165, "白露", (9, 8), 9),
    (195, "寒露", (10, 8), 10),
    (225, "立冬", (11, 7), 11),
    (255, "大雪", (12, 7), 0),
]

# Li Chun dates (month, day) where they differ from Feb 4
LI_CHUN_EXCEPTIONS = {
    2017: (2, 3), 2021: (2, 3), 2025: (2, 3), 2029: (2, 3),
    2033: (2, 3), 2041: (2, 3), 2045: (2, 3), 2049: (2, 3),
}
LI_CHUN_TABLE_YEARS = range(2000, 2051)
LI_CHUN_FALLBACK = (2, 4)

_warned_years = set()


def li_chun_date(year: int) -> date:
    """Table date of Li Chun; approximates outside 2000-2050."""
    if year not in LI_CHUN_TABLE_YEARS:
        if year not in _warned_years:
            _warned_years.add(year)
            logger.warning("Li Chun for %d outside the exact table; using Feb 4", year)
        month, day = LI_CHUN_FALLBACK
    else:
        month, day = LI_CHUN_EXCEPTIONS.get(year, LI_CHUN_FALLBACK)
    return date(year, month, day)


@lru_cache(maxsize=256)
def find_jie_dates(year: int, mode: str = "table", tz_name: str = "Asia/Shanghai") -> tuple:
    """
    All 12 Jie boundaries that fall in a Gregorian year.

    Args:
        year: Gregorian year
        mode: "table" for fixed dates, "ephemeris" for exact Sun crossings
        tz_name: zone the ephemeris moments are expressed in

    Returns:
        Tuple of SolarTerm in chronological order
    """
    terms = []
    if mode == "ephemeris":
        zone = ZoneInfo(tz_name)
        jd_year_start = swe.julday(year, 1, 1, 0)
        for lon, name, _, branch_idx in JIE_DEFINITIONS:
            jd_cross = swe.solcross_ut(float(lon), jd_year_start, 0)
            y, m, d, h = swe.revjul(jd_cross)
            utc_moment = datetime(y, m, d, tzinfo=timezone.utc) + timedelta(hours=h)
            local = utc_moment.astimezone(zone).replace(tzinfo=None)
            if local.year == year:
                terms.append(SolarTerm(name, branch_idx, local))
    else:
        for _, name, (month, day), branch_idx in JIE_DEFINITIONS:
            if branch_idx == 2:
                boundary = li_chun_date(year)
            else:
                boundary = date(year, month, day)
            terms.append(SolarTerm(name, branch_idx, datetime(boundary.year, boundary.month, boundary.day)))

    terms.sort(key=lambda t: t.moment)
    return tuple(terms)


def _terms_around(year: int, config: EngineConfig, span: int = 1) -> list[SolarTerm]:
    terms = []
    for y in range(year - 1, year + span + 1):
        terms.extend(find_jie_dates(y, config.solar_terms, config.timezone))
    terms.sort(key=lambda t: t.moment)
    return terms


def spring_begins(year: int, config: EngineConfig = DEFAULT_CONFIG) -> datetime:
    for term in find_jie_dates(year, config.solar_terms, config.timezone):
        if term.branch_index == 2:
            return term.moment
    # Crossing fell outside the year in local time; fall back to the table
    d = li_chun_date(year)
    return datetime(d.year, d.month, d.day)


def month_term(moment: datetime, config: EngineConfig = DEFAULT_CONFIG) -> SolarTerm:
    """Latest Jie boundary at or before `moment`."""
    current = None
    for term in _terms_around(moment.year, config):
        if term.moment <= moment:
            current = term
        else:
            break
    return current


# ============================================================
# PILLAR COMPUTATION
# ============================================================

# 2000-01-07 was a Jia Zi day
_REFERENCE_JD = swe.julday(2000, 1, 7, 12.0)


def day_count(d: date) -> int:
    """Whole days from the Jia Zi reference day (negative before it)."""
    return int(round(swe.julday(d.year, d.month, d.day, 12.0) - _REFERENCE_JD))


def pillar_day(moment: datetime) -> date:
    """Civil date whose day pillar governs `moment`; from 23:00 that is tomorrow."""
    if moment.hour >= 23:
        return moment.date() + timedelta(days=1)
    return moment.date()


def day_pillar(moment: datetime) -> Pillar:
    """
    Day pillar from the sexagenary day count.

    From 23:00 the Zi hour already belongs to the next day.
    """
    count = day_count(pillar_day(moment))
    return Pillar(
        stem=HEAVENLY_STEMS[count % 10],
        branch=EARTHLY_BRANCHES[count % 12],
        position="day",
    )


def year_pillar(moment: datetime, config: EngineConfig = DEFAULT_CONFIG) -> Pillar:
    """
    Year pillar; the year turns at Li Chun, not January 1.

    Year 4 CE was Jia Zi, so (year - 4) indexes both cycles.
    """
    effective_year = moment.year
    if moment < spring_begins(moment.year, config):
        effective_year -= 1
    return Pillar(
        stem=HEAVENLY_STEMS[(effective_year - 4) % 10],
        branch=EARTHLY_BRANCHES[(effective_year - 4) % 12],
        position="year",
    )


def month_pillar(year_stem_index: int, month_branch_index: int) -> Pillar:
    """
    Month pillar by the Five Tigers rule (五虎遁).

    Year stem Jia/Ji → Tiger month starts at Bing, Yi/Geng → Wu,
    Bing/Xin → Geng, Ding/Ren → Ren, Wu/Gui → Jia.
    """
    tiger_start_stems = {
        0: 2, 5: 2,
        1: 4, 6: 4,
        2: 6, 7: 6,
        3: 8, 8: 8,
        4: 0, 9: 0,
    }
    months_from_tiger = (month_branch_index - 2) % 12
    stem_index = (tiger_start_stems[year_stem_index] + months_from_tiger) % 10
    return Pillar(
        stem=HEAVENLY_STEMS[stem_index],
        branch=EARTHLY_BRANCHES[month_branch_index],
        position="month",
    )


def hour_pillar(day_stem_index: int, hour: int) -> Pillar:
    """
    Hour pillar by the Five Rats rule (五鼠遁).

    Two-hour blocks start at 23:00 (Zi); the stem of the Zi hour follows
    the day stem: Jia/Ji → Jia, Yi/Geng → Bing, Bing/Xin → Wu,
    Ding/Ren → Geng, Wu/Gui → Ren.
    """
    if hour == 23 or hour == 0:
        branch_index = 0
    else:
        branch_index = ((hour + 1) // 2) % 12

    zi_start_stems = {
        0: 0, 5: 0,
        1: 2, 6: 2,
        2: 4, 7: 4,
        3: 6, 8: 6,
        4: 8, 9: 8,
    }
    stem_index = (zi_start_stems[day_stem_index] + branch_index) % 10
    return Pillar(
        stem=HEAVENLY_STEMS[stem_index],
        branch=EARTHLY_BRANCHES[branch_index],
        position="hour",
    )


def void_branches(day_stem_index: int, day_branch_index: int) -> tuple:
    """The two branches left over by the day's ten-day cycle (旬空)."""
    cycle_start = (day_branch_index - day_stem_index) % 12
    return (
        EARTHLY_BRANCHES[(cycle_start + 10) % 12],
        EARTHLY_BRANCHES[(cycle_start + 11) % 12],
    )


def resolve_calendar(moment: datetime, config: EngineConfig = DEFAULT_CONFIG) -> CalendarTime:
    """
    Convert a timestamp into four pillars plus the void pair.

    Args:
        moment: casting time; naive values are local wall-clock time
        config: engine configuration (zone, solar-term mode, longitude)

    Returns:
        CalendarTime
    """
    local = to_local(moment, config.zone)

    solar = local
    if config.longitude is not None:
        meridian = standard_meridian(local, config.zone)
        solar = apply_lmt(local, config.longitude, meridian)
        logger.debug("LMT applied: %s -> %s (meridian %.1f)", local, solar, meridian)

    year = year_pillar(local, config)
    month = month_pillar(year.stem.index, month_term(local, config).branch_index)
    day = day_pillar(solar)
    hour = hour_pillar(day.stem.index, solar.hour)
    voids = void_branches(day.stem.index, day.branch.index)

    calendar = CalendarTime(year=year, month=month, day=day, hour=hour,
                            void_branches=voids, moment=local, day_date=pillar_day(solar))
    logger.debug("Calendar for %s: %s, void %s%s", local, calendar,
                 voids[0].chinese, voids[1].chinese)
    return calendar


# ============================================================
# TIMING SEARCH
# ============================================================

def next_days_with_branch(start: date, branch: EarthlyBranch,
                          horizon_days: int = 90, limit: int = 1) -> list[date]:
    """Days strictly after `start` whose day branch is `branch`."""
    found = []
    base = day_count(start)
    for offset in range(1, horizon_days + 1):
        if (base + offset) % 12 == branch.index:
            found.append(start + timedelta(days=offset))
            if len(found) >= limit:
                break
    return found


def next_months_with_branch(start: datetime, branch: EarthlyBranch,
                            horizon_months: int = 12, limit: int = 1,
                            config: EngineConfig = DEFAULT_CONFIG) -> list[MonthWindow]:
    """Solar months beginning after `start` whose month branch is `branch`."""
    span = horizon_months // 12 + 1
    terms = [t for t in _terms_around(start.year, config, span) if t.moment > start]
    found = []
    for term, following in zip(terms[:horizon_months], terms[1:horizon_months + 1]):
        if term.branch_index == branch.index:
            found.append(MonthWindow(term.moment, following.moment, branch))
            if len(found) >= limit:
                break
    return found


# Quick verification
if __name__ == "__main__":
    for sample in (datetime(2000, 1, 7, 12), datetime(2024, 3, 15, 10, 30), datetime(2024, 3, 15, 23, 30)):
        cal = resolve_calendar(sample)
        print(f"{sample:%Y-%m-%d %H:%M} → {cal}  空 {''.join(b.chinese for b in cal.void_branches)}")

    print("\n2026 Jie Solar Terms (ephemeris):")
    for term in find_jie_dates(2026, "ephemeris"):
        print(f"  {term.name} → {EARTHLY_BRANCHES[term.branch_index].chinese}: {term.moment:%m-%d %H:%M}")
