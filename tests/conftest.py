from datetime import datetime

import pytest

from liuyao.astro_calendar import resolve_calendar
from liuyao.hexagram import lines_from_bits, resolve_primary
from liuyao.najia import install_lines

# 戊寅 day in a 丁卯 month of a 甲辰 year, 丁巳 hour; void 申酉
CAST_TIME = datetime(2024, 3, 15, 10, 30)


def installed(bits: str, active=()):
    states = lines_from_bits(bits, active)
    return install_lines(states, resolve_primary(states))


@pytest.fixture
def install():
    return installed


@pytest.fixture
def calendar():
    return resolve_calendar(CAST_TIME)


@pytest.fixture
def qian_lines():
    return installed("111111")
