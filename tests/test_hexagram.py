import random
from collections import Counter
from datetime import datetime

import pytest

from liuyao.errors import UnknownHexagram
from liuyao.hexagram import (
    HEXAGRAM_BY_NAME, HEXAGRAMS, LineKind, LineState, active_positions, cast_by_coin,
    cast_by_time, lines_from_bits, lines_from_draws, lookup, resolve_changed, resolve_nuclear,
    resolve_opposite, resolve_primary, resolve_reversed, throw_line,
)
from liuyao.symbols import Element, Polarity


def test_all_64_keys_resolve_to_distinct_hexagrams():
    keys = [format(n, "06b") for n in range(64)]
    found = [lookup(key) for key in keys]
    assert len(HEXAGRAMS) == 64
    assert len({h.name for h in found}) == 64
    assert len({h.sequence for h in found}) == 64


def test_resolving_a_hexagram_key_returns_the_same_hexagram():
    for hexagram in HEXAGRAMS.values():
        assert resolve_primary(lines_from_bits(hexagram.key)) == hexagram


@pytest.mark.parametrize("key", sorted(HEXAGRAMS))
def test_self_and_other_lines_are_three_apart(key):
    hexagram = HEXAGRAMS[key]
    assert abs(hexagram.self_position - hexagram.other_position) == 3


def test_each_palace_holds_eight_hexagrams():
    counts = Counter(h.palace.chinese for h in HEXAGRAMS.values())
    assert set(counts.values()) == {8}
    assert len(counts) == 8


def test_six_static_yang_lines_give_qian():
    hexagram = resolve_primary(lines_from_bits("111111"))
    assert hexagram.name == "乾为天"
    assert hexagram.element is Element.METAL
    assert hexagram.self_position == 6
    assert hexagram.other_position == 3
    assert resolve_changed(lines_from_bits("111111")) is None


def test_six_static_yin_lines_give_kun():
    hexagram = resolve_primary(lines_from_bits("000000"))
    assert hexagram.name == "坤为地"
    assert hexagram.element is Element.EARTH


def test_pi_with_moving_first_line():
    states = lines_from_draws([6, 8, 8, 7, 7, 7])
    primary = resolve_primary(states)
    changed = resolve_changed(states)

    assert primary.name == "天地否"
    assert primary.palace.chinese == "乾"
    assert primary.generation == 3
    assert (primary.self_position, primary.other_position) == (3, 6)
    assert active_positions(states) == (1,)
    assert changed.key == "100111"
    assert changed.name == "天雷无妄"


def test_derived_hexagrams_of_pi():
    states = lines_from_bits("000111")
    assert resolve_nuclear(states).name == "风山渐"
    assert resolve_opposite(states).name == "地天泰"
    assert resolve_reversed(states).name == "地天泰"
    assert resolve_opposite(lines_from_bits("111111")).name == "坤为地"


def test_palace_generations():
    assert HEXAGRAM_BY_NAME["天风姤"].generation_name == "一世"
    assert HEXAGRAM_BY_NAME["火地晋"].generation_name == "游魂"
    assert HEXAGRAM_BY_NAME["火天大有"].generation_name == "归魂"
    assert HEXAGRAM_BY_NAME["火天大有"].palace.chinese == "乾"
    assert HEXAGRAM_BY_NAME["地火明夷"].palace.chinese == "坎"


def test_unknown_key_is_an_invariant_violation():
    with pytest.raises(UnknownHexagram) as exc:
        lookup("11111")
    assert exc.value.key == "11111"


@pytest.mark.parametrize("draw,polarity,active,kind", [
    (6, Polarity.YIN, True, LineKind.OLD_YIN),
    (7, Polarity.YANG, False, LineKind.YOUNG_YANG),
    (8, Polarity.YIN, False, LineKind.YOUNG_YIN),
    (9, Polarity.YANG, True, LineKind.OLD_YANG),
])
def test_line_state_from_draw(draw, polarity, active, kind):
    state = LineState.from_draw(draw)
    assert state.polarity is polarity
    assert state.active is active
    assert state.kind is kind
    assert state.draw_value == draw


def test_draw_outside_six_to_nine_is_rejected():
    with pytest.raises(ValueError):
        LineState.from_draw(5)


def test_manual_line_derives_its_draw_value():
    assert LineState(Polarity.YIN, active=True).draw_value == 6
    assert LineState(Polarity.YANG).draw_value == 7


def test_coin_casting_is_reproducible_with_a_seeded_source():
    first = cast_by_coin(random.Random(42))
    second = cast_by_coin(random.Random(42))
    assert first == second
    assert len(first) == 6
    assert all(state.draw in (6, 7, 8, 9) for state in first)


def test_throw_line_sums_three_coins():
    rng = random.Random(3)
    assert all(6 <= throw_line(rng) <= 9 for _ in range(50))


def test_time_casting():
    # year 辰(5) + month 卯(4) + day 15 = 24 → 坤; + hour 巳(6) = 30 → 坎; line 6 moves
    states = cast_by_time(datetime(2024, 3, 15, 10, 30))
    assert resolve_primary(states).name == "地水师"
    assert active_positions(states) == (6,)
