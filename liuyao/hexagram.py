"""
Hexagram table and resolvers.

Handles:
- Line states from coin draws (6/7/8/9), time casting, or manual entry
- The 64-entry hexagram table keyed by a bottom-to-top 6-bit string
- Eight-palace placement: home palace, generation, self/other lines
- Derived hexagrams: changed, nuclear, opposite, reversed

The table is generated once at import by scanning every key against the
eight pure palace hexagrams; a key that fits no palace is an invariant
violation.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence

from liuyao.astro_calendar import resolve_calendar, to_local
from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.errors import InvariantViolation, UnknownHexagram
from liuyao.symbols import (
    GENERATION_MASKS, GENERATION_NAMES, HEXAGRAM_NAMES, SELF_OTHER_POSITIONS,
    TRIGRAM_BY_BITS, TRIGRAM_BY_NUMBER, TRIGRAMS, Element, Polarity, Trigram,
)

logger = logging.getLogger(__name__)


# ============================================================
# LINE STATES
# ============================================================

class LineKind(Enum):
    OLD_YIN = "old_yin"        # 6, moving
    YOUNG_YANG = "young_yang"  # 7
    YOUNG_YIN = "young_yin"    # 8
    OLD_YANG = "old_yang"      # 9, moving


# draw value -> (kind, polarity, active)
DRAW_VALUES = {
    6: (LineKind.OLD_YIN, Polarity.YIN, True),
    7: (LineKind.YOUNG_YANG, Polarity.YANG, False),
    8: (LineKind.YOUNG_YIN, Polarity.YIN, False),
    9: (LineKind.OLD_YANG, Polarity.YANG, True),
}


@dataclass(frozen=True)
class LineState:
    polarity: Polarity
    active: bool = False
    draw: Optional[int] = None  # only for coin castings

    @classmethod
    def from_draw(cls, value: int) -> "LineState":
        if value not in DRAW_VALUES:
            raise ValueError(f"Draw value must be 6, 7, 8 or 9, got {value!r}")
        _, polarity, active = DRAW_VALUES[value]
        return cls(polarity, active, value)

    @property
    def bit(self) -> str:
        return self.polarity.bit

    @property
    def draw_value(self) -> int:
        """The draw this state corresponds to, derived when not recorded."""
        if self.draw is not None:
            return self.draw
        if self.polarity is Polarity.YANG:
            return 9 if self.active else 7
        return 6 if self.active else 8

    @property
    def kind(self) -> LineKind:
        return DRAW_VALUES[self.draw_value][0]

    def to_dict(self):
        return {
            "polarity": self.polarity.value,
            "active": self.active,
            "draw": self.draw,
        }


def lines_from_draws(draws: Sequence[int]) -> tuple:
    return tuple(LineState.from_draw(int(v)) for v in draws)


def lines_from_bits(bits: str, active: Sequence[int] = ()) -> tuple:
    """Manual entry: bit string bottom-to-top plus active positions (1-6)."""
    return tuple(
        LineState(Polarity.from_bit(bit), (i + 1) in active)
        for i, bit in enumerate(bits)
    )


def active_positions(lines: Sequence[LineState]) -> tuple:
    return tuple(i + 1 for i, line in enumerate(lines) if line.active)


# ============================================================
# HEXAGRAM TABLE
# ============================================================

@dataclass(frozen=True)
class Hexagram:
    key: str  # bottom-to-top, yang=1
    name: str
    sequence: int  # palace order, 1-64
    upper: Trigram
    lower: Trigram
    palace: Trigram
    generation: int  # 0-7
    self_position: int
    other_position: int

    @property
    def element(self) -> Element:
        return self.palace.element

    @property
    def generation_name(self) -> str:
        return GENERATION_NAMES[self.generation]

    def __str__(self):
        return self.name

    def to_dict(self):
        return {
            "key": self.key,
            "name": self.name,
            "sequence": self.sequence,
            "upper": self.upper.to_dict(),
            "lower": self.lower.to_dict(),
            "palace": self.palace.chinese,
            "element": self.element.value,
            "generation": self.generation,
            "generation_name": self.generation_name,
            "self_position": self.self_position,
            "other_position": self.other_position,
        }


def _flipped_positions(key: str, reference: str) -> frozenset:
    return frozenset(i + 1 for i, (a, b) in enumerate(zip(key, reference)) if a != b)


def locate_palace(key: str) -> tuple:
    """
    Find (palace index, generation) for a key.

    The key is compared against each pure palace hexagram; the set of
    differing lines must be one of the eight generation masks.
    """
    for palace_index, palace in enumerate(TRIGRAMS):
        flipped = _flipped_positions(key, palace.bits * 2)
        if flipped in GENERATION_MASKS:
            return palace_index, GENERATION_MASKS.index(flipped)
    raise UnknownHexagram(key)


def _build_table() -> dict:
    table = {}
    for lower in TRIGRAMS:
        for upper in TRIGRAMS:
            key = lower.bits + upper.bits
            palace_index, generation = locate_palace(key)
            name = HEXAGRAM_NAMES.get((upper.chinese, lower.chinese))
            if name is None:
                raise UnknownHexagram(key)
            self_position, other_position = SELF_OTHER_POSITIONS[generation]
            table[key] = Hexagram(
                key=key,
                name=name,
                sequence=palace_index * 8 + generation + 1,
                upper=upper,
                lower=lower,
                palace=TRIGRAMS[palace_index],
                generation=generation,
                self_position=self_position,
                other_position=other_position,
            )

    if len({h.name for h in table.values()}) != 64 or len({h.sequence for h in table.values()}) != 64:
        raise InvariantViolation("Hexagram table does not hold 64 distinct entries")
    return table


HEXAGRAMS = _build_table()
HEXAGRAM_BY_NAME = {h.name: h for h in HEXAGRAMS.values()}


def lookup(key: str) -> Hexagram:
    try:
        return HEXAGRAMS[key]
    except KeyError:
        raise UnknownHexagram(key) from None


def trigram_for(bits: str) -> Trigram:
    return TRIGRAM_BY_BITS[bits]


# ============================================================
# RESOLVERS
# ============================================================

def hexagram_key(lines: Sequence[LineState]) -> str:
    return "".join(line.bit for line in lines)


def changed_key(lines: Sequence[LineState]) -> str:
    return "".join(line.polarity.flipped().bit if line.active else line.bit for line in lines)


def nuclear_key(key: str) -> str:
    # lines 2-4 become the lower trigram, lines 3-5 the upper
    return key[1:4] + key[2:5]


def opposite_key(key: str) -> str:
    return "".join("0" if bit == "1" else "1" for bit in key)


def reversed_key(key: str) -> str:
    return key[::-1]


def resolve_primary(lines: Sequence[LineState]) -> Hexagram:
    hexagram = lookup(hexagram_key(lines))
    logger.debug("Primary hexagram %s (%s)", hexagram.name, hexagram.key)
    return hexagram


def resolve_changed(lines: Sequence[LineState]) -> Optional[Hexagram]:
    """None when no line is moving."""
    if not any(line.active for line in lines):
        return None
    return lookup(changed_key(lines))


def resolve_nuclear(lines: Sequence[LineState]) -> Hexagram:
    return lookup(nuclear_key(hexagram_key(lines)))


def resolve_opposite(lines: Sequence[LineState]) -> Hexagram:
    return lookup(opposite_key(hexagram_key(lines)))


def resolve_reversed(lines: Sequence[LineState]) -> Hexagram:
    return lookup(reversed_key(hexagram_key(lines)))


# ============================================================
# CASTING HELPERS
# ============================================================
#
# These collect input for the pipeline and are the only place randomness
# appears. The pipeline itself never calls them.

def throw_line(rng=None) -> int:
    """Three coins, heads (yang face) = 3, tails = 2."""
    rng = rng or secrets.SystemRandom()
    return sum(rng.choice((2, 3)) for _ in range(3))


def cast_by_coin(rng=None) -> tuple:
    """Six coin throws, first throw is the bottom line."""
    rng = rng or secrets.SystemRandom()
    return lines_from_draws([throw_line(rng) for _ in range(6)])


def cast_by_time(moment: datetime, config: EngineConfig = DEFAULT_CONFIG) -> tuple:
    """
    Time casting (时间起卦).

    Upper trigram from year branch + month branch + day of month, lower
    trigram adds the hour branch; the same lower sum picks the moving
    line. Branch numbers count from Zi = 1, trigram numbers follow the
    Earlier Heaven order (Qian = 1 ... Kun = 8).

    Args:
        moment: casting time
        config: engine configuration used to resolve the pillars

    Returns:
        Six LineState values with exactly one active line
    """
    calendar = resolve_calendar(moment, config)
    local = to_local(moment, config.zone)

    upper_sum = calendar.year.branch.index + 1 + calendar.month.branch.index + 1 + local.day
    lower_sum = upper_sum + calendar.hour.branch.index + 1

    upper = TRIGRAM_BY_NUMBER[upper_sum % 8 or 8]
    lower = TRIGRAM_BY_NUMBER[lower_sum % 8 or 8]
    moving = (lower_sum - 1) % 6 + 1

    logger.debug("Time cast %s: upper %s lower %s moving %d", local, upper, lower, moving)
    return lines_from_bits(lower.bits + upper.bits, active=(moving,))


# Quick verification
if __name__ == "__main__":
    for key in ("111111", "000000", "000111"):
        h = lookup(key)
        print(f"{key} → {h.name}  palace {h.palace} {h.generation_name}  "
              f"self {h.self_position} other {h.other_position}")
