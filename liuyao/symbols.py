"""
Static symbol tables for the Liuyao engine.

Handles:
- Stems, branches, elements and polarity (the stem-branch subset the ritual needs)
- Five-phase production/control cycles and relationship lookup
- Branch relation tables (clash, combination, harm, punishment, three harmony)
- Trigrams with their bit patterns, elements and Najia stem/branch lists
- Familial roles, guardians, twelve life stages
- Hexagram names keyed by (upper, lower) trigram

Everything here is built once at import and never written afterwards.
"""

from dataclasses import dataclass
from enum import Enum


# ============================================================
# FUNDAMENTAL DATA STRUCTURES
# ============================================================

class Polarity(Enum):
    YANG = "yang"
    YIN = "yin"

    @property
    def bit(self) -> str:
        return "1" if self is Polarity.YANG else "0"

    def flipped(self) -> "Polarity":
        return Polarity.YIN if self is Polarity.YANG else Polarity.YANG

    @classmethod
    def from_bit(cls, bit: str) -> "Polarity":
        return cls.YANG if bit == "1" else cls.YIN


class Element(Enum):
    WOOD = "wood"
    FIRE = "fire"
    EARTH = "earth"
    METAL = "metal"
    WATER = "water"

    @property
    def chinese(self) -> str:
        return ELEMENT_CHINESE[self]


ELEMENT_CHINESE = {
    Element.WOOD: "木",
    Element.FIRE: "火",
    Element.EARTH: "土",
    Element.METAL: "金",
    Element.WATER: "水",
}


class FamilialRole(Enum):
    PARENT = "parent"
    SIBLING = "sibling"
    OFFSPRING = "offspring"
    WEALTH = "wealth"
    OFFICER = "officer"

    @property
    def chinese(self) -> str:
        return ROLE_CHINESE[self]


ROLE_CHINESE = {
    FamilialRole.PARENT: "父母",
    FamilialRole.SIBLING: "兄弟",
    FamilialRole.OFFSPRING: "子孙",
    FamilialRole.WEALTH: "妻财",
    FamilialRole.OFFICER: "官鬼",
}

ROLE_BY_CHINESE = {v: k for k, v in ROLE_CHINESE.items()}

# Plain-language gloss for each role
ROLE_PLAIN_TEXT = {
    FamilialRole.PARENT: "代表文书、长辈、保护、学业、房屋等",
    FamilialRole.SIBLING: "代表竞争者、同辈、朋友、阻力、消耗",
    FamilialRole.OFFSPRING: "代表晚辈、快乐、福气、投资收益、解决问题的力量",
    FamilialRole.WEALTH: "代表财物、妻子（男性）、可控的资源、收益",
    FamilialRole.OFFICER: "代表压力、责任、丈夫（女性）、工作、不可控因素",
}


class Guardian(Enum):
    AZURE_DRAGON = "azure_dragon"
    VERMILION_BIRD = "vermilion_bird"
    HOOK_CHEN = "hook_chen"
    SOARING_SERPENT = "soaring_serpent"
    WHITE_TIGER = "white_tiger"
    BLACK_TORTOISE = "black_tortoise"

    @property
    def chinese(self) -> str:
        return GUARDIAN_CHINESE[self]


# Cyclic order, lines 1-6 continue from the starting guardian
GUARDIAN_ORDER = [
    Guardian.AZURE_DRAGON,
    Guardian.VERMILION_BIRD,
    Guardian.HOOK_CHEN,
    Guardian.SOARING_SERPENT,
    Guardian.WHITE_TIGER,
    Guardian.BLACK_TORTOISE,
]

GUARDIAN_CHINESE = {
    Guardian.AZURE_DRAGON: "青龙",
    Guardian.VERMILION_BIRD: "朱雀",
    Guardian.HOOK_CHEN: "勾陈",
    Guardian.SOARING_SERPENT: "螣蛇",
    Guardian.WHITE_TIGER: "白虎",
    Guardian.BLACK_TORTOISE: "玄武",
}

# Day stem index -> first-line guardian
GUARDIAN_START = {
    0: Guardian.AZURE_DRAGON, 1: Guardian.AZURE_DRAGON,       # Jia/Yi
    2: Guardian.VERMILION_BIRD, 3: Guardian.VERMILION_BIRD,   # Bing/Ding
    4: Guardian.HOOK_CHEN,                                    # Wu
    5: Guardian.SOARING_SERPENT,                              # Ji
    6: Guardian.WHITE_TIGER, 7: Guardian.WHITE_TIGER,         # Geng/Xin
    8: Guardian.BLACK_TORTOISE, 9: Guardian.BLACK_TORTOISE,   # Ren/Gui
}


class LineRelationKind(Enum):
    OPPOSITION = "opposition"
    UNION = "union"
    TRIAD_UNION = "triad_union"
    MUTUAL_INJURY = "mutual_injury"
    HARM = "harm"
    NONE = "none"

    @property
    def chinese(self) -> str:
        return RELATION_CHINESE[self]


RELATION_CHINESE = {
    LineRelationKind.OPPOSITION: "六冲",
    LineRelationKind.UNION: "六合",
    LineRelationKind.TRIAD_UNION: "三合",
    LineRelationKind.MUTUAL_INJURY: "相刑",
    LineRelationKind.HARM: "六害",
    LineRelationKind.NONE: "无",
}


class MonthTier(Enum):
    PEAK = "peak"
    SUPPORTED = "supported"
    RESTING = "resting"
    CONSTRAINED = "constrained"
    WEAKEST = "weakest"

    @property
    def chinese(self) -> str:
        return MONTH_TIER_CHINESE[self]


MONTH_TIER_CHINESE = {
    MonthTier.PEAK: "旺",
    MonthTier.SUPPORTED: "相",
    MonthTier.RESTING: "休",
    MonthTier.CONSTRAINED: "囚",
    MonthTier.WEAKEST: "死",
}


@dataclass(frozen=True)
class HeavenlyStem:
    chinese: str
    pinyin: str
    element: Element
    polarity: Polarity
    index: int  # 0-9 in the cycle

    def __str__(self):
        return self.chinese

    def to_dict(self):
        return {
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "element": self.element.value,
            "polarity": self.polarity.value,
        }


@dataclass(frozen=True)
class EarthlyBranch:
    chinese: str
    pinyin: str
    animal: str
    element: Element
    polarity: Polarity
    index: int  # 0-11 in the cycle

    def __str__(self):
        return self.chinese

    @property
    def opposite(self) -> "EarthlyBranch":
        return EARTHLY_BRANCHES[(self.index + 6) % 12]

    def steps_to(self, other: "EarthlyBranch") -> int:
        """Forward distance around the 12-branch cycle."""
        return (other.index - self.index) % 12

    def to_dict(self):
        return {
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "animal": self.animal,
            "element": self.element.value,
            "polarity": self.polarity.value,
        }


# ============================================================
# STEM AND BRANCH DEFINITIONS
# ============================================================

HEAVENLY_STEMS = [
    HeavenlyStem("甲", "Jia", Element.WOOD, Polarity.YANG, 0),
    HeavenlyStem("乙", "Yi", Element.WOOD, Polarity.YIN, 1),
    HeavenlyStem("丙", "Bing", Element.FIRE, Polarity.YANG, 2),
    HeavenlyStem("丁", "Ding", Element.FIRE, Polarity.YIN, 3),
    HeavenlyStem("戊", "Wu", Element.EARTH, Polarity.YANG, 4),
    HeavenlyStem("己", "Ji", Element.EARTH, Polarity.YIN, 5),
    HeavenlyStem("庚", "Geng", Element.METAL, Polarity.YANG, 6),
    HeavenlyStem("辛", "Xin", Element.METAL, Polarity.YIN, 7),
    HeavenlyStem("壬", "Ren", Element.WATER, Polarity.YANG, 8),
    HeavenlyStem("癸", "Gui", Element.WATER, Polarity.YIN, 9),
]

EARTHLY_BRANCHES = [
    EarthlyBranch("子", "Zi", "Rat", Element.WATER, Polarity.YANG, 0),
    EarthlyBranch("丑", "Chou", "Ox", Element.EARTH, Polarity.YIN, 1),
    EarthlyBranch("寅", "Yin", "Tiger", Element.WOOD, Polarity.YANG, 2),
    EarthlyBranch("卯", "Mao", "Rabbit", Element.WOOD, Polarity.YIN, 3),
    EarthlyBranch("辰", "Chen", "Dragon", Element.EARTH, Polarity.YANG, 4),
    EarthlyBranch("巳", "Si", "Snake", Element.FIRE, Polarity.YIN, 5),
    EarthlyBranch("午", "Wu", "Horse", Element.FIRE, Polarity.YANG, 6),
    EarthlyBranch("未", "Wei", "Goat", Element.EARTH, Polarity.YIN, 7),
    EarthlyBranch("申", "Shen", "Monkey", Element.METAL, Polarity.YANG, 8),
    EarthlyBranch("酉", "You", "Rooster", Element.METAL, Polarity.YIN, 9),
    EarthlyBranch("戌", "Xu", "Dog", Element.EARTH, Polarity.YANG, 10),
    EarthlyBranch("亥", "Hai", "Pig", Element.WATER, Polarity.YIN, 11),
]

STEM_BY_CHINESE = {s.chinese: s for s in HEAVENLY_STEMS}
BRANCH_BY_CHINESE = {b.chinese: b for b in EARTHLY_BRANCHES}


# ============================================================
# FIVE PHASES
# ============================================================

# Production cycle: Wood → Fire → Earth → Metal → Water → Wood
PRODUCTION_CYCLE = {
    Element.WOOD: Element.FIRE,
    Element.FIRE: Element.EARTH,
    Element.EARTH: Element.METAL,
    Element.METAL: Element.WATER,
    Element.WATER: Element.WOOD,
}

# Control cycle: Wood → Earth → Water → Fire → Metal → Wood
CONTROL_CYCLE = {
    Element.WOOD: Element.EARTH,
    Element.EARTH: Element.WATER,
    Element.WATER: Element.FIRE,
    Element.FIRE: Element.METAL,
    Element.METAL: Element.WOOD,
}


def element_relationship(me: Element, other: Element) -> str:
    """Relationship of `other` seen from `me`.

    Returns one of "same", "produces_me", "i_produce", "i_control",
    "controls_me". The five cases are exhaustive for five elements.
    """
    if me == other:
        return "same"
    elif PRODUCTION_CYCLE[other] == me:
        return "produces_me"
    elif PRODUCTION_CYCLE[me] == other:
        return "i_produce"
    elif CONTROL_CYCLE[me] == other:
        return "i_control"
    elif CONTROL_CYCLE[other] == me:
        return "controls_me"
    else:
        raise ValueError(f"No valid relationship between {me} and {other}")


# Palace element's view of the line element -> familial role
ROLE_BY_RELATIONSHIP = {
    "produces_me": FamilialRole.PARENT,
    "i_produce": FamilialRole.OFFSPRING,
    "controls_me": FamilialRole.OFFICER,
    "i_control": FamilialRole.WEALTH,
    "same": FamilialRole.SIBLING,
}


# ============================================================
# BRANCH RELATION TABLES
# ============================================================

# Six Clashes (六冲): branches six steps apart
SIX_CLASHES = [
    (0, 6),   # Zi-Wu
    (1, 7),   # Chou-Wei
    (2, 8),   # Yin-Shen
    (3, 9),   # Mao-You
    (4, 10),  # Chen-Xu
    (5, 11),  # Si-Hai
]

# Six Combinations (六合) with the element they lean toward
SIX_COMBINATIONS = {
    (0, 1): Element.EARTH,    # Zi-Chou
    (2, 11): Element.WOOD,    # Yin-Hai
    (3, 10): Element.FIRE,    # Mao-Xu
    (4, 9): Element.METAL,    # Chen-You
    (5, 8): Element.WATER,    # Si-Shen
    (6, 7): Element.FIRE,     # Wu-Wei
}

# Six Harms (六害)
SIX_HARMS = [
    (0, 7),   # Zi-Wei
    (1, 6),   # Chou-Wu
    (2, 5),   # Yin-Si
    (3, 4),   # Mao-Chen
    (8, 11),  # Shen-Hai
    (9, 10),  # You-Xu
]

# Punishments (刑): branch -> branches it punishes
PUNISHMENTS = {
    0: frozenset({3}),         # Zi-Mao
    3: frozenset({0}),
    2: frozenset({5, 8}),      # Yin-Si-Shen
    5: frozenset({2, 8}),
    8: frozenset({2, 5}),
    1: frozenset({10, 7}),     # Chou-Xu-Wei
    10: frozenset({1, 7}),
    7: frozenset({1, 10}),
}

# Self-punishment: Chen, Wu, You, Hai meeting themselves
SELF_PUNISHMENTS = frozenset({4, 6, 9, 11})

# Three Harmony (三合), scanned in this order
THREE_HARMONY = [
    ((8, 0, 4), Element.WATER),    # Shen-Zi-Chen
    ((2, 6, 10), Element.FIRE),    # Yin-Wu-Xu
    ((5, 9, 1), Element.METAL),    # Si-You-Chou
    ((11, 3, 7), Element.WOOD),    # Hai-Mao-Wei
]

_CLASH_PAIRS = {frozenset(p) for p in SIX_CLASHES}
_HARM_PAIRS = {frozenset(p) for p in SIX_HARMS}
_COMBINATION_PAIRS = {frozenset(p): e for p, e in SIX_COMBINATIONS.items()}


def branches_clash(a: EarthlyBranch, b: EarthlyBranch) -> bool:
    return frozenset((a.index, b.index)) in _CLASH_PAIRS


def branches_combine(a: EarthlyBranch, b: EarthlyBranch) -> bool:
    return a.index != b.index and frozenset((a.index, b.index)) in _COMBINATION_PAIRS


def combination_element(a: EarthlyBranch, b: EarthlyBranch):
    return _COMBINATION_PAIRS.get(frozenset((a.index, b.index)))


def branches_harm(a: EarthlyBranch, b: EarthlyBranch) -> bool:
    return frozenset((a.index, b.index)) in _HARM_PAIRS


def branches_punish(a: EarthlyBranch, b: EarthlyBranch) -> bool:
    """True when either branch punishes the other, or both self-punish."""
    if a.index == b.index:
        return a.index in SELF_PUNISHMENTS
    return (b.index in PUNISHMENTS.get(a.index, frozenset())
            or a.index in PUNISHMENTS.get(b.index, frozenset()))


# ============================================================
# TRIGRAMS AND NAJIA
# ============================================================

@dataclass(frozen=True)
class Trigram:
    chinese: str
    pinyin: str
    nature: str
    bits: str  # bottom-to-top, yang=1
    element: Element
    number: int  # Earlier Heaven number 1-8, used by time casting
    inner_stem: int  # Najia stem index when used as lower half
    outer_stem: int  # Najia stem index when used as upper half
    branches: tuple  # 6 branch indices for line positions 1-6

    def __str__(self):
        return self.chinese

    def to_dict(self):
        return {
            "chinese": self.chinese,
            "pinyin": self.pinyin,
            "nature": self.nature,
            "bits": self.bits,
            "element": self.element.value,
        }


def _branch_indices(chars: str) -> tuple:
    return tuple(BRANCH_BY_CHINESE[c].index for c in chars)


# Palace order: 乾 兑 离 震 巽 坎 艮 坤
TRIGRAMS = [
    Trigram("乾", "Qian", "天", "111", Element.METAL, 1, 0, 8, _branch_indices("子寅辰午申戌")),
    Trigram("兑", "Dui", "泽", "110", Element.METAL, 2, 3, 3, _branch_indices("巳卯丑亥酉未")),
    Trigram("离", "Li", "火", "101", Element.FIRE, 3, 5, 5, _branch_indices("卯丑亥酉未巳")),
    Trigram("震", "Zhen", "雷", "100", Element.WOOD, 4, 6, 6, _branch_indices("子寅辰午申戌")),
    Trigram("巽", "Xun", "风", "011", Element.WOOD, 5, 7, 7, _branch_indices("丑亥酉未巳卯")),
    Trigram("坎", "Kan", "水", "010", Element.WATER, 6, 4, 4, _branch_indices("寅辰午申戌子")),
    Trigram("艮", "Gen", "山", "001", Element.EARTH, 7, 2, 2, _branch_indices("辰午申戌子寅")),
    Trigram("坤", "Kun", "地", "000", Element.EARTH, 8, 1, 9, _branch_indices("未巳卯丑亥酉")),
]

TRIGRAM_BY_BITS = {t.bits: t for t in TRIGRAMS}
TRIGRAM_BY_NUMBER = {t.number: t for t in TRIGRAMS}


# ============================================================
# EIGHT PALACES
# ============================================================

# Lines flipped from the pure palace hexagram for generations 0-7
GENERATION_MASKS = [
    frozenset(),
    frozenset({1}),
    frozenset({1, 2}),
    frozenset({1, 2, 3}),
    frozenset({1, 2, 3, 4}),
    frozenset({1, 2, 3, 4, 5}),
    frozenset({1, 2, 3, 5}),  # wandering soul
    frozenset({5}),           # returning soul
]

GENERATION_NAMES = ["本宫", "一世", "二世", "三世", "四世", "五世", "游魂", "归魂"]

# (self position, other position) by generation
SELF_OTHER_POSITIONS = [
    (6, 3),
    (1, 4),
    (2, 5),
    (3, 6),
    (4, 1),
    (5, 2),
    (4, 1),
    (3, 6),
]

# (upper, lower) -> name
HEXAGRAM_NAMES = {
    # 乾宫
    ("乾", "乾"): "乾为天", ("乾", "巽"): "天风姤", ("乾", "艮"): "天山遁", ("乾", "坤"): "天地否",
    ("巽", "坤"): "风地观", ("艮", "坤"): "山地剥", ("离", "坤"): "火地晋", ("离", "乾"): "火天大有",
    # 兑宫
    ("兑", "兑"): "兑为泽", ("兑", "坎"): "泽水困", ("兑", "坤"): "泽地萃", ("兑", "艮"): "泽山咸",
    ("坎", "艮"): "水山蹇", ("坤", "艮"): "地山谦", ("震", "艮"): "雷山小过", ("震", "兑"): "雷泽归妹",
    # 离宫
    ("离", "离"): "离为火", ("离", "艮"): "火山旅", ("离", "巽"): "火风鼎", ("离", "坎"): "火水未济",
    ("艮", "坎"): "山水蒙", ("巽", "坎"): "风水涣", ("乾", "坎"): "天水讼", ("乾", "离"): "天火同人",
    # 震宫
    ("震", "震"): "震为雷", ("震", "坤"): "雷地豫", ("震", "坎"): "雷水解", ("震", "巽"): "雷风恒",
    ("坤", "巽"): "地风升", ("坎", "巽"): "水风井", ("兑", "巽"): "泽风大过", ("兑", "震"): "泽雷随",
    # 巽宫
    ("巽", "巽"): "巽为风", ("巽", "乾"): "风天小畜", ("巽", "离"): "风火家人", ("巽", "震"): "风雷益",
    ("乾", "震"): "天雷无妄", ("离", "震"): "火雷噬嗑", ("艮", "震"): "山雷颐", ("艮", "巽"): "山风蛊",
    # 坎宫
    ("坎", "坎"): "坎为水", ("坎", "兑"): "水泽节", ("坎", "震"): "水雷屯", ("坎", "离"): "水火既济",
    ("兑", "离"): "泽火革", ("震", "离"): "雷火丰", ("坤", "离"): "地火明夷", ("坤", "坎"): "地水师",
    # 艮宫
    ("艮", "艮"): "艮为山", ("艮", "离"): "山火贲", ("艮", "乾"): "山天大畜", ("艮", "兑"): "山泽损",
    ("离", "兑"): "火泽睽", ("乾", "兑"): "天泽履", ("巽", "兑"): "风泽中孚", ("巽", "艮"): "风山渐",
    # 坤宫
    ("坤", "坤"): "坤为地", ("坤", "震"): "地雷复", ("坤", "兑"): "地泽临", ("坤", "乾"): "地天泰",
    ("震", "乾"): "雷天大壮", ("兑", "乾"): "泽天夬", ("坎", "乾"): "水天需", ("坎", "坤"): "水地比",
}


# ============================================================
# TWELVE LIFE STAGES (十二长生)
# ============================================================

TWELVE_STAGES = ["长生", "沐浴", "冠带", "临官", "帝旺", "衰", "病", "死", "墓", "绝", "胎", "养"]

# Advisory weight of each stage
STAGE_SCORES = [3, 1, 2, 3, 4, -1, -2, -3, -2, -4, 0, 1]

# Branch index where each element's cycle begins (earth follows fire)
STAGE_START_BRANCH = {
    Element.WOOD: 11,   # Hai
    Element.FIRE: 2,    # Yin
    Element.EARTH: 2,   # Yin
    Element.METAL: 5,   # Si
    Element.WATER: 8,   # Shen
}


def life_stage(element: Element, branch: EarthlyBranch) -> int:
    """Index into TWELVE_STAGES for an element at a branch."""
    return (branch.index - STAGE_START_BRANCH[element]) % 12


# ============================================================
# PLAIN-LANGUAGE GLOSSARY
# ============================================================

TERM_DICTIONARY = {
    "用神": "这件事里最关键的那一条线索",
    "世爻": "代表\"你\"的位置",
    "应爻": "代表\"对方/外部世界\"的位置",
    "旺": "当前环境对这件事是有帮助的",
    "相": "虽然不是最强，但环境还是支持的",
    "休": "暂时休息状态，力量不太够",
    "囚": "被限制住了，难以发挥",
    "死": "力量非常弱，难以起作用",
    "动爻": "事情正在变化，不是静态",
    "空亡": "现在看起来有，但暂时用不上/落不到实处",
    "冲": "两个因素在互相拉扯",
    "合": "两个因素在互相靠拢",
    "刑": "内部矛盾或自我消耗",
    "害": "暗中有不利因素干扰",
    "月建": "当月的大环境",
    "日辰": "当日的具体环境",
    "父母": "文书、长辈、保护、庇护相关",
    "兄弟": "竞争者、同辈、消耗、阻力相关",
    "子孙": "晚辈、快乐、福气、解决问题的力量",
    "妻财": "财物、妻子、收益、可控资源",
    "官鬼": "压力、责任、权威、不可控因素",
    "回头生": "变化后反而带来帮助",
    "回头克": "变化后反而带来阻力",
    "化进神": "往好的方向发展",
    "化退神": "往后退或减弱的方向发展",
    "伏神": "隐藏的因素，还没有显现出来",
    "日破": "被当天环境严重削弱",
    "月破": "被当月环境严重削弱",
}


def explain_term(term: str) -> str:
    """Plain gloss for a technical term, or the term itself if unknown."""
    return TERM_DICTIONARY.get(term, term)
