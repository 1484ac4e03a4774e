"""
Guardian assigner (六神).

The day stem picks the guardian of line 1; lines 2-6 follow the fixed
cycle 青龙 → 朱雀 → 勾陈 → 螣蛇 → 白虎 → 玄武.
"""

import logging
from typing import Sequence

from liuyao.najia import Line, with_updates
from liuyao.reasoning import Evidence, ReasoningStep
from liuyao.symbols import GUARDIAN_ORDER, GUARDIAN_START, Guardian, HeavenlyStem

logger = logging.getLogger(__name__)


# nature, favourable aspects, unfavourable aspects, plain meaning
GUARDIAN_MEANINGS = {
    Guardian.AZURE_DRAGON: ("吉神", ["喜庆", "升迁", "婚姻", "财喜", "文书"],
                            ["过于乐观", "酒色之事"], "代表好消息、喜事、顺利的因素"),
    Guardian.VERMILION_BIRD: ("凶神", ["文书", "口才", "考试"],
                              ["口舌", "是非", "官司", "火灾"], "代表沟通、言语，但也可能带来口舌是非"),
    Guardian.HOOK_CHEN: ("凶神", ["田土", "房产", "稳定"],
                         ["拖延", "阻滞", "牵连"], "代表稳定但也有拖延、停滞的意味"),
    Guardian.SOARING_SERPENT: ("凶神", ["变通", "灵活"],
                               ["虚惊", "怪异", "梦魇", "欺骗"], "代表变化、意外，可能有虚惊或不确定因素"),
    Guardian.WHITE_TIGER: ("凶神", ["武职", "权威", "决断"],
                           ["伤病", "丧事", "血光", "官非"], "代表果断但也有风险、压力的因素"),
    Guardian.BLACK_TORTOISE: ("凶神", ["智谋", "机密"],
                              ["小人", "盗窃", "暧昧", "欺骗"], "代表隐秘因素，可能有小人或不明朗的情况"),
}


def guardian_sequence(day_stem: HeavenlyStem) -> list[Guardian]:
    start = GUARDIAN_ORDER.index(GUARDIAN_START[day_stem.index])
    return [GUARDIAN_ORDER[(start + i) % 6] for i in range(6)]


def is_auspicious(guardian: Guardian) -> bool:
    return guardian is Guardian.AZURE_DRAGON


def plain_meaning(guardian: Guardian) -> str:
    return GUARDIAN_MEANINGS[guardian][3]


def assign_guardians(lines: Sequence[Line], day_stem: HeavenlyStem) -> tuple:
    """
    Attach guardians to six lines.

    Returns:
        (new lines, ReasoningStep)
    """
    sequence = guardian_sequence(day_stem)
    enriched = with_updates(lines, {i + 1: {"guardian": g} for i, g in enumerate(sequence)})
    step = ReasoningStep(
        rule="安六神",
        description="按日干起六神，从初爻往上排",
        facts={"day_stem": day_stem, "sequence": [g.chinese for g in sequence]},
        conclusion=f"{day_stem.chinese}日起{sequence[0].chinese}",
        strength=Evidence.STRONG,
        source="《卜筮正宗》",
    )
    logger.debug("Guardians from %s: %s", day_stem.chinese, "".join(g.chinese for g in sequence))
    return enriched, step
