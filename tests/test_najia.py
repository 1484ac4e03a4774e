import pytest

from liuyao.errors import MissingResponseLine, MissingWorldLine
from liuyao.hexagram import lines_from_draws, resolve_changed, resolve_primary
from liuyao.najia import (
    TransformationKind, classify_transformation, install_changed_lines, install_lines,
    lines_with_role, other_line, self_line, with_updates,
)
from liuyao.symbols import BRANCH_BY_CHINESE, FamilialRole


def branches(lines):
    return "".join(line.branch.chinese for line in lines)


def roles(lines):
    return [line.role.chinese for line in lines]


def test_qian_branches_and_roles(qian_lines):
    assert branches(qian_lines) == "子寅辰午申戌"
    assert roles(qian_lines) == ["子孙", "妻财", "父母", "官鬼", "兄弟", "父母"]
    assert self_line(qian_lines).position == 6
    assert other_line(qian_lines).position == 3
    assert [line.position for line in lines_with_role(qian_lines, FamilialRole.OFFICER)] == [4]


def test_qian_najia_stems(qian_lines):
    assert "".join(line.stem.chinese for line in qian_lines) == "甲甲甲壬壬壬"


def test_kun_branches_and_roles(install):
    lines = install("000000")
    assert branches(lines) == "未巳卯丑亥酉"
    assert roles(lines) == ["兄弟", "父母", "官鬼", "兄弟", "妻财", "子孙"]
    assert [line.position for line in lines_with_role(lines, FamilialRole.WEALTH)] == [5]


def test_upper_half_reads_the_upper_trigram_list(install):
    # 天地否: lower 坤 gives 未巳卯, upper 乾 gives 午申戌
    lines = install("000111")
    assert branches(lines) == "未巳卯午申戌"
    assert self_line(lines).position == 3
    assert other_line(lines).position == 6


def test_moving_line_transformation():
    states = lines_from_draws([6, 8, 8, 7, 7, 7])
    lines = install_lines(states, resolve_primary(states))
    change = lines[0].transformation
    assert change.branch.chinese == "子"
    assert change.kind is TransformationKind.NORMAL
    assert change.role is FamilialRole.OFFSPRING
    assert all(line.transformation is None for line in lines[1:])


def test_two_moving_lines_in_one_trigram_read_the_changed_hexagram():
    states = lines_from_draws([9, 9, 7, 7, 7, 7])
    lines = install_lines(states, resolve_primary(states))
    changed = resolve_changed(states)
    changed_lines = install_changed_lines(states, changed)

    assert changed.name == "天山遁"
    assert lines[0].transformation.branch == changed_lines[0].branch
    assert lines[1].transformation.branch == changed_lines[1].branch
    assert lines[0].transformation.kind is TransformationKind.RETURN_CLASH


@pytest.mark.parametrize("draws", ["777777", "698796", "999999", "666666", "789687"])
def test_every_moving_line_has_a_transformation(draws):
    states = lines_from_draws([int(d) for d in draws])
    for line in install_lines(states, resolve_primary(states)):
        assert (line.transformation is not None) == line.active


@pytest.mark.parametrize("original,changed,kind", [
    ("寅", "卯", TransformationKind.ADVANCING),
    ("辰", "卯", TransformationKind.RETREATING),
    ("亥", "酉", TransformationKind.RETURN_BIRTH),
    ("子", "未", TransformationKind.RETURN_CLASH),
    ("寅", "巳", TransformationKind.NORMAL),
])
def test_classify_transformation(original, changed, kind):
    assert classify_transformation(BRANCH_BY_CHINESE[original], BRANCH_BY_CHINESE[changed]) is kind


def test_changed_lines_use_their_own_palace():
    states = lines_from_draws([6, 8, 8, 7, 7, 7])
    changed = resolve_changed(states)
    lines = install_changed_lines(states, changed)
    assert changed.palace.chinese == "巽"
    assert branches(lines) == "子寅辰午申戌"
    assert lines[0].role is FamilialRole.PARENT
    assert not any(line.active for line in lines)


def test_with_updates_returns_new_lines(qian_lines):
    updated = with_updates(qian_lines, {2: {"void": True}})
    assert updated[1].void
    assert not qian_lines[1].void
    assert updated[0] == qian_lines[0]


def test_missing_self_or_other_flag_is_an_invariant_violation(qian_lines):
    with pytest.raises(MissingWorldLine):
        self_line(with_updates(qian_lines, {6: {"is_self": False}}))
    with pytest.raises(MissingResponseLine):
        other_line(with_updates(qian_lines, {3: {"is_other": False}}))
