# services/selection_editor.py
"""
选校列表的编辑操作（新增 / 删除 / 上移 / 下移 / 改入学季）。

全部是纯函数：传入当前列表，返回新列表，不修改原对象；
每次变更后都把 priority 重排成 1..N，与列表顺序保持一致。
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from models.application import (
    MAX_UNIVERSITY_SELECTIONS,
    Program,
    University,
    UniversitySelection,
)

Selections = List[UniversitySelection]


class SelectionError(ValueError):
    """编辑操作不被允许时抛出，message 直接给前端展示。"""


def _reprioritize(selections: Sequence[UniversitySelection]) -> Selections:
    return [s.model_copy(update={"priority": i + 1}) for i, s in enumerate(selections)]


def is_already_selected(selections: Sequence[UniversitySelection], university_id, program_id) -> bool:
    # 前端传来的 id 可能是字符串，统一按 str 比较
    return any(
        str(s.university_id) == str(university_id) and str(s.program_id) == str(program_id)
        for s in selections
    )


def add_selection(
    selections: Sequence[UniversitySelection],
    university: University,
    program: Program,
) -> Selections:
    if len(selections) >= MAX_UNIVERSITY_SELECTIONS:
        raise SelectionError(f"Maximum {MAX_UNIVERSITY_SELECTIONS} universities allowed")

    if is_already_selected(selections, university.id, program.id):
        raise SelectionError("This university and program combination is already selected")

    new = UniversitySelection(
        university_id=university.id,
        university_name=university.university_name,
        program_id=program.id,
        program_name=program.name,
        country=university.country,
        fees=program.fees,
        duration=program.duration,
        intakes=list(program.intakes),
        # 默认选第一个入学季
        selected_intake=program.intakes[0] if program.intakes else "",
        priority=len(selections) + 1,
    )
    return list(selections) + [new]


def remove_selection(selections: Sequence[UniversitySelection], index: int) -> Selections:
    if not 0 <= index < len(selections):
        return list(selections)
    return _reprioritize([s for i, s in enumerate(selections) if i != index])


def _swap(selections: Sequence[UniversitySelection], a: int, b: int) -> Selections:
    items = list(selections)
    items[a], items[b] = items[b], items[a]
    return _reprioritize(items)


def move_up(selections: Sequence[UniversitySelection], index: int) -> Selections:
    if index <= 0 or index >= len(selections):
        return list(selections)
    return _swap(selections, index - 1, index)


def move_down(selections: Sequence[UniversitySelection], index: int) -> Selections:
    if index < 0 or index >= len(selections) - 1:
        return list(selections)
    return _swap(selections, index, index + 1)


def update_intake(selections: Sequence[UniversitySelection], index: int, intake: str) -> Selections:
    if not 0 <= index < len(selections):
        return list(selections)
    target = selections[index]
    if target.intakes and intake not in target.intakes:
        raise SelectionError(f"Intake {intake} is not offered for {target.university_name}")
    return [
        s.model_copy(update={"selected_intake": intake}) if i == index else s
        for i, s in enumerate(selections)
    ]


def find_program(universities: Sequence[University], university_id, program_id) -> Optional[Tuple[University, Program]]:
    for uni in universities:
        if str(uni.id) != str(university_id):
            continue
        for prog in uni.programs:
            if str(prog.id) == str(program_id):
                return uni, prog
    return None
