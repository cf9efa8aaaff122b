# -*- coding: utf-8 -*-
"""
Ludic 课程格式 - 完成状态与访问规则
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Set

from .ludic_constants import (
    ACCESS_CHAINED,
    ACCESS_DISCOVERABLE,
    ACCESS_CONTROLLED,
    ACCESS_GROUPED,
    ACCESS_CHAINED_AND_GROUPED,
    COMPLETED_STATES,
    COMPLETION_INCOMPLETE,
)


@dataclass
class CompletionInfo:
    """某用户对某活动的完成情况"""
    state: int = COMPLETION_INCOMPLETE
    completionstr: str = ""
    grade: Optional[float] = None
    maxgrade: Optional[float] = None

    @property
    def percent(self) -> Optional[float]:
        """得分百分比，没有成绩时为 None"""
        if self.grade is None or not self.maxgrade:
            return None
        return min(100.0, max(0.0, self.grade * 100.0 / self.maxgrade))

    @property
    def completed(self) -> bool:
        return is_completed(self.state)


@dataclass
class AccessState:
    """活动对当前用户的可见/可用状态"""
    visible: bool = True
    available: bool = True


def is_completed(state: Optional[int]) -> bool:
    return state in COMPLETED_STATES


def compute_section_access(
    course_modules: Iterable,
    completion_states: Dict[int, int],
    granted: Set[int],
    is_editor: bool = False,
) -> Dict[int, AccessState]:
    """
    计算一个章节内各活动的访问状态

    course_modules 需按章节内顺序排列，每个对象提供 id/visible/access；
    前驱是上一个教师可见的活动，第一个活动的前驱视为可见、可用且已完成。
    """
    result: Dict[int, AccessState] = {}
    prev_visible, prev_available, prev_completed = True, True, True

    for cm in course_modules:
        if is_editor:
            result[cm.id] = AccessState(True, True)
            continue

        # 教师隐藏的活动不参与链条
        if not cm.visible:
            result[cm.id] = AccessState(False, False)
            continue

        mode = cm.access
        if mode == ACCESS_CHAINED:
            visible, available = True, prev_completed
        elif mode == ACCESS_DISCOVERABLE:
            visible = available = prev_completed
        elif mode == ACCESS_CONTROLLED:
            visible = available = cm.id in granted
        elif mode == ACCESS_GROUPED:
            visible, available = prev_visible, prev_available
        elif mode == ACCESS_CHAINED_AND_GROUPED:
            visible, available = prev_visible, prev_completed
        else:
            # ACCESS_ACCESSIBLE 及未知值
            visible = available = True

        result[cm.id] = AccessState(visible, available)
        prev_visible, prev_available = visible, available
        prev_completed = is_completed(completion_states.get(cm.id))

    return result
