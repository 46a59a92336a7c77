# services/profile_wizard.py
"""
档案向导（分步填写 + 保存后续填）。

状态只包含"当前在第几步"和"哪些步骤已保存过"；
已完成的步骤从后端 profileCompletionStatus 恢复，
续填时停在第一个未完成的步骤上。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Set

from models.student_profile import PROFILE_STEPS, StudentProfile

logger = logging.getLogger(__name__)

STEP_KEYS = [key for key, _ in PROFILE_STEPS]


class WizardError(ValueError):
    pass


@dataclass
class WizardState:
    current_step: int = 0
    completed: Set[int] = field(default_factory=set)

    @classmethod
    def resume(cls, profile: Optional[StudentProfile]) -> "WizardState":
        completed = set()
        if profile is not None:
            status = profile.profile_completion_status
            completed = {i for i, key in enumerate(STEP_KEYS) if status.is_done(key)}
        state = cls(completed=completed)
        state.current_step = state.first_incomplete()
        return state

    def first_incomplete(self) -> int:
        for i in range(len(STEP_KEYS)):
            if i not in self.completed:
                return i
        # 全部完成时停在最后一步
        return len(STEP_KEYS) - 1

    @property
    def is_last_step(self) -> bool:
        return self.current_step == len(STEP_KEYS) - 1

    @property
    def can_complete(self) -> bool:
        return len(self.completed) == len(STEP_KEYS)

    @property
    def progress(self) -> int:
        return int(100 * len(self.completed) / len(STEP_KEYS) + 0.5)

    def previous(self) -> None:
        if self.current_step > 0:
            self.current_step -= 1

    def go_to(self, index: int, confirmed: bool = False) -> bool:
        """
        跳转到任意步骤。当前步骤还没保存时需要 confirmed=True（页面上的二次确认），
        否则不跳转并返回 False。
        """
        if not 0 <= index < len(STEP_KEYS):
            raise WizardError(f"Unknown step index: {index}")
        if index != self.current_step and self.current_step not in self.completed and not confirmed:
            return False
        self.current_step = index
        return True

    def complete_step(self, step_key: str, data: dict, save: Callable[[dict], StudentProfile]) -> StudentProfile:
        """
        保存某一步：save 成功才标记完成并前进到下一步；
        save 抛异常时直接往上抛，状态保持不变。
        """
        if step_key not in STEP_KEYS:
            raise WizardError(f"Unknown profile step: {step_key}")
        index = STEP_KEYS.index(step_key)

        profile = save({step_key: data})
        logger.info(f"[wizard] 步骤 {step_key} 已保存")

        self.completed.add(index)
        self.current_step = index + 1 if index < len(STEP_KEYS) - 1 else index
        return profile

    def to_dict(self) -> dict:
        return {
            "currentStep": self.current_step,
            "currentStepKey": STEP_KEYS[self.current_step],
            "steps": [
                {
                    "key": key,
                    "title": title,
                    "index": i,
                    "completed": i in self.completed,
                    "current": i == self.current_step,
                }
                for i, (key, title) in enumerate(PROFILE_STEPS)
            ],
            "progress": self.progress,
            "isLastStep": self.is_last_step,
            "canComplete": self.can_complete,
        }
