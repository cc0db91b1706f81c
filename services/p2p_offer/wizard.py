"""
Wizard State Machine - навигация по шагам визарда

Инварианты:
- Шаги < current_step всегда доступны для возврата назад
- Вперёд можно только если текущий шаг завершён
- mark_step_complete идемпотентен и монотонен
- На последнем шаге next_step() не двигается, а вызывает submission
"""
import logging
from typing import Awaitable, Callable, Optional, Set

from .models import TOTAL_STEPS

logger = logging.getLogger(__name__)


class WizardStateMachine:
    """
    Состояние визарда: текущий шаг и множество завершённых шагов.

    Args:
        total_steps: Количество шагов (N)
        on_submit: Async callback, вызывается при next_step() на шаге N
    """

    def __init__(
        self,
        total_steps: int = TOTAL_STEPS,
        on_submit: Optional[Callable[[], Awaitable[object]]] = None,
    ):
        if total_steps < 1:
            raise ValueError("Wizard needs at least one step")

        self.total_steps = total_steps
        self.current_step = 1
        self.completed_steps: Set[int] = set()
        self._on_submit = on_submit

    @property
    def is_last_step(self) -> bool:
        return self.current_step == self.total_steps

    def is_step_complete(self, step: int) -> bool:
        """Шаг завершён, если он позади или явно отмечен"""
        return step < self.current_step or step in self.completed_steps

    def mark_step_complete(self, step: int):
        """Отметить шаг завершённым (повторная отметка - no-op)"""
        if not 1 <= step <= self.total_steps:
            logger.warning(f"Ignoring completion of unknown step {step}")
            return
        self.completed_steps.add(step)

    def unmark_step(self, step: int):
        """
        Снять отметку с шага.

        Машина сама никогда этого не делает - только явная перепроверка
        внутри шага, когда данные стали невалидными.
        """
        self.completed_steps.discard(step)

    def sync_step(self, step: int, is_valid: bool):
        """Отметить/снять шаг по результату валидации"""
        if is_valid:
            self.mark_step_complete(step)
        else:
            self.unmark_step(step)

    def can_continue(self) -> bool:
        """Кнопка "Continue" активна только для завершённого текущего шага"""
        return self.is_step_complete(self.current_step)

    def can_complete(self, submitting: bool) -> bool:
        """Кнопка "Complete" (только на шаге N) неактивна во время отправки"""
        return self.is_last_step and self.can_continue() and not submitting

    def go_to_step(self, step: int) -> bool:
        """
        Перейти к шагу.

        Назад - всегда. Вперёд - только если все шаги от текущего
        до целевого (не включая) завершены.

        Returns:
            True если переход выполнен
        """
        if not 1 <= step <= self.total_steps:
            return False

        if step > self.current_step:
            pending = [s for s in range(self.current_step, step) if not self.is_step_complete(s)]
            if pending:
                logger.debug(f"Cannot jump to step {step}: incomplete steps {pending}")
                return False

        self.current_step = step
        return True

    async def next_step(self) -> bool:
        """
        Следующий шаг.

        На шаге N не двигается, а вызывает submission callback.

        Returns:
            True если шаг сменился
        """
        if self.is_last_step:
            if self._on_submit is not None:
                await self._on_submit()
            return False

        if not self.can_continue():
            logger.debug(f"Step {self.current_step} is not complete, staying")
            return False

        self.current_step += 1
        return True

    def prev_step(self) -> bool:
        """Предыдущий шаг (на шаге 1 - no-op)"""
        if self.current_step <= 1:
            return False
        self.current_step -= 1
        return True

    def reset(self):
        self.current_step = 1
        self.completed_steps = set()
