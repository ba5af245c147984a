from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Tuple

logger = logging.getLogger(__name__)

Undo = Callable[[], Awaitable[object]]


class CompensationStack:
    """Undo actions recorded by a multi-step booking, replayed newest first.

    ``unwind`` is best-effort: an undo that fails is logged and the rest still
    run, so the error that triggered the unwind is the one the caller sees.
    """

    def __init__(self) -> None:
        self._steps: List[Tuple[str, Undo]] = []

    def push(self, description: str, undo: Undo) -> None:
        self._steps.append((description, undo))

    def __len__(self) -> int:
        return len(self._steps)

    @property
    def descriptions(self) -> List[str]:
        return [description for description, _ in self._steps]

    async def unwind(self) -> List[str]:
        failed: List[str] = []
        while self._steps:
            description, undo = self._steps.pop()
            try:
                await undo()
                logger.info(f"[CompensationStack.unwind] rolled back {description}")
            except Exception:
                logger.exception(f"[CompensationStack.unwind] failed to roll back {description}")
                failed.append(description)
        return failed

    def clear(self) -> None:
        self._steps.clear()
