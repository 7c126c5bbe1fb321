# quizbot/gate.py
import asyncio
import logging
from enum import Enum
from typing import Optional

from .errors import InvalidAnswerError, NoPendingQuestionError
from .models import HumanAnswer, PendingQuestion, Question

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    ARMED = 'armed'
    WAITING = 'waiting'
    RESOLVED = 'resolved'


class ArbitrationGate:
    """
    Holds at most one question waiting for a human answer.

    The round loop opens the gate and awaits ``wait()``; the operator side
    calls ``submit()``; ``cancel()`` wakes the waiter with no answer.
    """

    def __init__(self):
        self.state = GateState.ARMED
        self._pending: Optional[PendingQuestion] = None
        self._answer: Optional[HumanAnswer] = None
        self._cancelled = False
        self._event = asyncio.Event()

    @property
    def pending(self) -> Optional[PendingQuestion]:
        return self._pending

    @property
    def waiting(self) -> bool:
        return self.state is GateState.WAITING

    def open(self, question: Question, round_number: int, question_number: int) -> PendingQuestion:
        self._pending = PendingQuestion(
            question=question,
            round_number=round_number,
            question_number=question_number,
        )
        self._answer = None
        self._cancelled = False
        self._event.clear()
        self.state = GateState.WAITING
        logger.info("Waiting for human answer (round %d, question %d)", round_number, question_number)
        return self._pending

    def submit(self, answer: Optional[str], persist_if_correct: bool = True) -> HumanAnswer:
        if self._pending is None:
            raise NoPendingQuestionError('No question is waiting for an answer')

        options = list(self._pending.question.options)
        if answer not in options:
            raise InvalidAnswerError(answer, options)

        logger.info("Human answer received: '%s'", answer)
        self._pending.human_answer = answer
        self._pending.persist_if_correct = persist_if_correct
        self._answer = HumanAnswer(answer=answer, persist_if_correct=persist_if_correct)
        self._pending = None
        self.state = GateState.RESOLVED
        self._event.set()
        return self._answer

    def cancel(self) -> None:
        if self._pending is not None:
            logger.info("Discarding pending question")
        self._pending = None
        self._cancelled = True
        self._event.set()

    async def wait(self) -> Optional[HumanAnswer]:
        """Suspend until answered or cancelled. Returns None on cancel."""
        if self.state is GateState.WAITING:
            await self._event.wait()

        answer = None if self._cancelled else self._answer
        self._pending = None
        self._answer = None
        self._cancelled = False
        self._event.clear()
        self.state = GateState.ARMED
        return answer
