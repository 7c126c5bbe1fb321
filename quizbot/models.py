# quizbot/models.py
import time
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class Provenance(str, Enum):
    CACHE = 'cache'
    SUBSTRING = 'substring'
    ARTIST_TITLE = 'artist-title'
    HUMAN = 'human'
    NONE = 'none'


class Phase(str, Enum):
    IDLE = 'idle'
    SCHEDULED = 'scheduled'
    RUNNING = 'running'
    AWAITING_HUMAN = 'awaiting-human'
    AWAITING_CREDENTIAL = 'awaiting-credential'


# --- Answer Source wire payloads ---

class SongInfo(BaseModel):
    title: Optional[str] = None


class QuestionPayload(BaseModel):
    questionText: str
    options: List[str] = Field(min_length=1)
    songInfo: Optional[SongInfo] = None
    currentIndex: Any = None


class AccountInfo(BaseModel):
    playTimes: int = 0
    name: Optional[str] = None


class SubmitResult(BaseModel):
    correct: bool = False
    status: Optional[str] = None


# --- Domain records ---

class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    title: str = ''
    options: Tuple[str, ...]
    position: Any = None

    @classmethod
    def from_payload(cls, payload: QuestionPayload) -> 'Question':
        title = payload.songInfo.title if payload.songInfo else None
        return cls(
            text=payload.questionText,
            title=title or '',
            options=tuple(payload.options),
            position=payload.currentIndex,
        )


def question_signature(title: str, text: str, options) -> str:
    """Cache key for a question; independent of option order."""
    return f"{title}::{text}::{'|'.join(sorted(options))}"


class ResolutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: Optional[str] = None
    provenance: Provenance = Provenance.NONE

    @property
    def decided(self) -> bool:
        return self.answer is not None


class HumanAnswer(BaseModel):
    answer: str
    persist_if_correct: bool = True


class PendingQuestion(BaseModel):
    question: Question
    round_number: int
    question_number: int
    human_answer: Optional[str] = None
    persist_if_correct: bool = True

    def describe(self) -> dict:
        return {
            'question_text': self.question.text,
            'title': self.question.title,
            'options': list(self.question.options),
            'current_index': self.question.position,
            'round_number': self.round_number,
            'question_number': self.question_number,
        }


class RoundStats(BaseModel):
    rounds_played: int = 0
    questions_seen: int = 0
    correct_answers: int = 0
    errors: int = 0
    started_at: Optional[float] = None
    abort_reason: Optional[str] = None

    @classmethod
    def fresh(cls) -> 'RoundStats':
        return cls(started_at=time.time())

    def uptime_seconds(self) -> int:
        if self.started_at is None:
            return 0
        return int(time.time() - self.started_at)

    def success_rate(self) -> str:
        if self.questions_seen == 0:
            return '0%'
        return f'{self.correct_answers / self.questions_seen * 100:.2f}%'


# --- Control surface requests ---

class StartRequest(BaseModel):
    token: Optional[str] = None
    rounds: Optional[int] = None


class ScheduleRequest(StartRequest):
    time: Optional[Union[int, str]] = None


class TokenRequest(BaseModel):
    token: Optional[str] = None


class HumanAnswerRequest(BaseModel):
    answer: Optional[str] = None
    save_if_correct: bool = True
