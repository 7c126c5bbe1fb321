"""Shared fixtures for the quizbot test suite."""

import asyncio

import pytest

from quizbot.cache import AnswerCache
from quizbot.config import Timing
from quizbot.errors import AnswerSourceError
from quizbot.models import AccountInfo, Question, SubmitResult
from quizbot.session import SessionController

NO_DELAY = Timing(question_delay=0, error_backoff=0, round_delay=0, scheduler_poll=0)


class FakeSource:
    """In-memory stand-in for the quiz service."""

    def __init__(self, questions=(), plays=10, default=None, judge=None):
        self.questions = list(questions)
        self.plays = plays
        self.default = default
        self.judge = judge or (lambda answer: SubmitResult(correct=True, status='in_progress'))
        self.fetched = 0
        self.submitted = []

    async def get_account_info(self):
        if isinstance(self.plays, Exception):
            raise self.plays
        return AccountInfo(playTimes=self.plays, name='tester')

    async def fetch_question(self):
        self.fetched += 1
        item = self.questions.pop(0) if self.questions else self.default
        if item is None:
            raise AnswerSourceError('no more questions')
        if isinstance(item, Exception):
            raise item
        return item

    async def submit_answer(self, answer):
        self.submitted.append(answer)
        return self.judge(answer)


@pytest.fixture
def cache(tmp_path) -> AnswerCache:
    return AnswerCache(tmp_path / 'answers.json')


@pytest.fixture
def artist_question() -> Question:
    return Question(
        text='who is the artist',
        title='Bob - Song A',
        options=('Bob', 'Alice'),
        position=0,
    )


@pytest.fixture
def unknown_question() -> Question:
    """No cache entry, no option in the title, no separator."""
    return Question(
        text='which one?',
        title='XYZ',
        options=('Alpha', 'Beta', 'Gamma'),
        position=3,
    )


@pytest.fixture
def make_controller(cache):
    def _make(source, **kwargs) -> SessionController:
        kwargs.setdefault('timing', NO_DELAY)
        return SessionController(source=source, cache=cache, **kwargs)
    return _make


@pytest.fixture
def wait_until():
    async def _wait(predicate, timeout: float = 2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError('condition not reached in time')
            await asyncio.sleep(0.001)
    return _wait
