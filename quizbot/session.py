# quizbot/session.py
import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Set

from . import config
from .cache import AnswerCache
from .client import QuizClient
from .errors import (
    BusyError,
    InvalidRequestError,
    NoPendingQuestionError,
    NotRunningError,
)
from .gate import ArbitrationGate
from .handlers import AnswerResolver
from .models import Phase, RoundStats
from .runner import RoundDriver

logger = logging.getLogger(__name__)

_CLOCK_TIME = re.compile(r'^(\d{1,2}):(\d{2})$', re.ASCII)
_EPOCH_MILLIS = re.compile(r'^\d+$', re.ASCII)


class Run:
    """Handle for one background run; cancelling it never affects a later run."""

    def __init__(self, rounds: int):
        self.rounds = rounds
        self.cancelled = False
        self.task: Optional[asyncio.Task] = None

    def cancel(self) -> None:
        self.cancelled = True


class Schedule:
    def __init__(self, target: datetime, rounds: int):
        self.target = target
        self.rounds = rounds
        self.task: Optional[asyncio.Task] = None


class Session:
    """The single mutable bot state. Only SessionController mutates it."""

    def __init__(self):
        self.credential = ''
        self.running = False
        self.run: Optional[Run] = None
        self.schedule: Optional[Schedule] = None
        self.awaiting_credential = False
        self.stats = RoundStats()
        self.gate = ArbitrationGate()

    @property
    def phase(self) -> Phase:
        if self.running:
            return Phase.AWAITING_HUMAN if self.gate.waiting else Phase.RUNNING
        if self.schedule is not None:
            return Phase.SCHEDULED
        if self.awaiting_credential:
            return Phase.AWAITING_CREDENTIAL
        return Phase.IDLE

    @property
    def busy(self) -> bool:
        return self.running or self.schedule is not None


def parse_schedule_time(value: Any, now: datetime) -> datetime:
    """
    Resolve a schedule target.

    Accepts a future Unix timestamp in milliseconds (int or digit string) or
    a 24-hour "HH:MM" clock time, which means the next occurrence of that
    time: today if still ahead, otherwise tomorrow.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidRequestError("Invalid format. Use HH:MM or a timestamp")

    if isinstance(value, int) or (isinstance(value, str) and _EPOCH_MILLIS.match(value.strip())):
        millis = int(value)
        if millis <= now.timestamp() * 1000:
            raise InvalidRequestError('Timestamp is in the past')
        try:
            return datetime.fromtimestamp(millis / 1000, tz=now.tzinfo)
        except (ValueError, OverflowError, OSError) as e:
            raise InvalidRequestError(f'Timestamp out of range: {value}') from e

    match = _CLOCK_TIME.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise InvalidRequestError("Invalid format. Use HH:MM or a timestamp")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidRequestError(f'Invalid clock time: {value}')

    target = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return target


def _epoch_millis(moment: Optional[datetime]) -> Optional[int]:
    return int(moment.timestamp() * 1000) if moment is not None else None


class SessionController:
    """
    Owns the Session and performs every transition on it.

    Transitions are plain synchronous methods running on the event loop, so
    no two of them interleave; the multi-round work runs as a background task.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        source=None,
        cache: Optional[AnswerCache] = None,
        resolver: Optional[AnswerResolver] = None,
        timing: config.Timing = config.Timing(),
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.session = session or Session()
        self.cache = cache if cache is not None else AnswerCache(config.CACHE_FILE)
        self.resolver = resolver or AnswerResolver(self.cache)
        self.source = source or QuizClient(lambda: self.session.credential)
        self.timing = timing
        self.clock = clock
        self.driver = RoundDriver(self.source, self.resolver, self.cache, timing)
        self._tasks: Set[asyncio.Task] = set()

    # --- transitions ---

    def start(self, credential: Optional[str], rounds: Optional[int]) -> Run:
        if self.session.busy:
            raise BusyError('The bot is already running or scheduled')
        rounds = _require_run_args(credential, rounds)

        self._set_credential(credential)
        logger.info("Starting bot immediately: %d rounds", rounds)
        return self._launch(rounds)

    def schedule(self, credential: Optional[str], rounds: Optional[int], when: Any) -> Schedule:
        if self.session.busy:
            raise BusyError('The bot is already running or scheduled')
        rounds = _require_run_args(credential, rounds)
        if when is None or when == '':
            raise InvalidRequestError("Token, rounds and time required (format: 'HH:MM' or timestamp)")
        target = parse_schedule_time(when, self.clock())

        self._set_credential(credential)
        schedule = Schedule(target, rounds)
        self.session.schedule = schedule
        schedule.task = self._spawn(self._watch(schedule))
        logger.info("Bot scheduled for %s (%d rounds)", target.isoformat(), rounds)
        return schedule

    def stop(self) -> RoundStats:
        session = self.session
        if not session.busy:
            raise NotRunningError('Nothing is running or scheduled')

        session.schedule = None
        if session.run is not None:
            session.run.cancel()
        session.run = None
        session.running = False
        session.gate.cancel()
        logger.info("Bot stop requested")
        return session.stats

    def submit_credential(self, credential: Optional[str]) -> None:
        if not credential:
            raise InvalidRequestError('Token required')
        self._set_credential(credential)
        logger.info("Token updated")

    def submit_human_answer(self, answer: Optional[str], persist_if_correct: bool = True):
        gate = self.session.gate
        if gate.pending is None:
            raise NoPendingQuestionError('No question is waiting for an answer')
        if not answer:
            raise InvalidRequestError('Answer required')
        return gate.submit(answer, persist_if_correct)

    # --- queries ---

    def pending_question(self) -> Dict[str, Any]:
        pending = self.session.gate.pending
        if pending is None:
            raise NoPendingQuestionError('No question is waiting for an answer')
        return pending.describe()

    def status(self) -> Dict[str, Any]:
        session = self.session
        pending = session.gate.pending
        schedule = session.schedule
        return {
            'phase': session.phase.value,
            'is_processing': session.running,
            'waiting_for_human': session.gate.waiting,
            'waiting_for_token': session.awaiting_credential,
            'has_token': bool(session.credential),
            'scheduled_time': _epoch_millis(schedule.target) if schedule else None,
            'scheduled_rounds': schedule.rounds if schedule else None,
            'current_stats': {
                **session.stats.model_dump(),
                'uptime': session.stats.uptime_seconds(),
            },
            'pending_question': pending.describe() if pending else None,
        }

    def stats(self) -> Dict[str, Any]:
        stats = self.session.stats
        return {
            'rounds_played': stats.rounds_played,
            'total_questions': stats.questions_seen,
            'correct_answers': stats.correct_answers,
            'errors': stats.errors,
            'success_rate': stats.success_rate(),
            'uptime': stats.uptime_seconds(),
            'abort_reason': stats.abort_reason,
            'database_size': len(self.cache),
        }

    # --- background work ---

    async def join(self) -> None:
        """Wait for every background run and scheduler to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        if self.session.busy:
            self.stop()
        await self.join()

    def _set_credential(self, credential: str) -> None:
        self.session.credential = credential
        self.session.awaiting_credential = False

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _launch(self, rounds: int) -> Run:
        session = self.session
        run = Run(rounds)
        session.stats = RoundStats.fresh()
        session.gate = ArbitrationGate()
        session.run = run
        session.running = True
        run.task = self._spawn(self._execute(run))
        return run

    async def _execute(self, run: Run) -> None:
        session = self.session
        try:
            await self.driver.run(session, run)
        except Exception as e:
            logger.exception("Bot run failed: %s", e)
            session.stats.errors += 1
        finally:
            if session.run is run:
                session.run = None
                session.running = False
            logger.info("Bot finished")

    async def _watch(self, schedule: Schedule) -> None:
        logger.info("Watching schedule: %s", schedule.target.isoformat())
        while self.session.schedule is schedule:
            if self.clock() >= schedule.target:
                self.session.schedule = None
                logger.info("Scheduled start!")
                self._launch(schedule.rounds)
                return
            await asyncio.sleep(self.timing.scheduler_poll)
        logger.info("Schedule for %s cancelled", schedule.target.isoformat())


def _require_run_args(credential: Optional[str], rounds: Optional[int]) -> int:
    if not credential or rounds is None:
        raise InvalidRequestError('Token and number of rounds required')
    if isinstance(rounds, bool) or not isinstance(rounds, int) or rounds < 1:
        raise InvalidRequestError('Rounds must be a positive integer')
    return rounds
