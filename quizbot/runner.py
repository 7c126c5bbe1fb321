# quizbot/runner.py
import asyncio
import logging
from typing import TYPE_CHECKING

from . import config
from .cache import AnswerCache
from .errors import AnswerSourceError, CredentialRejectedError
from .handlers import AnswerResolver
from .models import Provenance, ResolutionResult, question_signature

if TYPE_CHECKING:
    from .session import Run, Session

logger = logging.getLogger(__name__)


class RoundDriver:
    """
    Plays rounds against the quiz service for one run of a session.

    Cancellation is cooperative: it is checked before each round, before
    each question and while waiting on a human answer. A request already
    sent to the service is allowed to finish.
    """

    def __init__(
        self,
        source,
        resolver: AnswerResolver,
        cache: AnswerCache,
        timing: config.Timing = config.Timing(),
        questions_per_round: int = config.QUESTIONS_PER_ROUND,
    ):
        self.source = source
        self.resolver = resolver
        self.cache = cache
        self.timing = timing
        self.questions_per_round = questions_per_round

    async def run(self, session: 'Session', run: 'Run') -> None:
        """Availability check, then up to ``run.rounds`` rounds."""
        stats = session.stats
        logger.info("Starting bot: %d rounds", run.rounds)

        try:
            account = await self.source.get_account_info()
        except CredentialRejectedError as e:
            stats.errors += 1
            stats.abort_reason = f'Credential rejected: {e}'
            session.awaiting_credential = True
            logger.error("Credential rejected during availability check, waiting for a new token")
            return
        except AnswerSourceError as e:
            stats.errors += 1
            stats.abort_reason = f'Availability check failed: {e}'
            logger.error("Availability check failed: %s", e)
            return

        logger.info("User: %s", account.name or 'unknown')
        logger.info("Available plays: %d, requested: %d", account.playTimes, run.rounds)

        if account.playTimes < run.rounds:
            missing = run.rounds - account.playTimes
            stats.errors += 1
            stats.abort_reason = (
                f'Insufficient plays: {account.playTimes} available, '
                f'{run.rounds} requested ({missing} missing)'
            )
            logger.error("Insufficient plays, %d missing", missing)
            return

        for round_number in range(1, run.rounds + 1):
            if run.cancelled:
                break
            completed = await self.play_round(session, run, round_number)
            if not completed:
                logger.warning("Round %d did not complete", round_number)
                break
            if round_number < run.rounds and not run.cancelled:
                logger.info("Pausing %.0fs before next round", self.timing.round_delay)
                await asyncio.sleep(self.timing.round_delay)

        logger.info(
            "Stats: %d/%d rounds, %d/%d questions correct",
            stats.rounds_played, run.rounds, stats.correct_answers, stats.questions_seen,
        )

    async def play_round(self, session: 'Session', run: 'Run', round_number: int) -> bool:
        """Play one round. Returns False when the run was cancelled mid-round."""
        stats = session.stats
        correct = 0
        logger.info("=== ROUND %d ===", round_number)

        for question_number in range(1, self.questions_per_round + 1):
            if run.cancelled:
                return False

            logger.info("Question %d/%d", question_number, self.questions_per_round)
            try:
                question = await self.source.fetch_question()
                stats.questions_seen += 1
                logger.info("%s (index %s)", question.text, question.position)

                result = self.resolver.resolve(question)
                persist = False
                if not result.decided:
                    if run.cancelled:
                        return False
                    session.gate.open(question, round_number, question_number)
                    human = await session.gate.wait()
                    if human is None:
                        logger.info("Stopped while waiting for a human answer")
                        return False
                    result = ResolutionResult(answer=human.answer, provenance=Provenance.HUMAN)
                    persist = human.persist_if_correct

                if run.cancelled:
                    return False

                logger.info("Submitting '%s' (%s)", result.answer, result.provenance.value)
                outcome = await self.source.submit_answer(result.answer)

                if outcome.correct:
                    correct += 1
                    stats.correct_answers += 1
                    logger.info("Correct! Status: %s", outcome.status)
                    if result.provenance is Provenance.HUMAN and persist:
                        signature = question_signature(question.title, question.text, question.options)
                        self.cache.store(signature, result.answer)
                        logger.info("Human answer saved: '%s' -> '%s'", question.title, result.answer)
                else:
                    logger.info("Incorrect! Status: %s", outcome.status or 'unknown')

                await asyncio.sleep(self.timing.question_delay)

                if outcome.status == 'completed':
                    logger.info("Round finished, score %d/%d", correct, self.questions_per_round)
                    break

            except AnswerSourceError as e:
                logger.error("Question %d failed: %s", question_number, e)
                stats.errors += 1
                await asyncio.sleep(self.timing.error_backoff)

        stats.rounds_played += 1
        return True
