# quizbot/handlers.py
import logging
import re
from typing import Iterable, Optional, Sequence

from . import config
from .cache import AnswerCache
from .models import Provenance, Question, ResolutionResult, question_signature

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = ' - '


class AnswerResolver:
    """
    Decides an answer for a question without asking anyone.

    Strategies are tried in a fixed order and the first hit wins:
    cached answer, option found in the title, artist/title split.
    """

    def __init__(
        self,
        cache: AnswerCache,
        artist_keywords: Iterable[str] = config.ARTIST_KEYWORDS,
        title_keywords: Iterable[str] = config.TITLE_KEYWORDS,
    ):
        self.cache = cache
        self.artist_keywords = tuple(artist_keywords)
        self.title_keywords = tuple(title_keywords)

    def resolve(self, question: Question) -> ResolutionResult:
        logger.info("Title: '%s'", question.title)
        logger.info("Options: %s", list(question.options))

        # Strategy 1: answer confirmed by a human earlier
        answer = match_cached(self.cache, question)
        if answer is not None:
            return ResolutionResult(answer=answer, provenance=Provenance.CACHE)

        # Strategy 2: option embedded verbatim in the title
        answer = match_substring(question.title, question.options)
        if answer is not None:
            return ResolutionResult(answer=answer, provenance=Provenance.SUBSTRING)

        # Strategy 3: "Artist - Song" title against what the question asks for
        answer = match_artist_title(
            question.title,
            question.options,
            question.text,
            self.artist_keywords,
            self.title_keywords,
        )
        if answer is not None:
            return ResolutionResult(answer=answer, provenance=Provenance.ARTIST_TITLE)

        logger.info("No automatic answer, human intervention required")
        return ResolutionResult(answer=None, provenance=Provenance.NONE)


def normalize_text(text) -> str:
    if not text:
        return ''
    text = re.sub(r'[^\w\s]', '', str(text).lower())
    return re.sub(r'\s+', ' ', text).strip()


def match_cached(cache: AnswerCache, question: Question) -> Optional[str]:
    signature = question_signature(question.title, question.text, question.options)
    answer = cache.lookup(signature)
    if answer is None:
        return None
    if answer not in question.options:
        logger.info("Cached answer '%s' no longer among options, ignoring", answer)
        return None
    logger.info("Cached answer: '%s'", answer)
    return answer


def match_substring(title: str, options: Sequence[str]) -> Optional[str]:
    title_lower = title.lower()
    for option in options:
        if option and option.lower() in title_lower:
            logger.info("Substring match: '%s' in '%s'", option, title)
            return option
    return None


def match_artist_title(
    title: str,
    options: Sequence[str],
    question_text: str,
    artist_keywords: Iterable[str] = config.ARTIST_KEYWORDS,
    title_keywords: Iterable[str] = config.TITLE_KEYWORDS,
) -> Optional[str]:
    if TITLE_SEPARATOR not in title:
        return None

    question_lower = question_text.lower()
    asks_artist = any(word in question_lower for word in artist_keywords)
    asks_title = any(word in question_lower for word in title_keywords)
    # Only the first two segments count: "A - B - remix" asks about A and B.
    artist_part, title_part = title.split(TITLE_SEPARATOR)[:2]

    if asks_artist:
        logger.info("Artist question detected: '%s'", artist_part)
        answer = _match_normalized(artist_part, options)
        if answer is not None:
            logger.info("Artist found: '%s'", answer)
            return answer

    if asks_title:
        logger.info("Title question detected: '%s'", title_part)
        answer = _match_normalized(title_part, options)
        if answer is not None:
            logger.info("Title found: '%s'", answer)
            return answer

    return None


def _match_normalized(target: str, options: Sequence[str]) -> Optional[str]:
    wanted = normalize_text(target)
    for option in options:
        if normalize_text(option) == wanted:
            return option
    return None
