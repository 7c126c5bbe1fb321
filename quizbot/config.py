# quizbot/config.py
import os
from dataclasses import dataclass


def _keywords(name: str, default: tuple) -> tuple:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(word.strip().lower() for word in raw.split(',') if word.strip())


BASE_URL = os.environ.get('QUIZBOT_BASE_URL', 'https://songquiz.lumitel.bi:8081')
CACHE_FILE = os.environ.get('QUIZBOT_CACHE_FILE', 'quiz_answers_db.json')
HTTP_TIMEOUT = float(os.environ.get('QUIZBOT_HTTP_TIMEOUT', '30'))
LOG_LEVEL = os.environ.get('QUIZBOT_LOG_LEVEL', 'INFO')
PORT = int(os.environ.get('PORT', '8080'))

USER_AGENT = 'Mozilla/5.0 (X11; Linux x86_64; rv:137.0) Gecko/20100101 Firefox/137.0'

# Question text may be Kirundi, English or French.
ARTIST_KEYWORDS = _keywords(
    'QUIZBOT_ARTIST_KEYWORDS', ('ninde', 'yaririmvye', 'artist', 'singer', 'chanteur')
)
TITLE_KEYWORDS = _keywords(
    'QUIZBOT_TITLE_KEYWORDS', ('zina', 'ndirimbo', 'title', 'titre', 'song')
)

QUESTIONS_PER_ROUND = 10


@dataclass(frozen=True)
class Timing:
    """Fixed pacing policy, in seconds."""
    question_delay: float = 1.0
    error_backoff: float = 2.0
    round_delay: float = 2.0
    scheduler_poll: float = 1.0
