# quizbot/client.py
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from . import config
from .errors import AnswerSourceError, CredentialRejectedError
from .models import AccountInfo, Question, QuestionPayload, SubmitResult

logger = logging.getLogger(__name__)


class QuizClient:
    """
    Thin async client for the song-quiz service.

    The credential is read through ``credential`` on every call so a token
    update made mid-run applies to the very next request.
    """

    def __init__(
        self,
        credential: Callable[[], str],
        base_url: str = config.BASE_URL,
        timeout: float = config.HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._credential = credential
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'Bearer {self._credential()}',
            'Content-Type': 'application/json',
            'User-Agent': config.USER_AGENT,
        }

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        url = f'{self.base_url}{path}'
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s: %s", method, path, type(e).__name__, e)
            raise AnswerSourceError(f'{method} {path} failed: {e}') from e

        if resp.status_code in (401, 403):
            logger.error("%s %s rejected credential (%s)", method, path, resp.status_code)
            raise CredentialRejectedError(
                f'{method} {path} rejected credential', status_code=resp.status_code
            )
        if resp.is_error:
            logger.error("%s %s returned %s: %s", method, path, resp.status_code, resp.text[:200])
            raise AnswerSourceError(
                f'{method} {path} returned {resp.status_code}', status_code=resp.status_code
            )

        try:
            return resp.json()
        except ValueError as e:
            logger.error("%s %s returned non-JSON body: %s", method, path, resp.text[:200])
            raise AnswerSourceError(f'{method} {path} returned non-JSON body') from e

    async def get_account_info(self) -> AccountInfo:
        data = await self._request('GET', '/users/me')
        return _parse(AccountInfo, data, 'account info')

    async def fetch_question(self) -> Question:
        data = await self._request('GET', '/questions/fetch')
        return Question.from_payload(_parse(QuestionPayload, data, 'question'))

    async def submit_answer(self, answer: str) -> SubmitResult:
        data = await self._request('POST', '/answers/submit', json={'answer': answer, 'isBoost': True})
        if data is None:
            return SubmitResult()
        return _parse(SubmitResult, data, 'submit result')


def _parse(model, data: Any, what: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("Malformed %s: %s", what, e)
        raise AnswerSourceError(f'Malformed {what}: {e.error_count()} validation error(s)') from e
