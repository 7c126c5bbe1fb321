# quizbot/cache.py
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


class AnswerCache:
    """
    Confirmed answers keyed by question signature, backed by a JSON file.

    The in-memory mapping is authoritative for the lifetime of the process;
    the file is rewritten whole on every store.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._answers: Dict[str, str] = self._load()

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, signature: str) -> bool:
        return signature in self._answers

    def _load(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            logger.info("No answer cache at %s, starting empty", self.path)
            return {}
        except (OSError, ValueError) as e:
            logger.warning("Unreadable answer cache %s (%s), starting empty", self.path, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Answer cache %s is not a JSON object, starting empty", self.path)
            return {}

        answers = {k: v for k, v in data.items() if isinstance(v, str)}
        logger.info("Answer cache loaded: %d questions", len(answers))
        return answers

    def lookup(self, signature: str) -> Optional[str]:
        return self._answers.get(signature)

    def store(self, signature: str, answer: str) -> bool:
        """Record an answer and persist. Returns False if the write failed."""
        self._answers[signature] = answer
        try:
            self._write()
        except OSError as e:
            logger.error("Failed to save answer cache %s: %s", self.path, e)
            return False
        logger.info("Answer cache saved (%d questions)", len(self._answers))
        return True

    def _write(self) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f'.{self.path.name}.', suffix='.tmp', dir=str(directory)
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                json.dump(self._answers, fh, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
