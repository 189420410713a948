"""
Question Supply

External source of quiz question batches. The quiz only asks for "another
batch"; how questions are produced is outside this package.

- JsonQuestionBank: pages through a local JSON file
- HttpQuestionSupply: asks an HTTP endpoint for a batch
- QuestionFetcher: runs one fetch on a worker thread and hands the outcome
  back through a queue, so the frame loop never blocks on the network
"""

import json
import queue
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import requests

from fingerquiz.quiz.questions import Question, parse_questions
from fingerquiz.utils.errors import SupplyFetchError


SAMPLE_QUESTIONS_PATH = Path(__file__).parent.parent / "data" / "sample_questions.json"


class QuestionSupply:
    """Interface: return the next batch of questions or raise SupplyFetchError."""

    def fetch_more(self) -> List[Question]:
        raise NotImplementedError


class JsonQuestionBank(QuestionSupply):
    """
    Serves consecutive batches of `batch_size` questions from a JSON file.
    The file holds a list of question records or {"questions": [...]}.
    """

    def __init__(self, path, batch_size: int = 5):
        self.path = Path(path)
        self.batch_size = int(batch_size)
        self._questions: Optional[List[Question]] = None
        self._cursor = 0

    def _load(self) -> List[Question]:
        if self._questions is None:
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    self._questions = parse_questions(json.load(f))
            except (OSError, json.JSONDecodeError, ValueError) as e:
                raise SupplyFetchError(f"Could not load question bank {self.path}: {e}") from e
            print(f"✓ Loaded {len(self._questions)} questions from {self.path}")
        return self._questions

    @property
    def remaining(self) -> int:
        return len(self._load()) - self._cursor

    def initial_batch(self) -> List[Question]:
        return self.fetch_more()

    def fetch_more(self) -> List[Question]:
        questions = self._load()
        if self._cursor >= len(questions):
            raise SupplyFetchError("Question bank exhausted")
        batch = questions[self._cursor:self._cursor + self.batch_size]
        self._cursor += len(batch)
        return batch


class HttpQuestionSupply(QuestionSupply):
    """
    POSTs {"count": batch_size, "exclude_ids": [...]} to `url` and expects a
    JSON list of question records (or {"questions": [...]}).
    """

    def __init__(self, url: str, batch_size: int = 5, timeout: float = 30.0, session=None):
        self.url = url
        self.batch_size = int(batch_size)
        self.timeout = float(timeout)
        self.session = session or requests.Session()
        self._seen_ids: List[int] = []

    def initial_batch(self) -> List[Question]:
        return self.fetch_more()

    def fetch_more(self) -> List[Question]:
        try:
            r = self.session.post(
                self.url,
                json={"count": self.batch_size, "exclude_ids": self._seen_ids},
                timeout=self.timeout,
            )
            r.raise_for_status()
            batch = parse_questions(r.json())
        except requests.RequestException as e:
            raise SupplyFetchError(f"Question request failed: {e}") from e
        except ValueError as e:
            # also covers JSON decode errors from r.json()
            raise SupplyFetchError(f"Invalid question payload: {e}") from e

        if not batch:
            raise SupplyFetchError("Question supply returned an empty batch")
        self._seen_ids.extend(q.id for q in batch)
        return batch


@dataclass
class FetchOutcome:
    request_id: int
    questions: List[Question] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class QuestionFetcher:
    """
    Runs `supply.fetch_more()` off the frame loop.

    Outcomes are queued and collected with `poll()` on the loop thread, which
    keeps every state mutation on one thread. With `synchronous=True` the
    fetch runs inside `start()` (scripted runs and tests).
    """

    def __init__(self, supply: QuestionSupply, synchronous: bool = False):
        self.supply = supply
        self.synchronous = synchronous
        self._results: "queue.Queue[FetchOutcome]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._cancelled = threading.Event()

    def _run(self, request_id: int):
        try:
            outcome = FetchOutcome(request_id=request_id, questions=list(self.supply.fetch_more()))
        except SupplyFetchError as e:
            outcome = FetchOutcome(request_id=request_id, error=e)
        except Exception as e:
            outcome = FetchOutcome(request_id=request_id, error=SupplyFetchError(str(e)))
        if not self._cancelled.is_set():
            self._results.put(outcome)

    def start(self, request_id: int):
        if self._cancelled.is_set():
            return
        if self.synchronous:
            self._run(request_id)
            return
        self._thread = threading.Thread(target=self._run, args=(request_id,), daemon=True)
        self._thread.start()

    def poll(self) -> Optional[FetchOutcome]:
        try:
            return self._results.get_nowait()
        except queue.Empty:
            return None

    @property
    def busy(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def cancel(self):
        """Drop any outcome that arrives from now on."""
        self._cancelled.set()
        while self.poll() is not None:
            pass


__all__ = [
    'SAMPLE_QUESTIONS_PATH',
    'QuestionSupply',
    'JsonQuestionBank',
    'HttpQuestionSupply',
    'FetchOutcome',
    'QuestionFetcher',
]
