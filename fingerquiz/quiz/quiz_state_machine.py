"""
Quiz Interaction State Machine

Consumes accepted gesture events (or the equivalent key presses) and drives
the quiz:

    1..4  select option A..D           (Answering only)
    5     submit, then next question   (Answering -> Submitted -> Answering)
          or the round summary after the last question
    6     fetch another batch of questions (any phase)

Phases are derived from QuizSessionState flags, so the state cannot
disagree with itself. All mutation goes through the methods below and runs
on the frame-loop thread; fetch outcomes are applied in `pump()`.

While a fetch is in flight no transition is applied. That is the single
lock on sequence mutation, released when the fetch succeeds or fails.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence

from fingerquiz.quiz.feedback import FeedbackKind
from fingerquiz.quiz.question_supply import QuestionFetcher
from fingerquiz.quiz.questions import Question, reindex_batch
from fingerquiz.utils.errors import InvalidSequenceState, SupplyFetchError


SELECT_GESTURES = frozenset({1, 2, 3, 4})
SUBMIT_GESTURE = 5
MORE_GESTURE = 6


class QuizPhase(str, Enum):
    ANSWERING = "answering"
    SUBMITTED = "submitted"
    ROUND_COMPLETE = "round_complete"
    CLOSED = "closed"


@dataclass
class QuizSessionState:
    """
    Session data owned by the state machine.
    current_index is a valid index into `questions`, or equals
    len(questions) exactly when `summary_visible` is True.
    """
    questions: List[Question]
    current_index: int = 0
    answers: Dict[int, int] = field(default_factory=dict)    # question id -> option index
    results: Dict[int, bool] = field(default_factory=dict)   # question id -> graded correct
    submitted: bool = False
    summary_visible: bool = False


@dataclass(frozen=True)
class TransitionResult:
    applied: bool
    phase: QuizPhase
    reason: str
    feedback: Optional[FeedbackKind] = None
    correct: Optional[bool] = None


@dataclass(frozen=True)
class RoundSummary:
    total: int
    answered: int
    correct: int

    @property
    def score_text(self) -> str:
        return f"{self.correct}/{self.total}"


class QuizStateMachine:
    def __init__(self, questions: Sequence[Question], fetcher: Optional[QuestionFetcher] = None, feedback_sink=None):
        """
        Args:
            questions: initial batch, must not be empty
            fetcher: runs Question Supply requests for gesture 6
            feedback_sink: object with `signal(FeedbackKind)`
        """
        questions = list(questions)
        if not questions:
            raise InvalidSequenceState("Cannot start a quiz with zero questions")
        if len({q.id for q in questions}) != len(questions):
            print("⚠ Duplicate question ids in initial batch, renumbering from 1")
            questions = reindex_batch([], questions)

        self.state = QuizSessionState(questions=questions)
        self.fetcher = fetcher
        self.feedback_sink = feedback_sink
        self.closed = False
        self.fetch_in_flight = False
        self.last_error: Optional[Exception] = None
        self._request_id = 0

    # Read-only views

    @property
    def phase(self) -> QuizPhase:
        if self.closed:
            return QuizPhase.CLOSED
        if self.state.summary_visible:
            return QuizPhase.ROUND_COMPLETE
        if self.state.submitted:
            return QuizPhase.SUBMITTED
        return QuizPhase.ANSWERING

    @property
    def current_question(self) -> Optional[Question]:
        if self.state.summary_visible or self.closed:
            return None
        return self.state.questions[self.state.current_index]

    @property
    def selected_option(self) -> Optional[int]:
        q = self.current_question
        return None if q is None else self.state.answers.get(q.id)

    def accepted_gestures(self) -> FrozenSet[int]:
        """Gesture values that would cause a transition right now."""
        if self.closed or self.fetch_in_flight:
            return frozenset()
        phase = self.phase
        if phase == QuizPhase.ANSWERING:
            return SELECT_GESTURES | {SUBMIT_GESTURE, MORE_GESTURE}
        if phase == QuizPhase.SUBMITTED:
            return frozenset({SUBMIT_GESTURE, MORE_GESTURE})
        return frozenset({MORE_GESTURE})

    def summary(self) -> RoundSummary:
        return RoundSummary(
            total=len(self.state.questions),
            answered=len(self.state.answers),
            correct=sum(1 for ok in self.state.results.values() if ok),
        )

    # Transitions

    def handle_gesture(self, value: int) -> TransitionResult:
        """Apply one accepted gesture event."""
        self._require_open()
        if value in SELECT_GESTURES:
            return self.select_option(value - 1)
        if value == SUBMIT_GESTURE:
            return self.submit_or_next()
        if value == MORE_GESTURE:
            return self.request_more()
        return self._ignored('unmapped_gesture')

    def select_option(self, option_index: int) -> TransitionResult:
        self._require_open()
        if self.fetch_in_flight:
            return self._ignored('fetch_in_flight')
        if self.phase != QuizPhase.ANSWERING:
            return self._ignored('answer_locked')
        if not 0 <= option_index < len(self.current_question.options):
            return self._ignored('option_out_of_range')

        self.state.answers[self.current_question.id] = option_index
        return self._applied('selected', FeedbackKind.SELECT)

    def submit_or_next(self) -> TransitionResult:
        self._require_open()
        if self.fetch_in_flight:
            return self._ignored('fetch_in_flight')

        phase = self.phase
        if phase == QuizPhase.ANSWERING:
            question = self.current_question
            correct = question.is_correct(self.state.answers.get(question.id))
            self.state.results[question.id] = correct
            self.state.submitted = True
            kind = FeedbackKind.CORRECT if correct else FeedbackKind.INCORRECT
            return self._applied('submitted', kind, correct=correct)

        if phase == QuizPhase.SUBMITTED:
            self.state.submitted = False
            if self.state.current_index + 1 < len(self.state.questions):
                self.state.current_index += 1
                return self._applied('next_question', FeedbackKind.SELECT)
            self.state.current_index = len(self.state.questions)
            self.state.summary_visible = True
            return self._applied('round_complete', FeedbackKind.ROUND_COMPLETE)

        return self._ignored('round_complete')

    def request_more(self) -> TransitionResult:
        """Start fetching another batch. At most one fetch is in flight."""
        self._require_open()
        if self.fetch_in_flight:
            return self._ignored('fetch_in_flight')
        if self.fetcher is None:
            return self._ignored('no_question_supply')

        self._request_id += 1
        self.fetch_in_flight = True
        self.last_error = None
        print(f"⏳ Fetching more questions (request {self._request_id})...")
        self.fetcher.start(self._request_id)
        return self._applied('fetch_started')

    def pump(self) -> List[TransitionResult]:
        """Apply fetch outcomes that arrived since the last call."""
        results = []
        if self.fetcher is None:
            return results
        while True:
            outcome = self.fetcher.poll()
            if outcome is None:
                break
            if outcome.ok:
                results.append(self.complete_fetch(outcome.request_id, outcome.questions))
            else:
                results.append(self.fail_fetch(outcome.request_id, outcome.error))
        return results

    def complete_fetch(self, request_id: int, fetched: Sequence[Question]) -> TransitionResult:
        if self.closed:
            print(f"⚠ Discarding questions from request {request_id}: session closed")
            return self._ignored('session_closed')
        if not self.fetch_in_flight or request_id != self._request_id:
            print(f"⚠ Discarding stale questions from request {request_id}")
            return self._ignored('stale_result')
        if not fetched:
            return self.fail_fetch(request_id, SupplyFetchError("Question supply returned an empty batch"))

        prior_len = len(self.state.questions)
        self.state.questions.extend(reindex_batch(self.state.questions, fetched))
        self.fetch_in_flight = False
        print(f"✓ Added {len(fetched)} questions ({len(self.state.questions)} total)")

        if self.state.summary_visible:
            self.state.current_index = prior_len
            self.state.summary_visible = False
            self.state.submitted = False
        return self._applied('questions_appended')

    def fail_fetch(self, request_id: int, error: Exception) -> TransitionResult:
        if self.closed:
            return self._ignored('session_closed')
        if not self.fetch_in_flight or request_id != self._request_id:
            return self._ignored('stale_result')

        self.fetch_in_flight = False
        self.last_error = error
        print(f"⚠ Could not fetch more questions: {error} (show 6 fingers to retry)")
        return TransitionResult(applied=False, phase=self.phase, reason='fetch_failed')

    def close(self):
        """End the session. Later fetch outcomes are discarded."""
        if self.closed:
            return
        self.closed = True
        self.fetch_in_flight = False
        if self.fetcher is not None:
            self.fetcher.cancel()

    # Helpers

    def _require_open(self):
        if self.closed:
            raise InvalidSequenceState("Quiz session is closed")

    def _ignored(self, reason: str) -> TransitionResult:
        return TransitionResult(applied=False, phase=self.phase, reason=reason)

    def _applied(self, reason: str, kind: Optional[FeedbackKind] = None, correct: Optional[bool] = None) -> TransitionResult:
        if kind is not None:
            self._signal(kind)
        return TransitionResult(applied=True, phase=self.phase, reason=reason, feedback=kind, correct=correct)

    def _signal(self, kind: FeedbackKind):
        if self.feedback_sink is None:
            return
        try:
            self.feedback_sink.signal(kind)
        except Exception as e:
            print(f"⚠ Feedback sink error: {e}")


__all__ = [
    'SELECT_GESTURES',
    'SUBMIT_GESTURE',
    'MORE_GESTURE',
    'QuizPhase',
    'QuizSessionState',
    'TransitionResult',
    'RoundSummary',
    'QuizStateMachine',
]
