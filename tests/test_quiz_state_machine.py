import unittest
from unittest.mock import MagicMock
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fingerquiz.detectors.gesture_stabilizer import GestureStabilizer
from fingerquiz.quiz.feedback import FeedbackKind, FeedbackSink
from fingerquiz.quiz.question_supply import QuestionFetcher, QuestionSupply
from fingerquiz.quiz.questions import Question
from fingerquiz.quiz.quiz_state_machine import QuizPhase, QuizStateMachine
from fingerquiz.utils.errors import InvalidSequenceState, SupplyFetchError


def make_questions(n, start=1, correct=0):
    return [
        Question(id=i, prompt=f"Q{i}?", options=("A", "B", "C", "D"), correct_index=correct)
        for i in range(start, start + n)
    ]


class ScriptedSupply(QuestionSupply):
    """Returns queued batches in order; an Exception entry is raised."""

    def __init__(self, *batches):
        self.batches = list(batches)
        self.calls = 0

    def fetch_more(self):
        self.calls += 1
        item = self.batches.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSink(FeedbackSink):
    def __init__(self):
        self.kinds = []

    def signal(self, kind):
        self.kinds.append(kind)


class ManualFetcher(QuestionFetcher):
    """Fetcher whose outcome is delivered by the test, never by a thread."""

    def __init__(self):
        super().__init__(ScriptedSupply())
        self.started = []

    def start(self, request_id):
        self.started.append(request_id)


class TestQuizBasics(unittest.TestCase):
    def setUp(self):
        self.sink = RecordingSink()
        self.quiz = QuizStateMachine(make_questions(3, correct=1), feedback_sink=self.sink)

    def test_empty_questions_rejected(self):
        with self.assertRaises(InvalidSequenceState):
            QuizStateMachine([])

    def test_duplicate_ids_renumbered(self):
        quiz = QuizStateMachine(make_questions(2) + make_questions(1))
        self.assertEqual([q.id for q in quiz.state.questions], [1, 2, 3])

    def test_starts_answering(self):
        self.assertEqual(self.quiz.phase, QuizPhase.ANSWERING)
        self.assertEqual(self.quiz.current_question.id, 1)
        self.assertIsNone(self.quiz.selected_option)

    def test_select_records_answer(self):
        result = self.quiz.handle_gesture(3)
        self.assertTrue(result.applied)
        self.assertEqual(self.quiz.state.answers, {1: 2})
        self.assertEqual(self.sink.kinds, [FeedbackKind.SELECT])

    def test_reselect_replaces_answer(self):
        self.quiz.handle_gesture(1)
        self.quiz.handle_gesture(4)
        self.assertEqual(self.quiz.selected_option, 3)

    def test_submit_grades(self):
        self.quiz.handle_gesture(2)
        result = self.quiz.handle_gesture(5)
        self.assertTrue(result.correct)
        self.assertEqual(result.phase, QuizPhase.SUBMITTED)
        self.assertEqual(self.sink.kinds[-1], FeedbackKind.CORRECT)

    def test_submit_wrong_answer(self):
        self.quiz.handle_gesture(1)
        result = self.quiz.handle_gesture(5)
        self.assertFalse(result.correct)
        self.assertEqual(self.sink.kinds[-1], FeedbackKind.INCORRECT)

    def test_submit_without_selection_is_incorrect(self):
        result = self.quiz.handle_gesture(5)
        self.assertTrue(result.applied)
        self.assertFalse(result.correct)
        self.assertEqual(self.quiz.state.results, {1: False})

    def test_answer_locked_after_submit(self):
        self.quiz.handle_gesture(2)
        self.quiz.handle_gesture(5)
        result = self.quiz.handle_gesture(3)
        self.assertFalse(result.applied)
        self.assertEqual(result.reason, 'answer_locked')
        self.assertEqual(self.quiz.state.answers, {1: 1})

    def test_next_question(self):
        self.quiz.handle_gesture(5)
        result = self.quiz.handle_gesture(5)
        self.assertEqual(result.reason, 'next_question')
        self.assertEqual(self.quiz.phase, QuizPhase.ANSWERING)
        self.assertEqual(self.quiz.state.current_index, 1)

    def test_round_complete(self):
        for _ in range(3):
            self.quiz.handle_gesture(2)
            self.quiz.handle_gesture(5)
            self.quiz.handle_gesture(5)
        self.assertEqual(self.quiz.phase, QuizPhase.ROUND_COMPLETE)
        self.assertEqual(self.quiz.state.current_index, 3)
        self.assertIsNone(self.quiz.current_question)
        self.assertEqual(self.sink.kinds[-1], FeedbackKind.ROUND_COMPLETE)
        self.assertEqual(self.quiz.summary().score_text, "3/3")

    def test_round_complete_ignores_select_and_submit(self):
        for _ in range(3):
            self.quiz.handle_gesture(5)
            self.quiz.handle_gesture(5)
        self.assertFalse(self.quiz.handle_gesture(1).applied)
        self.assertFalse(self.quiz.handle_gesture(5).applied)
        self.assertEqual(self.quiz.phase, QuizPhase.ROUND_COMPLETE)

    def test_accepted_gestures_per_phase(self):
        self.assertEqual(self.quiz.accepted_gestures(), frozenset({1, 2, 3, 4, 5, 6}))
        self.quiz.handle_gesture(5)
        self.assertEqual(self.quiz.accepted_gestures(), frozenset({5, 6}))

    def test_unmapped_gesture_ignored(self):
        result = self.quiz.handle_gesture(9)
        self.assertFalse(result.applied)
        self.assertEqual(self.sink.kinds, [])

    def test_more_without_supply(self):
        result = self.quiz.handle_gesture(6)
        self.assertFalse(result.applied)
        self.assertEqual(result.reason, 'no_question_supply')

    def test_closed_session_rejects_gestures(self):
        self.quiz.close()
        self.quiz.close()
        self.assertEqual(self.quiz.phase, QuizPhase.CLOSED)
        self.assertEqual(self.quiz.accepted_gestures(), frozenset())
        with self.assertRaises(InvalidSequenceState):
            self.quiz.handle_gesture(1)

    def test_broken_sink_does_not_break_quiz(self):
        sink = MagicMock()
        sink.signal.side_effect = RuntimeError("speaker unplugged")
        quiz = QuizStateMachine(make_questions(1), feedback_sink=sink)
        result = quiz.handle_gesture(1)
        self.assertTrue(result.applied)
        self.assertEqual(quiz.selected_option, 0)


class TestLoadMore(unittest.TestCase):
    def test_round_complete_then_more(self):
        supply = ScriptedSupply(make_questions(5))
        quiz = QuizStateMachine(make_questions(5), fetcher=QuestionFetcher(supply, synchronous=True))
        for _ in range(5):
            quiz.handle_gesture(1)
            quiz.handle_gesture(5)
            quiz.handle_gesture(5)
        self.assertEqual(quiz.phase, QuizPhase.ROUND_COMPLETE)

        result = quiz.handle_gesture(6)
        self.assertEqual(result.reason, 'fetch_started')
        results = quiz.pump()

        self.assertEqual([r.reason for r in results], ['questions_appended'])
        self.assertEqual([q.id for q in quiz.state.questions], list(range(1, 11)))
        self.assertEqual(quiz.state.current_index, 5)
        self.assertEqual(quiz.phase, QuizPhase.ANSWERING)
        self.assertEqual(len(quiz.state.answers), 5)

    def test_more_mid_round_keeps_position(self):
        supply = ScriptedSupply(make_questions(2))
        quiz = QuizStateMachine(make_questions(3), fetcher=QuestionFetcher(supply, synchronous=True))
        quiz.handle_gesture(5)
        quiz.handle_gesture(6)
        quiz.pump()
        self.assertEqual(len(quiz.state.questions), 5)
        self.assertEqual(quiz.state.current_index, 0)
        self.assertEqual(quiz.phase, QuizPhase.SUBMITTED)

    def test_fetch_in_flight_blocks_transitions(self):
        fetcher = ManualFetcher()
        quiz = QuizStateMachine(make_questions(3), fetcher=fetcher)
        quiz.handle_gesture(6)
        self.assertTrue(quiz.fetch_in_flight)
        self.assertEqual(quiz.accepted_gestures(), frozenset())

        for value in (1, 5, 6):
            result = quiz.handle_gesture(value)
            self.assertFalse(result.applied)
            self.assertEqual(result.reason, 'fetch_in_flight')
        self.assertEqual(fetcher.started, [1])
        self.assertEqual(quiz.state.answers, {})

    def test_failed_fetch_leaves_state_unchanged(self):
        supply = ScriptedSupply(SupplyFetchError("offline"), make_questions(1))
        quiz = QuizStateMachine(make_questions(2), fetcher=QuestionFetcher(supply, synchronous=True))
        quiz.handle_gesture(2)
        quiz.handle_gesture(6)
        results = quiz.pump()

        self.assertEqual(results[0].reason, 'fetch_failed')
        self.assertFalse(quiz.fetch_in_flight)
        self.assertIsInstance(quiz.last_error, SupplyFetchError)
        self.assertEqual(len(quiz.state.questions), 2)
        self.assertEqual(quiz.state.answers, {1: 1})

        # retry works
        quiz.handle_gesture(6)
        quiz.pump()
        self.assertIsNone(quiz.last_error)
        self.assertEqual([q.id for q in quiz.state.questions], [1, 2, 3])

    def test_empty_batch_is_a_failure(self):
        fetcher = ManualFetcher()
        quiz = QuizStateMachine(make_questions(2), fetcher=fetcher)
        quiz.handle_gesture(6)
        result = quiz.complete_fetch(1, [])
        self.assertEqual(result.reason, 'fetch_failed')
        self.assertEqual(len(quiz.state.questions), 2)

    def test_stale_result_discarded(self):
        fetcher = ManualFetcher()
        quiz = QuizStateMachine(make_questions(2), fetcher=fetcher)
        quiz.handle_gesture(6)
        quiz.fail_fetch(1, SupplyFetchError("timeout"))
        quiz.handle_gesture(6)

        result = quiz.complete_fetch(1, make_questions(3))
        self.assertEqual(result.reason, 'stale_result')
        self.assertTrue(quiz.fetch_in_flight)
        self.assertEqual(len(quiz.state.questions), 2)

    def test_result_after_close_discarded(self):
        fetcher = ManualFetcher()
        quiz = QuizStateMachine(make_questions(2), fetcher=fetcher)
        quiz.handle_gesture(6)
        quiz.close()
        result = quiz.complete_fetch(1, make_questions(3))
        self.assertFalse(result.applied)
        self.assertEqual(result.reason, 'session_closed')
        self.assertEqual(len(quiz.state.questions), 2)


class TestGestureToQuiz(unittest.TestCase):
    """Raw samples through the stabilizer into the quiz."""

    def run_samples(self, quiz, samples, stabilizer=None):
        stabilizer = stabilizer or GestureStabilizer(dwell_frames=20, cooldown_s=1.5)
        events = []
        for i, sample in enumerate(samples):
            event = stabilizer.update(sample, quiz.accepted_gestures(), now=(i + 1) * 0.05)
            if event is not None:
                events.append(event.value)
                quiz.handle_gesture(event.value)
        return events

    def test_select_then_submit(self):
        quiz = QuizStateMachine(make_questions(3, correct=2))
        events = self.run_samples(quiz, [3] * 25 + [0] * 10 + [5] * 25)
        self.assertEqual(events, [3, 5])
        self.assertEqual(quiz.state.answers, {1: 2})
        self.assertEqual(quiz.phase, QuizPhase.SUBMITTED)
        self.assertEqual(quiz.state.results, {1: True})

    def test_select_ignored_when_submitted(self):
        quiz = QuizStateMachine(make_questions(3))
        quiz.handle_gesture(5)
        events = self.run_samples(quiz, [2] * 60)
        self.assertEqual(events, [])
        self.assertEqual(quiz.phase, QuizPhase.SUBMITTED)


if __name__ == '__main__':
    unittest.main()
