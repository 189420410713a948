import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fingerquiz.quiz.questions import Question, parse_questions, reindex_batch


def make_question(qid, correct=0, prompt=None):
    return Question(
        id=qid,
        prompt=prompt or f"Question {qid}?",
        options=("A", "B", "C", "D"),
        correct_index=correct,
        explanation=f"Because {qid}",
    )


class TestQuestion(unittest.TestCase):
    def test_needs_four_options(self):
        with self.assertRaises(ValueError):
            Question(id=1, prompt="2 + 2?", options=("4", "5", "6"), correct_index=0)

    def test_correct_index_in_range(self):
        with self.assertRaises(ValueError):
            Question(id=1, prompt="2 + 2?", options=("4", "5", "6", "7"), correct_index=4)

    def test_empty_prompt_rejected(self):
        with self.assertRaises(ValueError):
            Question(id=1, prompt="  ", options=("4", "5", "6", "7"), correct_index=0)

    def test_numeric_strings_are_coerced(self):
        q = Question(id="4", prompt="2 + 2?", options=("3", "4", "5", "6"), correct_index="1")
        self.assertEqual(q.id, 4)
        self.assertEqual(q.correct_index, 1)
        self.assertTrue(q.is_correct(1))
        self.assertEqual([r.id for r in reindex_batch([q], [make_question(1)])], [5])

    def test_non_numeric_id_rejected(self):
        with self.assertRaises(ValueError):
            Question(id="abc", prompt="2 + 2?", options=("3", "4", "5", "6"), correct_index=1)

    def test_is_correct(self):
        q = make_question(1, correct=2)
        self.assertTrue(q.is_correct(2))
        self.assertFalse(q.is_correct(1))
        self.assertFalse(q.is_correct(None))

    def test_from_dict_camel_case(self):
        q = Question.from_dict({
            "id": 3,
            "question": "Con gì kêu meo meo?",
            "options": ["Chó", "Mèo", "Gà", "Vịt"],
            "correctAnswer": 1,
            "explanation": "Mèo kêu meo meo.",
        })
        self.assertEqual(q.prompt, "Con gì kêu meo meo?")
        self.assertEqual(q.correct_index, 1)
        self.assertEqual(q.options[1], "Mèo")

    def test_from_dict_snake_case(self):
        q = Question.from_dict({"id": 1, "prompt": "1 + 1?", "options": [1, 2, 3, 4], "correct_index": 1})
        self.assertEqual(q.options, ("1", "2", "3", "4"))
        self.assertEqual(q.explanation, "")

    def test_from_dict_malformed(self):
        with self.assertRaises(ValueError):
            Question.from_dict({"question": "no id", "options": ["a", "b", "c", "d"], "correctAnswer": 0})
        with self.assertRaises(ValueError):
            Question.from_dict({"id": 1, "question": "no answer", "options": ["a", "b", "c", "d"]})

    def test_to_dict_round_trips(self):
        q = make_question(7, correct=3)
        self.assertEqual(Question.from_dict(q.to_dict()), q)


class TestParseQuestions(unittest.TestCase):
    def test_list_and_wrapped(self):
        records = [make_question(1).to_dict(), make_question(2).to_dict()]
        self.assertEqual(len(parse_questions(records)), 2)
        self.assertEqual(len(parse_questions({"questions": records})), 2)

    def test_bad_payload(self):
        with self.assertRaises(ValueError):
            parse_questions({"items": []})
        with self.assertRaises(ValueError):
            parse_questions("nope")


class TestReindexBatch(unittest.TestCase):
    def test_ids_continue_after_existing(self):
        existing = [make_question(i) for i in range(1, 6)]
        fetched = [make_question(1), make_question(2), make_question(2)]
        renumbered = reindex_batch(existing, fetched)
        self.assertEqual([q.id for q in renumbered], [6, 7, 8])
        self.assertEqual([q.prompt for q in renumbered], [q.prompt for q in fetched])

    def test_uses_highest_id_not_length(self):
        existing = [make_question(10), make_question(3)]
        self.assertEqual([q.id for q in reindex_batch(existing, [make_question(1)])], [11])

    def test_empty_existing_starts_at_one(self):
        self.assertEqual([q.id for q in reindex_batch([], [make_question(5), make_question(9)])], [1, 2])


if __name__ == '__main__':
    unittest.main()
