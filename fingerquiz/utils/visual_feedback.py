"""
Visual Feedback Overlay for FINGERQUIZ

Draws the quiz onto the camera frame: hand landmarks, the live finger
count, a hold-progress bar, the current question with its options, the
explanation after submitting, the round summary and transient feedback.
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from fingerquiz.detectors.finger_counter import HandPose
from fingerquiz.quiz.feedback import FeedbackKind
from fingerquiz.quiz.quiz_state_machine import QuizPhase, QuizStateMachine
from fingerquiz.utils.math_utils import normalized_to_pixels


OPTION_LABELS = "ABCD"


@dataclass
class UIColors:
    """Color palette (BGR)."""
    landmark = (235, 165, 14)
    text_primary = (255, 255, 255)
    text_secondary = (180, 180, 200)
    background = (30, 20, 20)
    selected = (255, 160, 60)
    correct = (80, 200, 80)
    incorrect = (60, 60, 230)
    progress = (0, 200, 255)
    warning = (0, 165, 255)
    celebrate = (0, 215, 255)


FEEDBACK_TEXT = {
    FeedbackKind.SELECT: "OK!",
    FeedbackKind.CORRECT: "Correct!",
    FeedbackKind.INCORRECT: "Not quite...",
    FeedbackKind.ROUND_COMPLETE: "Round complete!",
}


class VisualFeedback:
    def __init__(self, config=None):
        self.colors = UIColors()
        self.show_landmarks = True
        self.flash_seconds = 2.0
        if config:
            self.show_landmarks = config.get('display', 'show_landmarks', default=True)
            self.flash_seconds = config.get('display', 'feedback_flash_seconds', default=2.0)

        self._last_feedback: Optional[Tuple[FeedbackKind, float]] = None

    def push_feedback(self, kind: FeedbackKind, timestamp: Optional[float] = None):
        self._last_feedback = (kind, time.time() if timestamp is None else timestamp)

    def active_feedback(self, now: Optional[float] = None) -> Optional[FeedbackKind]:
        if self._last_feedback is None:
            return None
        kind, ts = self._last_feedback
        now = time.time() if now is None else now
        return kind if now - ts <= self.flash_seconds else None

    def draw(self, frame, poses: Sequence[HandPose], raw_count: int, progress: float, quiz: QuizStateMachine):
        """Render everything for one frame (in place)."""
        if self.show_landmarks:
            for pose in poses:
                self._draw_landmarks(frame, pose)
        self._draw_status_bar(frame, raw_count, progress)
        self._draw_quiz(frame, quiz)
        self._draw_feedback_banner(frame)
        return frame

    def _draw_landmarks(self, frame, pose: HandPose):
        pts = normalized_to_pixels(pose.points[:, :2], frame.shape)
        for x, y in pts:
            cv2.circle(frame, (int(x), int(y)), 4, self.colors.landmark, -1)

    def _draw_status_bar(self, frame, raw_count: int, progress: float):
        h, w = frame.shape[:2]
        y0 = h - 50
        self._panel(frame, 0, y0, w, h)
        cv2.putText(frame, f"Fingers: {raw_count}", (15, h - 18),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.8, self.colors.text_primary, 2, cv2.LINE_AA)

        bar_x, bar_w = 200, max(50, w - 220)
        cv2.rectangle(frame, (bar_x, h - 32), (bar_x + bar_w, h - 18), self.colors.text_secondary, 1)
        filled = int(bar_w * max(0.0, min(1.0, progress)))
        if filled > 0:
            cv2.rectangle(frame, (bar_x, h - 32), (bar_x + filled, h - 18), self.colors.progress, -1)

    def _draw_quiz(self, frame, quiz: QuizStateMachine):
        h, w = frame.shape[:2]
        phase = quiz.phase

        if phase == QuizPhase.ROUND_COMPLETE:
            summary = quiz.summary()
            lines = [
                (f"Score: {summary.score_text}", self.colors.celebrate),
                ("6 fingers: more questions", self.colors.text_primary),
                ("Q: exit", self.colors.text_secondary),
            ]
            self._panel(frame, 0, 0, w, 40 + 35 * len(lines))
            for i, (text, color) in enumerate(lines):
                cv2.putText(frame, text, (20, 40 + 35 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.9, color, 2, cv2.LINE_AA)
            self._draw_fetch_state(frame, quiz, 40 + 35 * len(lines) + 10)
            return

        question = quiz.current_question
        if question is None:
            return

        total = len(quiz.state.questions)
        lines: List[Tuple[str, tuple]] = [
            (f"Q {quiz.state.current_index + 1}/{total}: {question.prompt}", self.colors.text_primary)
        ]
        selected = quiz.selected_option
        for idx, option in enumerate(question.options):
            color = self.colors.text_secondary
            if phase == QuizPhase.SUBMITTED:
                if idx == question.correct_index:
                    color = self.colors.correct
                elif idx == selected:
                    color = self.colors.incorrect
            elif idx == selected:
                color = self.colors.selected
            lines.append((f"{idx + 1} = {OPTION_LABELS[idx]}. {option}", color))

        if phase == QuizPhase.SUBMITTED and question.explanation:
            lines.append((question.explanation, self.colors.text_primary))
        hint = "5 fingers: next" if phase == QuizPhase.SUBMITTED else "1-4 fingers: choose, 5: check"
        lines.append((hint, self.colors.text_secondary))

        panel_h = 20 + 28 * len(lines)
        self._panel(frame, 0, 0, w, panel_h)
        for i, (text, color) in enumerate(lines):
            cv2.putText(frame, text, (15, 30 + 28 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 1, cv2.LINE_AA)
        self._draw_fetch_state(frame, quiz, panel_h + 25)

    def _draw_fetch_state(self, frame, quiz: QuizStateMachine, y: int):
        if quiz.fetch_in_flight:
            cv2.putText(frame, "Loading more questions...", (15, y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.6, self.colors.progress, 1, cv2.LINE_AA)
        elif quiz.last_error is not None:
            cv2.putText(frame, "Could not load questions - show 6 fingers to retry", (15, y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.6, self.colors.warning, 1, cv2.LINE_AA)

    def _draw_feedback_banner(self, frame):
        kind = self.active_feedback()
        if kind is None:
            return
        h, w = frame.shape[:2]
        color = {
            FeedbackKind.CORRECT: self.colors.correct,
            FeedbackKind.INCORRECT: self.colors.incorrect,
            FeedbackKind.ROUND_COMPLETE: self.colors.celebrate,
        }.get(kind, self.colors.selected)
        text = FEEDBACK_TEXT[kind]
        (tw, th), _ = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 1.4, 3)
        cv2.putText(frame, text, ((w - tw) // 2, h // 2 + th // 2),
                    cv2.FONT_HERSHEY_SIMPLEX, 1.4, color, 3, cv2.LINE_AA)

    def _panel(self, frame, x0, y0, x1, y1, alpha: float = 0.55):
        h, w = frame.shape[:2]
        x0, y0 = max(0, x0), max(0, y0)
        x1, y1 = min(w, x1), min(h, y1)
        if x1 <= x0 or y1 <= y0:
            return
        roi = frame[y0:y1, x0:x1]
        overlay = np.full_like(roi, self.colors.background)
        frame[y0:y1, x0:x1] = cv2.addWeighted(overlay, alpha, roi, 1 - alpha, 0)


__all__ = ['UIColors', 'VisualFeedback']
