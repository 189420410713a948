#!/usr/bin/env python3
"""
FINGERQUIZ - Finger-count Interactive Gesture Quiz
Main Application

Children answer multiple-choice questions by holding up fingers in front of
the webcam: 1-4 pick A-D, 5 checks the answer and moves on, 6 (two hands)
loads more questions. Keys 1-6 do the same; Q exits.

Per frame: landmark source -> finger count -> stabilizer -> quiz state machine.
"""

import argparse
import queue
import sys
import threading
import time
from typing import Optional

from fingerquiz.app.action_dispatcher import QuizActionDispatcher
from fingerquiz.app.landmark_source import LandmarkSource, MediaPipeLandmarkSource
from fingerquiz.config.config_manager import config
from fingerquiz.detectors.finger_counter import DEFAULT_EXTENSION_MARGIN, count_fingers
from fingerquiz.detectors.gesture_stabilizer import GestureStabilizer
from fingerquiz.quiz.feedback import QueueFeedbackSink
from fingerquiz.quiz.question_supply import SAMPLE_QUESTIONS_PATH, HttpQuestionSupply, JsonQuestionBank, QuestionFetcher
from fingerquiz.quiz.quiz_state_machine import QuizStateMachine, TransitionResult
from fingerquiz.utils.errors import InvalidSequenceState, SensorUnavailable, SupplyFetchError, TransientFrameError


class GestureQuizApplication:
    """Owns the camera, the stabilizer and the quiz for one gesture-quiz session."""

    def __init__(
        self,
        source: LandmarkSource,
        quiz: QuizStateMachine,
        stabilizer: Optional[GestureStabilizer] = None,
        app_config=None,
        visual=None,
        frame_queue=None,
        key_queue=None,
        feedback_queue=None,
        clock=time.time,
    ):
        """
        Args:
            source: landmark source, opened in `start()`
            quiz: state machine for this session
            stabilizer: defaults to one built from config
            visual: optional VisualFeedback used to draw on frames for the GUI
            frame_queue / key_queue: GUI queues (camera frames out, key names in)
            feedback_queue: queue fed by the quiz's QueueFeedbackSink
            clock: time source for the stabilizer
        """
        self.config = app_config or config
        self.source = source
        self.quiz = quiz
        self.stabilizer = stabilizer or GestureStabilizer.from_config(self.config)
        self.margin = self.config.get('finger_count', 'extension_margin', default=DEFAULT_EXTENSION_MARGIN)
        self.visual = visual
        self.frame_queue = frame_queue
        self.key_queue = key_queue
        self.feedback_queue = feedback_queue
        self.clock = clock

        self.dispatcher = QuizActionDispatcher(self)
        self.dispatcher.load_map(self.config.get('input_map', default={}))

        self.running = False
        self.started = False
        self.frame_count = 0
        self.skipped_frames = 0
        self.raw_count = 0
        self.events = []  # accepted gesture events, in order

    def start(self):
        """Open the sensor. SensorUnavailable propagates to the caller."""
        self.source.open()
        self.started = True
        self.running = True
        print("✓ Gesture quiz ready! Hold up fingers to answer.\n")

    def apply_gesture(self, value: int, source: str = "gesture") -> Optional[TransitionResult]:
        """Route one discrete command (gesture event or key) into the quiz."""
        try:
            result = self.quiz.handle_gesture(value)
        except InvalidSequenceState as e:
            print(f"⚠ Ignoring {source} {value}: {e}")
            return None
        if result.applied:
            print(f"  > {source} {value} -> {result.reason} [{result.phase.value}]")
        return result

    def exit(self):
        self.running = False

    def step(self) -> bool:
        """
        Process exactly one frame. Returns False once the session should stop.
        A bad frame is skipped and leaves the stabilizer untouched.
        """
        if not self.running:
            return False
        self.frame_count += 1

        for result in self.quiz.pump():
            if result.applied:
                print(f"  > fetch -> {result.reason} [{result.phase.value}]")

        try:
            frame, poses = self.source.next_frame()
        except TransientFrameError as e:
            self.skipped_frames += 1
            print(f"⚠ Skipping frame {self.frame_count}: {e}")
            poses, frame = None, None

        if poses is not None:
            self.raw_count = count_fingers(poses, self.margin)
            event = self.stabilizer.update(self.raw_count, self.quiz.accepted_gestures(), now=self.clock())
            if event is not None:
                self.events.append(event)
                self.apply_gesture(event.value)

        self._process_keys()
        self._drain_feedback()

        if frame is not None and poses is not None:
            self._publish_frame(frame, poses)

        return self.running

    def run(self, max_frames: Optional[int] = None):
        """Main loop. Runs until exit, or `max_frames` frames when given."""
        if not self.started:
            self.start()
        try:
            while self.step():
                if max_frames is not None and self.frame_count >= max_frames:
                    break
        finally:
            self.cleanup()

    def _process_keys(self):
        if self.key_queue is None:
            return
        while True:
            try:
                key = self.key_queue.get_nowait()
            except queue.Empty:
                break
            self.dispatcher.dispatch(key)

    def _drain_feedback(self):
        if self.feedback_queue is None:
            return
        while True:
            try:
                kind, ts = self.feedback_queue.get_nowait()
            except queue.Empty:
                break
            if self.visual is not None:
                self.visual.push_feedback(kind, ts)

    def _publish_frame(self, frame, poses):
        if self.visual is None or self.frame_queue is None:
            return
        self.visual.draw(frame, poses, self.raw_count, self.stabilizer.progress, self.quiz)
        try:
            if self.frame_queue.full():
                try:
                    self.frame_queue.get_nowait()
                except queue.Empty:
                    pass
            self.frame_queue.put_nowait(frame)
        except queue.Full:
            pass

    def cleanup(self):
        """Stop the loop, end the quiz session and release the camera."""
        print("\n🧹 Cleaning up...")
        self.running = False
        summary = self.quiz.summary()
        self.quiz.close()
        self.stabilizer.reset()
        self.source.close()
        if self.frame_queue is not None:
            # shutdown sentinel for the GUI
            while True:
                try:
                    self.frame_queue.get_nowait()
                except queue.Empty:
                    break
            self.frame_queue.put_nowait(None)
        print(f"✓ Quiz closed: {summary.correct}/{summary.total} correct, {summary.answered} answered\n")


def build_supply(args, app_config):
    batch_size = args.batch_size or app_config.get('quiz', 'batch_size', default=5)
    url = args.questions_url or app_config.get('question_supply', 'url', default='')
    if url:
        timeout = app_config.get('question_supply', 'timeout_seconds', default=30.0)
        return HttpQuestionSupply(url, batch_size=batch_size, timeout=timeout)
    path = args.questions or app_config.get('question_supply', 'path', default='') or SAMPLE_QUESTIONS_PATH
    return JsonQuestionBank(path, batch_size=batch_size)


def print_controls():
    print("\n" + "="*60)
    print("GESTURE CONTROLS")
    print("="*60)
    print("  ☝  1 finger  - Choose A")
    print("  ✌  2 fingers - Choose B")
    print("     3 fingers - Choose C")
    print("     4 fingers - Choose D")
    print("  ✋ 5 fingers - Check answer / next question")
    print("  🙌 6 fingers (two hands) - More questions")
    print("\n  Hold still until the bar fills, then lower your hand.")
    print("  Keys 1-6 work too, Q quits.")
    print("="*60 + "\n")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="FINGERQUIZ - answer quiz questions by showing fingers to the webcam"
    )
    parser.add_argument('--camera', type=int, default=None, help='Camera device index (default: from config)')
    parser.add_argument('--questions', type=str, default=None, help='JSON question bank file')
    parser.add_argument('--questions-url', type=str, default=None, help='HTTP endpoint serving question batches')
    parser.add_argument('--batch-size', type=int, default=None, help='Questions per batch')
    parser.add_argument('--config', type=str, default=None, help='Path to config.json')
    parser.add_argument('--headless', action='store_true', help='No camera window (console only)')
    args = parser.parse_args(argv)

    if args.config:
        from fingerquiz.config.config_manager import Config
        Config(args.config)

    try:
        supply = build_supply(args, config)
        initial = supply.initial_batch()
    except SupplyFetchError as e:
        print(f"❌ Could not load questions: {e}")
        return 1

    feedback_queue = queue.Queue(maxsize=32)
    quiz = QuizStateMachine(
        initial,
        fetcher=QuestionFetcher(supply),
        feedback_sink=QueueFeedbackSink(feedback_queue),
    )

    show_camera = config.get('display', 'show_camera_window', default=True) and not args.headless
    frame_queue = queue.Queue(maxsize=2) if show_camera else None
    key_queue = queue.Queue() if show_camera else None
    visual = None
    if show_camera:
        from fingerquiz.utils.visual_feedback import VisualFeedback
        visual = VisualFeedback(config)

    app = GestureQuizApplication(
        MediaPipeLandmarkSource(config, camera_idx=args.camera),
        quiz,
        visual=visual,
        frame_queue=frame_queue,
        key_queue=key_queue,
        feedback_queue=feedback_queue,
    )
    print_controls()

    try:
        app.start()
    except SensorUnavailable as e:
        print(f"❌ Gesture mode unavailable: {e}")
        quiz.close()
        return 1

    try:
        if show_camera:
            # PyQt must own the main thread
            app_thread = threading.Thread(target=app.run, daemon=True)
            app_thread.start()
            from fingerquiz.gui.quiz_window import run_gui
            run_gui(config, frame_queue, key_queue)
            app.exit()
            app_thread.join(timeout=2.0)
        else:
            print("🖥️ Running headless (no camera window)")
            app.run()
    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")
        app.exit()

    return 0


if __name__ == "__main__":
    sys.exit(main())
