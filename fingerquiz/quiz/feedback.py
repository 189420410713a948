"""
Feedback signals for the presentation layer (sound, flash, animation).

The quiz state machine fires these and moves on; sinks must not block.
"""

import queue
import time
from enum import Enum


class FeedbackKind(str, Enum):
    SELECT = "select"                  # neutral click: option chosen, next question
    CORRECT = "correct"                # submitted answer was right
    INCORRECT = "incorrect"            # submitted answer was wrong
    ROUND_COMPLETE = "round_complete"  # summary reached


class FeedbackSink:
    """Interface: `signal(kind)` is fire-and-forget."""

    def signal(self, kind: FeedbackKind):
        pass


class QueueFeedbackSink(FeedbackSink):
    """Posts (kind, timestamp) to a queue read by the UI thread. Drops when full."""

    def __init__(self, feedback_queue: "queue.Queue" = None):
        self.queue = feedback_queue if feedback_queue is not None else queue.Queue(maxsize=32)

    def signal(self, kind: FeedbackKind):
        try:
            self.queue.put_nowait((kind, time.time()))
        except queue.Full:
            pass


__all__ = ['FeedbackKind', 'FeedbackSink', 'QueueFeedbackSink']
