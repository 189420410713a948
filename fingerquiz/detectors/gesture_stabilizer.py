"""
Gesture Stabilizer

Turns the raw per-frame finger count (30-60 Hz, noisy) into rare, deliberate
gesture events. A value must be held for more than `dwell_frames`
consecutive frames, the previous acceptance must be older than
`cooldown_s`, and the value must be valid for the current quiz mode.

After an acceptance the match counter restarts at 0 and the accepted value is
latched until the hand changes, so one long hold produces exactly one event.
A gesture value (1..6) held to completion while the current mode does not
accept it is consumed the same way: it is latched without an event, so it
cannot fire later when the mode changes under a hand that never moved.

The core is the pure function `stabilizer_step`; `GestureStabilizer` owns a
StabilizerState and threads it through that function frame by frame.
"""

import math
import time
from dataclasses import dataclass, replace
from typing import AbstractSet, Optional, Tuple


DEFAULT_DWELL_FRAMES = 20
DEFAULT_COOLDOWN_S = 1.5

# Values that mean something in some quiz mode
GESTURE_VALUES = frozenset(range(1, 7))


@dataclass(frozen=True)
class GestureEvent:
    """An accepted, debounced gesture."""
    value: int
    timestamp: float


@dataclass(frozen=True)
class StabilizerState:
    current_candidate_value: int = 0
    consecutive_match_count: int = 0
    last_accepted_timestamp: float = -math.inf
    last_accepted_value: Optional[int] = None
    # True from an acceptance until a different raw value is seen
    awaiting_release: bool = False


def stabilizer_step(
    state: StabilizerState,
    sample: int,
    now: float,
    valid_values: AbstractSet[int],
    dwell_frames: int = DEFAULT_DWELL_FRAMES,
    cooldown_s: float = DEFAULT_COOLDOWN_S,
) -> Tuple[StabilizerState, Optional[GestureEvent]]:
    """
    Advance the stabilizer by one raw sample.

    Returns (new_state, event). `event` is None unless the sample was accepted.
    Never raises on odd input: out-of-range values are tracked for dwell but
    never emitted, and 0 is never a trigger.
    """
    sample = int(sample)

    if sample == state.current_candidate_value:
        state = replace(state, consecutive_match_count=state.consecutive_match_count + 1)
    else:
        state = replace(
            state,
            current_candidate_value=sample,
            consecutive_match_count=1,
            awaiting_release=False,
        )

    if state.consecutive_match_count <= dwell_frames:
        return state, None
    if now - state.last_accepted_timestamp <= cooldown_s:
        return state, None
    if sample == 0 or state.awaiting_release:
        return state, None
    if sample not in valid_values:
        if sample in GESTURE_VALUES:
            # completed hold the mode rejects: consume it without an event
            state = replace(state, consecutive_match_count=0, awaiting_release=True)
        return state, None

    state = replace(
        state,
        consecutive_match_count=0,
        last_accepted_timestamp=now,
        last_accepted_value=sample,
        awaiting_release=True,
    )
    return state, GestureEvent(value=sample, timestamp=now)


class GestureStabilizer:
    """
    Stateful wrapper around `stabilizer_step`.
    Created when gesture mode starts, reset on demand, dropped when it ends.
    """

    def __init__(self, dwell_frames: int = DEFAULT_DWELL_FRAMES, cooldown_s: float = DEFAULT_COOLDOWN_S):
        self.dwell_frames = int(dwell_frames)
        self.cooldown_s = float(cooldown_s)
        self._state = StabilizerState()
        self._valid_values: AbstractSet[int] = GESTURE_VALUES

    @classmethod
    def from_config(cls, config) -> 'GestureStabilizer':
        return cls(
            dwell_frames=config.get('stabilizer', 'dwell_frames', default=DEFAULT_DWELL_FRAMES),
            cooldown_s=config.get('stabilizer', 'cooldown_seconds', default=DEFAULT_COOLDOWN_S),
        )

    @property
    def state(self) -> StabilizerState:
        return self._state

    @property
    def progress(self) -> float:
        """
        How far the current candidate is towards acceptance (0..1).
        0 while the candidate is not valid for the mode seen in the last update.
        """
        candidate = self._state.current_candidate_value
        if candidate == 0 or self._state.awaiting_release or candidate not in self._valid_values:
            return 0.0
        return min(1.0, self._state.consecutive_match_count / float(self.dwell_frames + 1))

    def update(
        self,
        sample: int,
        valid_values: AbstractSet[int],
        now: Optional[float] = None,
    ) -> Optional[GestureEvent]:
        """Feed one raw finger count. Returns an event when a gesture is accepted."""
        if now is None:
            now = time.time()
        self._valid_values = frozenset(valid_values)
        self._state, event = stabilizer_step(
            self._state,
            sample,
            now,
            valid_values,
            dwell_frames=self.dwell_frames,
            cooldown_s=self.cooldown_s,
        )
        return event

    def reset(self):
        self._state = StabilizerState()
        self._valid_values = GESTURE_VALUES


__all__ = [
    'DEFAULT_DWELL_FRAMES',
    'DEFAULT_COOLDOWN_S',
    'GESTURE_VALUES',
    'GestureEvent',
    'StabilizerState',
    'stabilizer_step',
    'GestureStabilizer',
]
