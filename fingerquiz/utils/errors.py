"""
Error taxonomy for FINGERQUIZ.

SensorUnavailable ends the session. TransientFrameError and SupplyFetchError
are absorbed where they happen (frame loop and state machine respectively).
InvalidSequenceState marks a broken invariant and is logged by the loop.
"""


class FingerQuizError(Exception):
    """Base class for all FINGERQUIZ errors."""


class SensorUnavailable(FingerQuizError, RuntimeError):
    """Camera or hand landmark model could not be initialized."""


class TransientFrameError(FingerQuizError):
    """A single frame could not be read or analysed."""


class SupplyFetchError(FingerQuizError):
    """The question supply failed to return a usable batch."""


class InvalidSequenceState(FingerQuizError):
    """Transition requested on an empty or closed quiz session."""


__all__ = [
    'FingerQuizError',
    'SensorUnavailable',
    'TransientFrameError',
    'SupplyFetchError',
    'InvalidSequenceState',
]
