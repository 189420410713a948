"""
Action Dispatcher for FINGERQUIZ

Maps explicit UI input (keyboard keys, on-screen buttons) onto the same
commands that finger gestures produce. It decouples the input surface from
the quiz: the input map lives in config.json under "input_map", so keys can
be rebound without code changes.

Entry formats:
    {"type": "gesture", "value": 1..6}     same effect as holding up N fingers
    {"type": "function", "name": "exit"}   call a method on the application
"""

from typing import Any, Dict, Optional


class QuizActionDispatcher:
    def __init__(self, target):
        """
        Args:
            target: object exposing `apply_gesture(value, source)` plus any
                    methods named by "function" entries (e.g. `exit`).
        """
        self.target = target
        self.key_map: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def normalize_key(key) -> str:
        return str(key).strip().lower()

    def load_map(self, input_map: Optional[Dict[str, Dict[str, Any]]]):
        """Build the key lookup from config; malformed entries are skipped."""
        self.key_map.clear()
        if not input_map:
            return

        for key, entry in input_map.items():
            if not isinstance(entry, dict):
                continue
            entry_type = entry.get("type")
            if entry_type == "gesture" and isinstance(entry.get("value"), int):
                self.key_map[self.normalize_key(key)] = entry
            elif entry_type == "function" and entry.get("name"):
                self.key_map[self.normalize_key(key)] = entry
            else:
                print(f"⚠ Ignoring input map entry {key!r}: {entry}")

        print(f"✓ Action Dispatcher loaded: {len(self.key_map)} key bindings.")

    def dispatch(self, key) -> Any:
        """Run the action bound to `key`. Returns the target's result or None."""
        entry = self.key_map.get(self.normalize_key(key))
        if entry is None:
            return None

        if entry["type"] == "gesture":
            return self.target.apply_gesture(entry["value"], source="key")

        func = getattr(self.target, entry["name"], None)
        if not callable(func):
            print(f"⚠ Unknown function: {entry['name']}")
            return None
        return func()


__all__ = ['QuizActionDispatcher']
