#!/usr/bin/env python3
"""
quiz_config.py - CLI tool to inspect and tune FINGERQUIZ settings in config.json

Usage:
    fingerquiz-config --status
    fingerquiz-config --set stabilizer.dwell_frames=15 --set quiz.batch_size=8
    fingerquiz-config --config /path/to/config.json --set display.flip_horizontal=false

Values are parsed as JSON (numbers, true/false, quoted strings); anything
that is not valid JSON is stored as a plain string. Existing descriptions
in [value, description] entries are kept.
"""

import argparse
import json
import sys
from typing import Any, List, Optional, Tuple

from fingerquiz.config.config_manager import Config

STATUS_SECTIONS = ('camera', 'performance', 'finger_count', 'stabilizer', 'quiz', 'question_supply', 'display')


def parse_assignment(text: str) -> Tuple[Tuple[str, ...], Any]:
    """'section.key=value' -> (('section', 'key'), value)."""
    path, sep, raw = text.partition('=')
    keys = tuple(k for k in path.strip().split('.') if k)
    if not sep or not keys:
        raise ValueError(f"Expected SECTION.KEY=VALUE, got {text!r}")
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return keys, value


def print_status(cfg: Config):
    print(f"\nConfiguration: {cfg.path}\n")
    for section in STATUS_SECTIONS:
        print(f"[{section}]")
        for key in cfg.data.get(section, {}):
            value, description = cfg.get_with_description(section, key)
            suffix = f"  # {description}" if description else ""
            print(f"  {key} = {value!r}{suffix}")
        print()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Inspect or change FINGERQUIZ settings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
fingerquiz-config --status                          # Show current values
fingerquiz-config --set stabilizer.dwell_frames=15  # Hold gestures for fewer frames
fingerquiz-config --set question_supply.url='"http://localhost:8000/questions"'
        """
    )
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Path to config.json (default: bundled config)')
    parser.add_argument('--set', '-s', dest='assignments', action='append', default=[],
                        metavar='SECTION.KEY=VALUE', help='Change a setting (repeatable)')
    parser.add_argument('--status', action='store_true', help='Show current values')
    args = parser.parse_args(argv)

    cfg = Config(args.config) if args.config else Config()

    try:
        changes = [parse_assignment(a) for a in args.assignments]
    except ValueError as e:
        print(f"❌ {e}")
        return 2

    for keys, value in changes:
        old = cfg.get(*keys)
        cfg.set(*keys, value=value)
        print(f"✓ {'.'.join(keys)}: {old!r} -> {value!r}")
    if changes:
        cfg.save()

    if args.status or not changes:
        print_status(cfg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
