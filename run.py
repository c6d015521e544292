#!/usr/bin/env python3
"""Convenience runner for the trip replay tool.

Usage:
    python run.py trip_events.json [--planned-route route.json] [--step-seconds 30]
"""
from trip_playback.tools.replay_trip import main

if __name__ == "__main__":
    raise SystemExit(main())
