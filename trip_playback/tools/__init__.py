"""Command line helpers for inspecting and replaying recorded trips."""
