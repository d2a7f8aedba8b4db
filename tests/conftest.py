"""Shared fixtures for the mp-flags test suite."""

from __future__ import annotations

from mp_flags.testing.fixtures import memory_source, recording_logger, scripted_source  # noqa: F401
