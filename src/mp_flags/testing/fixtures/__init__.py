"""Testing fixtures – pytest fixtures for flag test doubles.

Register in ``conftest.py``::

    pytest_plugins = ["mp_flags.testing.fixtures"]
"""
from mp_flags.testing.fixtures.feature_flags import memory_source, recording_logger, scripted_source

__all__ = ["memory_source", "recording_logger", "scripted_source"]
