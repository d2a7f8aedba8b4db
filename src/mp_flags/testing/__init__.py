"""Testing support – fakes and pytest fixtures.

Import in your ``conftest.py``::

    pytest_plugins = ["mp_flags.testing.fixtures"]
"""

from mp_flags.testing.fakes import RecordingFlagLogger, ScriptedFeatureFlagSource, SuffixInterceptor

__all__ = [
    "RecordingFlagLogger",
    "ScriptedFeatureFlagSource",
    "SuffixInterceptor",
]
