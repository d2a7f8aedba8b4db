"""Testing fakes – in-memory doubles for flag sources, loggers and interceptors."""
from mp_flags.testing.fakes.feature_flags import (
    RecordingFlagLogger,
    ScriptedFeatureFlagSource,
    SuffixInterceptor,
)

__all__ = [
    "RecordingFlagLogger",
    "ScriptedFeatureFlagSource",
    "SuffixInterceptor",
]
