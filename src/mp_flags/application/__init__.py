"""Application – flag resolution building blocks (framework-agnostic)."""

from mp_flags.application.feature_flags import (
    DEFAULT_SOURCE,
    FeatureFlagEngine,
    FeatureFlagInterceptor,
    FeatureFlagMutableSource,
    FeatureFlagSource,
    FeatureFlagSpace,
    FlagStream,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StreamingFlagSpec,
)

__all__ = [
    "DEFAULT_SOURCE",
    "FeatureFlagEngine",
    "FeatureFlagInterceptor",
    "FeatureFlagMutableSource",
    "FeatureFlagSource",
    "FeatureFlagSpace",
    "FlagStream",
    "ImmutableFlagSpec",
    "MutableFlagSpec",
    "StreamingFlagSpec",
]
