"""Application feature flags – specs, ports, resolution engine and sources."""
from mp_flags.application.feature_flags.engine import FeatureFlagEngine
from mp_flags.application.feature_flags.env import EnvFeatureFlagSource
from mp_flags.application.feature_flags.in_memory import InMemoryFeatureFlagSource
from mp_flags.application.feature_flags.interceptor import FeatureFlagInterceptor, FunctionInterceptor
from mp_flags.application.feature_flags.observable import ObservableDict
from mp_flags.application.feature_flags.source import (
    DEFAULT_SOURCE,
    DefaultValueSource,
    FeatureFlagMutableSource,
    FeatureFlagSource,
    ResolvedValue,
)
from mp_flags.application.feature_flags.space import (
    FeatureFlagSpace,
    ImmutableFlagValue,
    MutableFlagValue,
    StreamingFlagValue,
)
from mp_flags.application.feature_flags.spec import (
    FlagKind,
    FlagSpec,
    ImmutableFlagSpec,
    MutableFlagSpec,
    StartPolicy,
    StreamingFlagSpec,
)
from mp_flags.application.feature_flags.stream import FlagStream, FlagSubscription

__all__ = [
    "DEFAULT_SOURCE",
    "DefaultValueSource",
    "EnvFeatureFlagSource",
    "FeatureFlagEngine",
    "FeatureFlagInterceptor",
    "FeatureFlagMutableSource",
    "FeatureFlagSource",
    "FeatureFlagSpace",
    "FlagKind",
    "FlagSpec",
    "FlagStream",
    "FlagSubscription",
    "FunctionInterceptor",
    "ImmutableFlagSpec",
    "ImmutableFlagValue",
    "InMemoryFeatureFlagSource",
    "MutableFlagSpec",
    "MutableFlagValue",
    "ObservableDict",
    "ResolvedValue",
    "StartPolicy",
    "StreamingFlagSpec",
    "StreamingFlagValue",
]
