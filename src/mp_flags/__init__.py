"""
mp_flags – feature flag resolution for asyncio services.

Import path convention::

    from mp_flags.application.feature_flags import FeatureFlagEngine, MutableFlagSpec
    from mp_flags.kernel.types import ABSENT
    from mp_flags.config import FeatureFlagSettings
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
