"""
Line Balancing - Feature Flags System
=====================================

Runtime switches for the line balancing engine.

The batch overhead has two competing models (additive setup/transport/efficiency
loss vs. multiplicative efficiency gain). The active one is selected here and
can be overridden per request through ``OverheadConfig.batch_model``.

Usage:
    from linebalancer.feature_flags import FeatureFlags, BatchImpactModel

    if FeatureFlags.get_batch_model() == BatchImpactModel.EFFICIENCY_GAIN:
        ...

Environment variables (a local .env file is also read):
    LINEBAL_BATCH_MODEL=efficiency_gain
    LINEBAL_ENABLE_CACHE=false
    LINEBAL_CACHE_SIZE=256
"""

from __future__ import annotations

import os
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Dict, Any, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENGINE ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class BatchImpactModel(str, Enum):
    """
    Batch overhead models.

    ADDITIVE: per-unit setup + transport + processing-efficiency loss
    EFFICIENCY_GAIN: work-content reduction by a percentage + setup spread per unit
    """
    ADDITIVE = "additive"
    EFFICIENCY_GAIN = "efficiency_gain"


# ═══════════════════════════════════════════════════════════════════════════════
# FEATURE FLAGS CLASS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class FeatureFlagsConfig:
    """
    Feature flag configuration.

    Defaults reproduce the shared calculation library (additive batch model).
    """
    batch_model: BatchImpactModel = BatchImpactModel.ADDITIVE

    # Result memoization keyed on the full request snapshot
    enable_result_cache: bool = True
    result_cache_size: int = 128


class FeatureFlags:
    """
    Singleton holding the active feature flags.

    Loads from environment variables on first access.

    Usage:
        model = FeatureFlags.get_batch_model()

        if FeatureFlags.is_enabled("result_cache"):
            ...

        FeatureFlags.set_override(batch_model="efficiency_gain")
        FeatureFlags.reset()
    """

    _instance: Optional[FeatureFlagsConfig] = None

    @classmethod
    def _load_from_env(cls) -> FeatureFlagsConfig:
        """Load configuration from environment variables."""
        load_dotenv()
        config = FeatureFlagsConfig()

        value = os.environ.get("LINEBAL_BATCH_MODEL")
        if value:
            try:
                config.batch_model = BatchImpactModel(value.lower())
                logger.info(f"Feature flag batch_model = {value}")
            except ValueError:
                logger.warning(f"Invalid value for LINEBAL_BATCH_MODEL: {value}")

        value = os.environ.get("LINEBAL_ENABLE_CACHE")
        if value:
            config.enable_result_cache = value.lower() in ("true", "1", "yes")

        value = os.environ.get("LINEBAL_CACHE_SIZE")
        if value:
            try:
                size = int(value)
                if size <= 0:
                    raise ValueError(value)
                config.result_cache_size = size
            except ValueError:
                logger.warning(f"Invalid value for LINEBAL_CACHE_SIZE: {value}")

        return config

    @classmethod
    def get_config(cls) -> FeatureFlagsConfig:
        """Current configuration."""
        if cls._instance is None:
            cls._instance = cls._load_from_env()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the loaded config so the next access reloads it."""
        cls._instance = None

    @classmethod
    def get_batch_model(cls) -> BatchImpactModel:
        return cls.get_config().batch_model

    @classmethod
    def is_enabled(cls, feature: str) -> bool:
        """
        Check whether a feature is active.

        Args:
            feature: Feature name (result_cache)
        """
        config = cls.get_config()
        feature_map = {
            "result_cache": config.enable_result_cache,
        }
        return feature_map.get(feature, False)

    @classmethod
    def set_override(cls, **kwargs: Any) -> None:
        """
        Override flags at runtime (tests, what-if runs).

        Unknown names and invalid values are logged and skipped.
        """
        config = cls.get_config()
        for name, value in kwargs.items():
            if name == "batch_model":
                try:
                    config.batch_model = BatchImpactModel(value)
                except ValueError:
                    logger.warning(f"Invalid value {value} for batch_model")
            elif name == "enable_result_cache":
                config.enable_result_cache = bool(value)
            elif name == "result_cache_size":
                config.result_cache_size = max(1, int(value))
            else:
                logger.warning(f"Unknown feature flag: {name}")

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Export the configuration as a dict."""
        config = cls.get_config()
        return {
            "batch_model": config.batch_model.value,
            "features": {
                "result_cache": config.enable_result_cache,
            },
            "result_cache_size": config.result_cache_size,
        }
