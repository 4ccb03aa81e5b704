"""Input validation and smart-add normalization."""

from src.validation.normalizer import (
    CATEGORY_ICONS,
    DEFAULT_CATEGORY,
    DEFAULT_COLOR,
    NormalizationError,
    RawInput,
    SubscriptionValidationError,
    icon_for_category,
    normalize,
    normalize_changes,
)

__all__ = [
    "CATEGORY_ICONS",
    "DEFAULT_CATEGORY",
    "DEFAULT_COLOR",
    "NormalizationError",
    "RawInput",
    "SubscriptionValidationError",
    "icon_for_category",
    "normalize",
    "normalize_changes",
]
