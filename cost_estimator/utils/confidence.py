"""Confidence score normalization.

Oracle answers report confidence in several shapes: 0-1 floats, 0-100
percentages, numeric strings ("0.8", "85%") and labels ("high"). Everything
is normalized to a float in [0, 1] before a resolver compares it against a
threshold.
"""

from typing import Any, Optional

from cost_estimator.utils.logger import get_logger

CONFIDENCE_LABELS = {
    "very high": 0.95,
    "high": 0.85,
    "medium": 0.6,
    "moderate": 0.6,
    "low": 0.35,
    "very low": 0.15,
}


def normalize_confidence(
    raw_confidence: Any,
    default: float = 0.5,
    context: str = "",
    correlation_id: Optional[str] = None,
) -> float:
    """Validate and normalize a confidence value from an oracle response.

    Args:
        raw_confidence: Confidence value from the oracle (any type)
        default: Value returned when raw_confidence cannot be interpreted
        context: What the confidence belongs to, for logging
        correlation_id: Correlation ID for logging

    Returns:
        Confidence in range 0.0-1.0. Values above 1 are read as percentages
        and out-of-range values are clamped.
    """
    logger = get_logger(
        correlation_id=correlation_id,
        phase="normalization",
        component="confidence",
    )

    try:
        if isinstance(raw_confidence, bool):
            # bool is subclass of int, handle explicitly
            raise ValueError("Boolean type not valid for confidence")

        if isinstance(raw_confidence, (int, float)):
            confidence = float(raw_confidence)
        elif isinstance(raw_confidence, str):
            text = raw_confidence.strip().lower()
            if text in CONFIDENCE_LABELS:
                return CONFIDENCE_LABELS[text]
            if text.endswith("%"):
                confidence = float(text[:-1]) / 100
            else:
                confidence = float(text)
        else:
            raise ValueError(f"Unsupported type: {type(raw_confidence)}")

    except (ValueError, TypeError) as e:
        logger.warning(
            "Invalid confidence value, using default",
            context=context,
            raw_value=str(raw_confidence)[:50],
            default=default,
            error=str(e),
        )
        return default

    if confidence != confidence:  # NaN
        logger.warning("NaN confidence, using default", context=context)
        return default

    if 1.0 < confidence <= 100.0:
        confidence = confidence / 100

    if confidence < 0.0 or confidence > 1.0:
        logger.warning(
            "Confidence out of range, clamping",
            context=context,
            confidence=confidence,
        )
    return clamp_confidence(confidence)


def clamp_confidence(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
