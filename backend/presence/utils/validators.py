"""Validation utilities for request payloads."""
import math
from numbers import Real
from typing import Any, Dict, List, Optional, Tuple

from presence.utils.errors import ValidationError

DESCRIPTOR_LENGTH = 128

# Largest primary key the database integer column holds
MAX_ID = 2 ** 63 - 1


class Validator:
    """Validation helper class."""

    @staticmethod
    def is_number(value: Any) -> bool:
        """Real numbers only; booleans are not coordinates or components."""
        return isinstance(value, Real) and not isinstance(value, bool)

    @staticmethod
    def as_finite_float(value: Any) -> Optional[float]:
        """Float value of a real number, or None if it is not one or not finite."""
        if not Validator.is_number(value):
            return None
        try:
            number = float(value)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None

    @staticmethod
    def is_valid_id(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and 0 < value <= MAX_ID

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> None:
        """Raise if any required field is missing."""
        missing = [field for field in required_fields if data.get(field) is None]
        if missing:
            raise ValidationError(f"Missing required field: {', '.join(missing)}")

    @staticmethod
    def validate_coordinates(latitude: Any, longitude: Any) -> Tuple[float, float]:
        """Return (lat, lng) as floats or raise ValidationError."""
        latitude = Validator.as_finite_float(latitude)
        longitude = Validator.as_finite_float(longitude)
        for name, value in (('latitude', latitude), ('longitude', longitude)):
            if value is None:
                raise ValidationError(f"{name.title()} must be a finite number")
        if not -90 <= latitude <= 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if not -180 <= longitude <= 180:
            raise ValidationError("Longitude must be between -180 and 180")
        return latitude, longitude

    @staticmethod
    def validate_accuracy(accuracy: Any) -> float:
        """Reported GPS accuracy radius in meters."""
        value = Validator.as_finite_float(accuracy)
        if value is None or value < 0:
            raise ValidationError("Location accuracy must be a non-negative number")
        return value

    @staticmethod
    def validate_descriptor(descriptor: Any) -> List[float]:
        """Return the descriptor as a list of floats or raise ValidationError.

        A descriptor is exactly 128 finite numbers, each in [-1, 1]. Nothing
        is truncated or clamped.
        """
        if not isinstance(descriptor, (list, tuple)):
            raise ValidationError("Face descriptor must be an array")
        if len(descriptor) != DESCRIPTOR_LENGTH:
            raise ValidationError(
                f"Face descriptor must have {DESCRIPTOR_LENGTH} values, got {len(descriptor)}"
            )
        values = []
        for index, value in enumerate(descriptor):
            value = Validator.as_finite_float(value)
            if value is None:
                raise ValidationError(f"Face descriptor component {index} is not a finite number")
            if value < -1 or value > 1:
                raise ValidationError(f"Face descriptor component {index} is outside [-1, 1]")
            values.append(value)
        return values

    @staticmethod
    def validate_reason(reason: Optional[str], min_length: int = 10, max_length: int = 500) -> str:
        """Override reasons are free text of bounded length."""
        if not isinstance(reason, str) or not reason.strip():
            raise ValidationError("Override reason is required")
        reason = reason.strip()
        if len(reason) < min_length:
            raise ValidationError(f"Override reason must be at least {min_length} characters")
        if len(reason) > max_length:
            raise ValidationError(f"Override reason must be at most {max_length} characters")
        return reason
