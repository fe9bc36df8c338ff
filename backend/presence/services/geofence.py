"""Geofence verification service."""
from dataclasses import dataclass
import math

from presence.config import VerificationSettings
from presence.utils.errors import ValidationError
from presence.utils.validators import Validator

EARTH_RADIUS_METERS = 6371000

# Upper bounds (meters) of the reported accuracy grades
HIGH_ACCURACY_METERS = 10
MEDIUM_ACCURACY_METERS = 50


@dataclass(frozen=True)
class GeofenceResult:
    """Outcome of a geofence check."""
    distance_meters: float
    within_radius: bool
    radius_meters: float

    def to_dict(self):
        return {
            'distance_meters': round(self.distance_meters, 2),
            'within_radius': self.within_radius,
            'radius_meters': self.radius_meters
        }


class GeofenceValidator:
    """Checks a claimed position against a circular venue geofence."""

    def __init__(self, settings: VerificationSettings):
        self.settings = settings

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Great-circle distance between two GPS points in meters."""
        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)

        a = (math.sin(delta_lat / 2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon / 2) ** 2)
        # Rounding can push a a hair past 1 for antipodal points
        a = min(1.0, max(0.0, a))
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_METERS * c

    @staticmethod
    def accuracy_level(accuracy_meters: float) -> str:
        """Grade a reported GPS accuracy radius."""
        if accuracy_meters <= HIGH_ACCURACY_METERS:
            return 'high'
        if accuracy_meters <= MEDIUM_ACCURACY_METERS:
            return 'medium'
        return 'low'

    def resolve_radius(self, radius_meters=None) -> float:
        """Session radius, falling back to the configured default."""
        if radius_meters is None:
            return float(self.settings.default_radius_meters)
        radius = Validator.as_finite_float(radius_meters)
        if radius is None or radius <= 0:
            raise ValidationError("Geofence radius must be a positive number")
        return radius

    def validate(
        self,
        user_lat: float,
        user_lng: float,
        venue_lat: float,
        venue_lng: float,
        radius_meters: float = None
    ) -> GeofenceResult:
        """Verify if the user is within the venue radius."""
        user_lat, user_lng = Validator.validate_coordinates(user_lat, user_lng)
        venue_lat, venue_lng = Validator.validate_coordinates(venue_lat, venue_lng)
        radius = self.resolve_radius(radius_meters)

        distance = self.calculate_distance(user_lat, user_lng, venue_lat, venue_lng)

        return GeofenceResult(
            distance_meters=distance,
            within_radius=distance <= radius,
            radius_meters=radius
        )
