"""
Data model for ride pattern mining and route synthesis.

Ride input (TrackPoint, RideSummary, RideRecord) is read-only. Everything
derived from it (key points, segments, areas, distributions, the profile
itself) is recomputed per call and held in frozen dataclasses so the same
profile can be shared between threads without copying.
"""

from dataclasses import dataclass, field, fields, asdict, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..config.logging_config import get_logger
from ..exceptions import InvalidCoordinatesError


logger = get_logger(__name__)

# [lon, lat] pairs, GeoJSON order
Coordinate = Tuple[float, float]

LOOP = 'loop'
OUT_BACK = 'out_back'
POINT_TO_POINT = 'point_to_point'
ROUTE_SHAPES = (LOOP, OUT_BACK, POINT_TO_POINT)

RECOVERY = 'recovery'
ENDURANCE = 'endurance'
INTERVALS = 'intervals'
HILLS = 'hills'
TRAINING_GOALS = (RECOVERY, ENDURANCE, INTERVALS, HILLS)


def validate_coordinate(latitude: float, longitude: float):
    """Raise InvalidCoordinatesError unless the pair is a real position."""
    if latitude is None or longitude is None:
        raise InvalidCoordinatesError("Latitude and longitude are required")
    if not -90 <= latitude <= 90:
        raise InvalidCoordinatesError(f"Latitude {latitude} out of range [-90, 90]")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinatesError(f"Longitude {longitude} out of range [-180, 180]")


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return datetime.fromisoformat(str(value).replace('Z', '+00:00'))


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Ride input
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrackPoint:
    """One recorded GPS fix."""
    latitude: float
    longitude: float
    elevation: Optional[float] = None
    timestamp: Optional[datetime] = None
    sequence: int = 0

    def __post_init__(self):
        validate_coordinate(self.latitude, self.longitude)

    @property
    def coordinate(self) -> Coordinate:
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class RideSummary:
    """Summary statistics of a ride. Both fields may be missing."""
    distance_km: Optional[float] = None
    elevation_gain_m: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RideSummary':
        if not data:
            return cls()
        distance = data.get('distance_km', data.get('distance'))
        elevation = data.get('elevation_gain_m', data.get('elevation_gain'))
        return cls(
            distance_km=float(distance) if distance is not None else None,
            elevation_gain_m=float(elevation) if elevation is not None else None,
        )


@dataclass(frozen=True)
class RideRecord:
    """A completed ride: ordered track points plus summary stats."""
    id: str
    track_points: Tuple[TrackPoint, ...] = ()
    summary: RideSummary = field(default_factory=RideSummary)
    recorded_at: Optional[datetime] = None

    @property
    def recorded_at_epoch_ms(self) -> int:
        if self.recorded_at is None:
            return 0
        return int(self.recorded_at.timestamp() * 1000)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RideRecord':
        """
        Build a ride from a loosely structured dictionary.

        Points with missing or out-of-range coordinates are skipped with a
        warning; they never abort the ride.

        Args:
            data: Dictionary with id, track_points, summary and recorded_at
                (uploaded_at is accepted as an alias)

        Returns:
            RideRecord instance
        """
        ride_id = str(data.get('id', ''))
        points = []
        skipped = 0
        for raw in data.get('track_points') or []:
            try:
                points.append(TrackPoint(
                    latitude=raw.get('latitude', raw.get('lat')),
                    longitude=raw.get('longitude', raw.get('lon')),
                    elevation=raw.get('elevation'),
                    timestamp=_parse_timestamp(raw.get('timestamp')),
                    sequence=len(points),
                ))
            except (InvalidCoordinatesError, TypeError, ValueError):
                skipped += 1

        if skipped:
            logger.warning(f"Ride {ride_id}: skipped {skipped} malformed track points")

        recorded_at = data.get('recorded_at', data.get('uploaded_at'))
        try:
            recorded_at = _parse_timestamp(recorded_at)
        except ValueError:
            logger.warning(f"Ride {ride_id}: unparseable timestamp {recorded_at!r}")
            recorded_at = None

        return cls(
            id=ride_id,
            track_points=tuple(points),
            summary=RideSummary.from_dict(data.get('summary')),
            recorded_at=recorded_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'track_points': [
                {
                    'latitude': p.latitude,
                    'longitude': p.longitude,
                    'elevation': p.elevation,
                    'timestamp': p.timestamp.isoformat() if p.timestamp else None,
                }
                for p in self.track_points
            ],
            'summary': {
                'distance_km': self.summary.distance_km,
                'elevation_gain_m': self.summary.elevation_gain_m,
            },
            'recorded_at': self.recorded_at.isoformat() if self.recorded_at else None,
        }


# ---------------------------------------------------------------------------
# Derived entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class KeyPoint:
    """A track point kept because the path turns there."""
    latitude: float
    longitude: float
    confidence: float = 1.0
    sequence: int = 0

    @property
    def coordinate(self) -> Coordinate:
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class RideLocation:
    """A sampled location from one ride, tagged start / junction / end."""
    lat: float
    lon: float
    kind: str = 'junction'
    confidence: float = 1.0


@dataclass(frozen=True)
class RouteSegment:
    """A ~2 km chunk of a ride's path."""
    coordinates: Tuple[Coordinate, ...]
    start_point: Coordinate
    end_point: Coordinate
    distance_km: float
    bearing_deg: float
    source_ride_id: str
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class SegmentDatabaseEntry:
    """A segment merged across rides, with usage bookkeeping."""
    coordinates: Tuple[Coordinate, ...]
    start_point: Coordinate
    end_point: Coordinate
    distance_km: float
    bearing_deg: float
    source_ride_id: str
    timestamp: Optional[datetime] = None
    usage_count: int = 1
    last_used_epoch_ms: int = 0
    quality: str = 'proven'

    @property
    def rank_score(self) -> float:
        return self.usage_count * 0.7 + (self.last_used_epoch_ms / 1e9) * 0.3


@dataclass(frozen=True)
class FrequentArea:
    center: Coordinate
    frequency: int
    confidence: float


@dataclass(frozen=True)
class DirectionPreference:
    direction: str
    bearing_deg: float
    frequency: int
    preference: float


@dataclass(frozen=True)
class Percentiles:
    p25: float
    p50: float
    p75: float
    p90: float


@dataclass(frozen=True)
class DistanceRange:
    """A fixed distance bucket and how many rides fell into it."""
    name: str
    min_km: float
    max_km: float
    count: int = 0


@dataclass(frozen=True)
class DistanceDistribution:
    mean: float
    median: float
    percentiles: Percentiles
    range_min: float
    range_max: float
    most_common_range: DistanceRange


@dataclass(frozen=True)
class DistanceShares:
    """Fraction of rides per coarse distance class."""
    short: float
    medium: float
    long: float
    very_long: float


@dataclass(frozen=True)
class ElevationTolerance:
    min_m: float
    max_m: float
    mean_m: Optional[float]
    preferred_m: float
    tolerance_m: float
    label: str


@dataclass(frozen=True)
class RouteTemplate:
    """Shape summary of a single historical ride."""
    id: str
    distance_km: float
    elevation_gain_m: float
    key_points: Tuple[Coordinate, ...]
    start_area: Coordinate
    pattern: str
    segments: Tuple[RouteSegment, ...]
    confidence: float
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class RidingPatternProfile:
    """Everything learned about a rider from their history."""
    preferred_distances: DistanceDistribution
    distance_distribution: DistanceShares
    elevation_tolerance: ElevationTolerance
    frequent_areas: Tuple[FrequentArea, ...] = ()
    preferred_directions: Tuple[DirectionPreference, ...] = ()
    route_segments: Tuple[SegmentDatabaseEntry, ...] = ()
    route_templates: Tuple[RouteTemplate, ...] = ()
    average_speed_kmh: float = 23.0
    time_preferences: Tuple[Tuple[str, Any], ...] = ()

    @property
    def elevation_preference(self) -> str:
        return self.elevation_tolerance.label

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['time_preferences'] = dict(self.time_preferences)
        data['elevation_preference'] = self.elevation_preference
        return _to_jsonable(data)


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RouteRequest:
    """
    A route generation request.

    start_location is [lon, lat]. target_distance_km, when given, replaces
    the time-based baseline distance.
    """
    start_location: Coordinate
    time_available_minutes: float = 60.0
    training_goal: str = ENDURANCE
    route_shape: str = LOOP
    user_id: Optional[str] = None
    target_distance_km: Optional[float] = None


@dataclass(frozen=True)
class RouteCandidate:
    name: str
    coordinates: Tuple[Coordinate, ...]
    distance_km: float
    elevation_gain_m: float
    elevation_loss_m: float
    difficulty: str
    pattern: str
    confidence: float
    training_goal: str
    description: str = ''
    source: str = 'geometry'
    wind_factor: float = 0.8
    elevation_profile: Tuple[Tuple[Coordinate, float], ...] = ()

    def with_updates(self, **changes) -> 'RouteCandidate':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return _to_jsonable(asdict(self))


@dataclass(frozen=True)
class ScoredRoute(RouteCandidate):
    score: float = 0.0

    @classmethod
    def from_candidate(cls, candidate: RouteCandidate, score: float) -> 'ScoredRoute':
        values = {f.name: getattr(candidate, f.name) for f in fields(RouteCandidate)}
        return cls(score=score, **values)


def coordinates_from_points(points: List[TrackPoint]) -> Tuple[Coordinate, ...]:
    return tuple(p.coordinate for p in points)
