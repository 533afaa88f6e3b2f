"""
Segment Extractor / Segment Database - Reusable path pieces from past rides.

Rides are chopped into roughly 2 km chunks. Chunks from different rides that
start and end in the same places and head the same way are merged into one
database entry that remembers how often and how recently it was ridden.
"""

from typing import Iterable, List

from ...config.logging_config import get_logger, log_function_entry, log_function_exit
from ..geo_math import distance_km, bearing_deg, bearing_difference, haversine_distance
from ..models import RideRecord, RouteSegment, SegmentDatabaseEntry


logger = get_logger(__name__)

SEGMENT_LENGTH_KM = 2.0
MIN_RIDE_POINTS = 10
MIN_SEGMENT_POINTS = 5

MERGE_ENDPOINT_TOLERANCE_KM = 0.5
MERGE_BEARING_TOLERANCE_DEG = 30


class SegmentExtractor:
    """Chops a ride into fixed-length segments."""

    def __init__(self, segment_length_km: float = SEGMENT_LENGTH_KM):
        self.segment_length_km = segment_length_km

    def extract(self, ride: RideRecord) -> List[RouteSegment]:
        """
        Split a ride into segments of about segment_length_km.

        A segment closes once its accumulated length reaches the target or
        the ride ends; the closing point also opens the next segment.
        Segments with fewer than 5 points are dropped, the final partial
        one included. Rides with fewer than 10 points yield nothing.

        Args:
            ride: Ride to segment

        Returns:
            Segments in ride order
        """
        points = ride.track_points
        if len(points) < MIN_RIDE_POINTS:
            return []

        segments = []
        current = [points[0]]
        accumulated_km = 0.0

        for i in range(1, len(points)):
            prev = points[i - 1]
            curr = points[i]

            accumulated_km += haversine_distance(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
            current.append(curr)

            if accumulated_km >= self.segment_length_km or i == len(points) - 1:
                if len(current) >= MIN_SEGMENT_POINTS:
                    coordinates = tuple(p.coordinate for p in current)
                    segments.append(RouteSegment(
                        coordinates=coordinates,
                        start_point=coordinates[0],
                        end_point=coordinates[-1],
                        distance_km=accumulated_km,
                        bearing_deg=bearing_deg(coordinates[0], coordinates[-1]),
                        source_ride_id=ride.id,
                        timestamp=ride.recorded_at,
                    ))

                current = [curr]
                accumulated_km = 0.0

        return segments


def segments_match(a, b) -> bool:
    """
    Two segments are the same piece of road when both endpoints lie within
    0.5 km of each other and their bearings differ by less than 30 degrees.
    """
    if distance_km(a.start_point, b.start_point) >= MERGE_ENDPOINT_TOLERANCE_KM:
        return False
    if distance_km(a.end_point, b.end_point) >= MERGE_ENDPOINT_TOLERANCE_KM:
        return False
    return bearing_difference(a.bearing_deg, b.bearing_deg) < MERGE_BEARING_TOLERANCE_DEG


def _epoch_ms(segment: RouteSegment) -> int:
    if segment.timestamp is None:
        return 0
    return int(segment.timestamp.timestamp() * 1000)


class SegmentDatabase:
    """Deduplicated, ranked collection of segments across rides."""

    def __init__(self):
        self._entries: List[SegmentDatabaseEntry] = []

    def add(self, segment: RouteSegment):
        """
        Merge a segment into the first matching entry, or store it as new.

        Matching scans every entry, so building the database is
        O(segments x entries).
        """
        for index, entry in enumerate(self._entries):
            if not segments_match(segment, entry):
                continue

            coordinates = entry.coordinates
            if len(segment.coordinates) > len(coordinates):
                coordinates = segment.coordinates

            self._entries[index] = SegmentDatabaseEntry(
                coordinates=coordinates,
                start_point=entry.start_point,
                end_point=entry.end_point,
                distance_km=entry.distance_km,
                bearing_deg=entry.bearing_deg,
                source_ride_id=entry.source_ride_id,
                timestamp=entry.timestamp,
                usage_count=entry.usage_count + 1,
                last_used_epoch_ms=max(entry.last_used_epoch_ms, _epoch_ms(segment)),
                quality=entry.quality,
            )
            return

        self._entries.append(SegmentDatabaseEntry(
            coordinates=segment.coordinates,
            start_point=segment.start_point,
            end_point=segment.end_point,
            distance_km=segment.distance_km,
            bearing_deg=segment.bearing_deg,
            source_ride_id=segment.source_ride_id,
            timestamp=segment.timestamp,
            usage_count=1,
            last_used_epoch_ms=_epoch_ms(segment),
        ))

    def ranked(self) -> List[SegmentDatabaseEntry]:
        """Entries by 0.7 x usage + 0.3 x recency, best first."""
        return sorted(self._entries, key=lambda entry: entry.rank_score, reverse=True)

    def __len__(self) -> int:
        return len(self._entries)


def build_segment_database(rides: Iterable[RideRecord],
                           extractor: SegmentExtractor = None) -> List[SegmentDatabaseEntry]:
    """
    Extract segments from every ride and merge them into a ranked database.

    Args:
        rides: Historical rides
        extractor: Segment extractor (default 2 km chunks)

    Returns:
        Ranked database entries
    """
    log_function_entry(logger, "build_segment_database")

    extractor = extractor or SegmentExtractor()
    database = SegmentDatabase()
    segment_count = 0

    for ride in rides:
        for segment in extractor.extract(ride):
            if segment.coordinates:
                database.add(segment)
                segment_count += 1

    logger.debug(f"Merged {segment_count} segments into {len(database)} entries")
    entries = database.ranked()
    log_function_exit(logger, "build_segment_database", entries)
    return entries
