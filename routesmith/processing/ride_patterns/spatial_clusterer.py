"""
Spatial Clusterer - Finds the areas a rider keeps coming back to.

Samples are grouped in a single greedy pass: each sample joins the oldest
cluster whose running centroid lies within the tolerance, otherwise it
starts a new cluster. Membership therefore depends on input order; feeding
the same samples in another order can produce different clusters.

Distances are planar, measured in raw degrees.
"""

import math
from typing import Dict, Iterable, List, Set, Tuple

from ...config.logging_config import get_logger, log_function_entry, log_function_exit
from ..geo_math import planar_degree_distance
from ..models import FrequentArea, RideLocation


logger = get_logger(__name__)

DEFAULT_TOLERANCE_DEG = 0.01
MIN_CLUSTER_SIZE = 3
MAX_FREQUENT_AREAS = 5


class _Cluster:
    __slots__ = ('lat_sum', 'lon_sum', 'count', 'cell')

    def __init__(self, lat: float, lon: float):
        self.lat_sum = lat
        self.lon_sum = lon
        self.count = 1
        self.cell = None

    @property
    def center_lat(self) -> float:
        return self.lat_sum / self.count

    @property
    def center_lon(self) -> float:
        return self.lon_sum / self.count

    def add(self, lat: float, lon: float):
        self.lat_sum += lat
        self.lon_sum += lon
        self.count += 1


class SpatialClusterer:
    """Greedy tolerance clustering of ride locations into frequent areas."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE_DEG,
                 min_cluster_size: int = MIN_CLUSTER_SIZE,
                 max_areas: int = MAX_FREQUENT_AREAS):
        """
        Args:
            tolerance: Maximum centroid distance in degrees (exclusive)
            min_cluster_size: Smallest cluster reported as a frequent area
            max_areas: Number of areas returned
        """
        self.tolerance = tolerance
        self.min_cluster_size = min_cluster_size
        self.max_areas = max_areas

    def _cell_of(self, lat: float, lon: float) -> Tuple[int, int]:
        return (math.floor(lat / self.tolerance), math.floor(lon / self.tolerance))

    def cluster(self, locations: Iterable[RideLocation]) -> List[_Cluster]:
        """
        Run the greedy pass and return every cluster in creation order.

        Centroids are bucketed in a grid of tolerance-sized cells. Any
        centroid within tolerance of a sample sits in the sample's cell or
        one of its eight neighbours, so only those buckets are searched;
        among the matches the oldest cluster wins, exactly as a linear scan
        over all clusters would decide.
        """
        clusters: List[_Cluster] = []
        grid: Dict[Tuple[int, int], Set[int]] = {}

        for location in locations:
            row, col = self._cell_of(location.lat, location.lon)

            best = None
            for d_row in (-1, 0, 1):
                for d_col in (-1, 0, 1):
                    for cluster_id in grid.get((row + d_row, col + d_col), ()):
                        if best is not None and cluster_id > best:
                            continue
                        cluster = clusters[cluster_id]
                        distance = planar_degree_distance(
                            location.lat, location.lon,
                            cluster.center_lat, cluster.center_lon
                        )
                        if distance < self.tolerance:
                            best = cluster_id

            if best is None:
                cluster = _Cluster(location.lat, location.lon)
                best = len(clusters)
                clusters.append(cluster)
            else:
                cluster = clusters[best]
                cluster.add(location.lat, location.lon)
                grid[cluster.cell].discard(best)

            cluster.cell = self._cell_of(cluster.center_lat, cluster.center_lon)
            grid.setdefault(cluster.cell, set()).add(best)

        return clusters

    def find_frequent_areas(self, locations: Iterable[RideLocation]) -> List[FrequentArea]:
        """
        Find frequently visited areas.

        Args:
            locations: Flattened ride locations, in ride order

        Returns:
            Up to max_areas areas, most visited first
        """
        log_function_entry(logger, "find_frequent_areas")

        clusters = self.cluster(locations)

        areas = [
            FrequentArea(
                center=(cluster.center_lon, cluster.center_lat),
                frequency=cluster.count,
                confidence=min(cluster.count / 10, 1.0),
            )
            for cluster in clusters
            if cluster.count >= self.min_cluster_size
        ]
        areas.sort(key=lambda area: area.frequency, reverse=True)

        logger.debug(f"Clustered into {len(clusters)} groups, {len(areas)} frequent")
        log_function_exit(logger, "find_frequent_areas", areas)
        return areas[:self.max_areas]
