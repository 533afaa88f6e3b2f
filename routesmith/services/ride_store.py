"""
Local ride history store.
Ride records are kept as one JSON file per ride under
<data_directory>/rides/<user_id>/.
"""

import json
import os
from datetime import datetime
from typing import List, Optional

from ..config.config import get_config
from ..config.logging_config import get_logger, log_function_entry, log_function_exit
from ..processing.models import RideRecord


logger = get_logger(__name__)

RIDES_DIRECTORY = 'rides'


class LocalRideStore:
    """Reads and writes a user's ride history on local disk."""

    def __init__(self, data_directory: Optional[str] = None):
        """
        Initialize the store.

        Args:
            data_directory: Root data directory (defaults to DATA_DIRECTORY config)
        """
        self.data_directory = data_directory or get_config().app.data_directory
        logger.info(f"Ride store initialized - Local: {self.data_directory}")

    def _user_directory(self, user_id: str) -> str:
        return os.path.join(self.data_directory, RIDES_DIRECTORY, user_id)

    def save_ride(self, user_id: str, ride: RideRecord) -> bool:
        """
        Save a ride as JSON.

        Args:
            user_id: Owner of the ride
            ride: Ride to persist

        Returns:
            True if the file was written
        """
        try:
            user_dir = self._user_directory(user_id)
            os.makedirs(user_dir, exist_ok=True)

            filepath = os.path.join(user_dir, f"{ride.id}.json")
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(ride.to_dict(), f, indent=2, ensure_ascii=False)

            logger.debug(f"Saved ride to local file: {filepath}")
            return True

        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save ride {ride.id}: {e}")
            return False

    def fetch(self, user_id: str, limit: int = 50) -> List[RideRecord]:
        """
        Load a user's most recent rides.

        Args:
            user_id: User whose rides to load
            limit: Maximum number of rides

        Returns:
            Rides newest first; an empty list if nothing can be read
        """
        log_function_entry(logger, "fetch", user_id=user_id, limit=limit)

        directory = self._user_directory(user_id)
        if not os.path.isdir(directory):
            logger.info(f"No ride history for user {user_id}")
            return []

        rides = []
        try:
            filenames = sorted(f for f in os.listdir(directory) if f.endswith('.json'))
        except OSError as e:
            logger.error(f"Failed to list rides for user {user_id}: {e}")
            return []

        for filename in filenames:
            filepath = os.path.join(directory, filename)
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    rides.append(RideRecord.from_dict(json.load(f)))
            except (OSError, ValueError, AttributeError, TypeError) as e:
                logger.warning(f"Skipping unreadable ride file {filename}: {e}")

        rides.sort(key=lambda r: r.recorded_at_epoch_ms, reverse=True)
        rides = rides[:limit]

        log_function_exit(logger, "fetch", f"count={len(rides)}")
        return rides

    def list_rides(self, user_id: str) -> List[dict]:
        """List ride files for a user with size and modification time."""
        directory = self._user_directory(user_id)
        files = []
        if not os.path.isdir(directory):
            return files

        for filename in sorted(os.listdir(directory)):
            filepath = os.path.join(directory, filename)
            if os.path.isfile(filepath) and filename.endswith('.json'):
                stat = os.stat(filepath)
                files.append({
                    'ride_id': filename[:-len('.json')],
                    'size_bytes': stat.st_size,
                    'last_modified': datetime.fromtimestamp(stat.st_mtime).isoformat(),
                })
        return files
