"""Device-local identity storage: one JSON file per device token."""

import json
import re
from pathlib import Path
from typing import Optional

from sideline.services.hub.types import Participant


_SAFE_TOKEN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


class IdentityStore:
    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, device_id: str) -> Optional[Path]:
        if not device_id or not _SAFE_TOKEN.match(device_id):
            return None
        return self.directory / f'{device_id}.json'

    def load(self, device_id: str) -> Optional[Participant]:
        """Load the identity saved for a device, if any."""
        path = self._path(device_id)
        if path is None or not path.exists():
            return None
        try:
            with open(path, 'r') as f:
                return Participant.from_dict(json.load(f))
        except (ValueError, KeyError, TypeError):
            # Unreadable identity; the next join writes a fresh one
            return None

    def save(self, device_id: str, participant: Participant) -> None:
        path = self._path(device_id)
        if path is None:
            return
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(participant.to_dict(), f, indent=2)
