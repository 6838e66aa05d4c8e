from typing import Callable, Dict, List, Optional

from sideline.store import DocumentStore, Query, Snapshot, Subscription
from .types import Participant, RankEntry, Side


RANK_COLLECTION = 'ranks'


def sort_entries(entries) -> List[RankEntry]:
    return sorted(entries, key=lambda e: (-e.points, e.user_name.lower(), e.user_id))


class RankTable:
    """Cumulative points per participant, keyed by participant id."""

    def __init__(self, session, on_change: Optional[Callable[[List[RankEntry]], None]] = None):
        self.session = session
        self.on_change = on_change
        self.entries: Dict[str, RankEntry] = {}
        self.subscription: Optional[Subscription] = None

    def subscribe(self, store: DocumentStore) -> Subscription:
        self.subscription = store.subscribe(Query(RANK_COLLECTION), self._on_snapshot)
        return self.subscription

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self.entries = {doc.id: RankEntry.from_dict(doc.id, doc.data) for doc in snapshot}
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.sorted())

    def sorted(self) -> List[RankEntry]:
        return sort_entries(self.entries.values())

    def get(self, user_id: str) -> Optional[RankEntry]:
        return self.entries.get(user_id)

    def register(self, participant: Participant) -> None:
        """Make sure the participant has an entry; existing points are kept."""
        fields = {
            'userId': participant.id,
            'userName': participant.display_name,
            'side': participant.side.value,
        }
        if self.session.is_live:
            # points is left out of the patch so a rejoin never resets it
            self.session.ctx.store.write(RANK_COLLECTION, participant.id, fields, merge=True)
            return
        existing = self.entries.get(participant.id)
        points = existing.points if existing else participant.cumulative_points
        self.entries[participant.id] = RankEntry(participant.id, participant.display_name, participant.side, points)
        self._changed()

    def apply_delta(self, user_id: str, delta: int, user_name: Optional[str] = None, side: Optional[Side] = None) -> RankEntry:
        """Add ``delta`` points to a participant, creating the entry at zero if absent."""
        current = None
        if self.session.is_live:
            data = self.session.ctx.store.get(RANK_COLLECTION, user_id)
            if data is not None:
                current = RankEntry.from_dict(user_id, data)
        else:
            current = self.entries.get(user_id)
        if current is None:
            current = RankEntry(user_id=user_id, user_name=user_name or user_id, side=side, points=0)
        updated = RankEntry(
            user_id=user_id,
            user_name=current.user_name or user_name or user_id,
            side=current.side or side,
            points=current.points + delta,
        )
        if self.session.is_live:
            self.session.ctx.store.write(RANK_COLLECTION, user_id, updated.to_dict(), merge=True)
        else:
            self.entries[user_id] = updated
            self._changed()
        return updated
