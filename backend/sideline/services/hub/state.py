"""Shared game state: the scoreboard singleton every session watches."""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sideline.store import DocumentStore, Query, Snapshot, Subscription
from .types import Recap


STATE_COLLECTION = 'game'
STATE_DOC = 'state'

_FIELDS = {
    'home_score': 'homeScore',
    'away_score': 'awayScore',
    'is_halftime': 'isHalftime',
    'last_fact_broadcast_at': 'lastFactBroadcastAt',
    'last_score_check_at': 'lastScoreCheckAt',
    'verification_sources': 'verificationSources',
}
_MARKERS = ('last_fact_broadcast_at', 'last_score_check_at')
_SCORES = ('home_score', 'away_score')


@dataclass
class GameState:
    home_score: int = 0
    away_score: int = 0
    is_halftime: bool = False
    last_fact_broadcast_at: int = 0
    last_score_check_at: int = 0
    verification_sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {camel: getattr(self, attr) for attr, camel in _FIELDS.items()}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GameState':
        data = data or {}
        return cls(
            home_score=int(data.get('homeScore') or 0),
            away_score=int(data.get('awayScore') or 0),
            is_halftime=bool(data.get('isHalftime')),
            last_fact_broadcast_at=int(data.get('lastFactBroadcastAt') or 0),
            last_score_check_at=int(data.get('lastScoreCheckAt') or 0),
            verification_sources=[str(s) for s in data.get('verificationSources') or []],
        )


def seed_game_state(store: DocumentStore) -> bool:
    return store.ensure(STATE_COLLECTION, STATE_DOC, GameState().to_dict())


class GameStateView:
    """A session's cached copy of the shared game state.

    In live mode the cache is replaced by every snapshot of the singleton
    document and patches go to the store; in solo mode patches apply to the
    cache directly.
    """

    def __init__(self, session, on_change: Optional[Callable[[GameState], None]] = None):
        self.session = session
        self.state = GameState()
        self.on_change = on_change
        self.subscription: Optional[Subscription] = None

    def subscribe(self, store: DocumentStore, on_first: Callable[[], None]) -> Subscription:
        first = {'seen': False}

        def _on_snapshot(snapshot: Snapshot) -> None:
            doc = snapshot.first
            self.state = GameState.from_dict(doc.data if doc else None)
            if not first['seen']:
                first['seen'] = True
                on_first()
            self._changed()

        self.subscription = store.subscribe(Query(STATE_COLLECTION, doc_id=STATE_DOC), _on_snapshot)
        return self.subscription

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)

    def _clean(self, fields: Dict[str, Any], current: GameState) -> Dict[str, Any]:
        patch = {}
        for attr, value in fields.items():
            if attr not in _FIELDS:
                raise KeyError(f"unknown game state field: {attr}")
            if attr in _SCORES:
                value = int(value)
                if value < 0:
                    raise ValueError(f"{attr} must be non-negative")
            elif attr in _MARKERS:
                # Markers never rewind
                value = max(int(value), getattr(current, attr))
            elif attr == 'is_halftime':
                value = bool(value)
            elif attr == 'verification_sources':
                value = [str(s) for s in value or []]
            patch[attr] = value
        return patch

    def patch(self, **fields) -> Dict[str, Any]:
        """Merge-patch the named fields; every other field is left alone."""
        if self.session.is_live:
            store = self.session.ctx.store
            current = GameState.from_dict(store.get(STATE_COLLECTION, STATE_DOC))
            patch = self._clean(fields, current)
            store.write(STATE_COLLECTION, STATE_DOC, {_FIELDS[k]: v for k, v in patch.items()}, merge=True)
            return patch
        patch = self._clean(fields, self.state)
        for attr, value in patch.items():
            setattr(self.state, attr, value)
        self._changed()
        return patch


RECAP_COLLECTION = 'recaps'
RECAP_DOC = 'latest'


class RecapView:
    """Latest momentum recap, refreshed after each successful score lookup."""

    def __init__(self, session, on_change: Optional[Callable[[Recap], None]] = None):
        self.session = session
        self.recap = Recap()
        self.on_change = on_change
        self.subscription: Optional[Subscription] = None

    def subscribe(self, store: DocumentStore) -> Subscription:
        self.subscription = store.subscribe(Query(RECAP_COLLECTION, doc_id=RECAP_DOC), self._on_snapshot)
        return self.subscription

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        doc = snapshot.first
        self.recap = Recap.from_dict(doc.data if doc else {})
        if self.on_change is not None:
            self.on_change(self.recap)

    def publish(self, recap: Recap) -> None:
        if self.session.is_live:
            self.session.ctx.store.write(RECAP_COLLECTION, RECAP_DOC, recap.to_dict(), merge=False)
            return
        self.recap = recap
        if self.on_change is not None:
            self.on_change(self.recap)
