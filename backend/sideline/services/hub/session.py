"""One connected client's view of the hub.

Lifecycle::

    DISCONNECTED --join, store available--> SYNCING --first state snapshot--> LIVE
    DISCONNECTED --join, no store---------> SOLO
    SYNCING --no snapshot within JOIN_GRACE_SEC--> SOLO

Only live sessions run the background scheduler. ``leave`` tears down every
subscription, the scheduler and any pending timer so nothing writes into a
session that has gone away.
"""

import enum
import secrets
from typing import Callable, List, Optional

from sideline.store import Subscription
from .awards import build_leaderboard
from .betting import BettingEngine, seed_props
from .chat import ChatChannel
from .rank import RankTable
from .scheduler import SyncScheduler
from .state import GameStateView, RecapView, seed_game_state
from .tasks import Task, TaskGroup
from .trivia import TriviaEngine
from .types import ActionRejected, Participant, Side


class SyncState(str, enum.Enum):
    DISCONNECTED = 'disconnected'
    SYNCING = 'syncing'
    LIVE = 'live'
    SOLO = 'solo'


class PartySession:
    def __init__(self, ctx, sid: str, emit: Optional[Callable[[str, dict], None]] = None):
        self.ctx = ctx
        self.sid = sid
        self.emit = emit
        self.participant: Optional[Participant] = None
        self.state = SyncState.DISCONNECTED
        self.tasks = TaskGroup()
        self._subscriptions: List[Subscription] = []
        self._grace: Optional[Task] = None

        self.game = GameStateView(self, on_change=lambda _s: self._push('state_update', self.state_payload()))
        self.recap = RecapView(self, on_change=lambda r: self._push('recap_update', r.to_dict()))
        self.chat = ChatChannel(self, on_change=lambda _m: self._push('chat_update', self.chat_payload()))
        self.ranks = RankTable(self, on_change=lambda _e: self._push('rank_update', self.leaderboard_payload()))
        self.betting = BettingEngine(self, on_change=self._bets_changed)
        self.trivia = TriviaEngine(self)
        self.scheduler = SyncScheduler(self)

    @property
    def is_live(self) -> bool:
        return self.state is SyncState.LIVE

    # ---- lifecycle ----

    def join(self, name: str, side: str, device_id: Optional[str] = None) -> Participant:
        if self.participant is not None:
            raise ActionRejected('Already joined')
        participant = self.ctx.identities.load(device_id) if device_id else None
        if participant is None:
            name = (name or '').strip()
            if not name:
                raise ActionRejected('Display name is required')
            try:
                side = Side(side)
            except ValueError:
                raise ActionRejected('Side must be "home" or "away"') from None
            participant = Participant(id=secrets.token_hex(8), display_name=name[:32], side=side)
            if device_id:
                self.ctx.identities.save(device_id, participant)
        self.participant = participant

        store = self.ctx.store
        if not store.is_available():
            self._go_solo('store unavailable')
            return participant

        self.state = SyncState.SYNCING
        self.log('info', f"[sync-begin] session={self.sid} participant={participant.id}")
        # Opening props and the state singleton are created only when missing
        seed_props(store)
        seed_game_state(store)
        self._subscriptions.append(self.game.subscribe(store, on_first=self._on_first_snapshot))
        if self.state is SyncState.SYNCING:
            grace = float(self.ctx.setting('JOIN_GRACE_SEC', 5))
            self._grace = self.ctx.runner.spawn('join-grace', self._grace_expired, grace)
        return participant

    def _on_first_snapshot(self) -> None:
        if self.state is not SyncState.SYNCING:
            return
        self._cancel_grace()
        self.state = SyncState.LIVE
        store = self.ctx.store
        self._subscriptions.append(self.chat.subscribe(store))
        self._subscriptions.append(self.ranks.subscribe(store))
        self._subscriptions.extend(self.betting.subscribe(store))
        self._subscriptions.append(self.recap.subscribe(store))
        self.ranks.register(self.participant)
        self.log('info', f"[sync-live] session={self.sid}")
        self.scheduler.start()

    def _grace_expired(self, task: Task, grace: float) -> None:
        self.ctx.runner.sleep(grace)
        if task.cancelled or self.state is not SyncState.SYNCING:
            return
        self._grace = None
        self.log('warning', f"[sync-timeout] session={self.sid} no snapshot after {grace}s")
        self._cancel_subscriptions()
        self._go_solo('subscription timeout')

    def _go_solo(self, reason: str) -> None:
        self.state = SyncState.SOLO
        self.log('info', f"[sync-solo] session={self.sid} reason={reason}")
        self.ranks.register(self.participant)
        self._push('state_update', self.state_payload())

    def _cancel_grace(self) -> None:
        if self._grace is not None:
            self._grace.cancel()
            self._grace = None

    def _cancel_subscriptions(self) -> None:
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.cancel()

    def leave(self) -> None:
        self._cancel_grace()
        self._cancel_subscriptions()
        self.scheduler.stop()
        self.tasks.cancel_all()
        self.state = SyncState.DISCONNECTED
        self.emit = None
        self.log('info', f"[session-end] session={self.sid}")

    # ---- helpers used by the engines ----

    def spawn(self, name: str, fn, *args) -> Task:
        return self.tasks.add(self.ctx.runner.spawn(name, fn, *args))

    def log(self, level: str, message: str) -> None:
        getattr(self.ctx.logger, level)(message)

    def _push(self, event: str, payload) -> None:
        if self.emit is not None:
            self.emit(event, payload)

    def _bets_changed(self) -> None:
        self._push('bets_update', self.bets_payload())
        self._push('rank_update', self.leaderboard_payload())

    # ---- payloads ----

    def state_payload(self) -> dict:
        payload = self.game.state.to_dict()
        payload['syncState'] = self.state.value
        payload['homeTeam'] = self.ctx.setting('HOME_TEAM', 'Home')
        payload['awayTeam'] = self.ctx.setting('AWAY_TEAM', 'Away')
        return payload

    def chat_payload(self) -> List[dict]:
        return [m.to_dict() for m in self.chat.messages]

    def leaderboard(self):
        return build_leaderboard(self.ranks.entries.values(), self.betting.bets.values(), self.betting.prop_list())

    def leaderboard_payload(self) -> dict:
        return self.leaderboard().to_dict()

    def bets_payload(self) -> List[dict]:
        props = []
        for prop in self.betting.prop_list():
            item = prop.to_dict()
            stats = self.betting.get_stats(prop.id)
            item['stats'] = stats.to_dict() if stats else None
            mine = self.betting.my_bet(prop.id) if self.participant else None
            item['myBet'] = mine.to_dict() if mine else None
            props.append(item)
        return props

    def participant_payload(self) -> Optional[dict]:
        if self.participant is None:
            return None
        entry = self.ranks.get(self.participant.id)
        if entry is not None:
            self.participant.cumulative_points = entry.points
        return self.participant.to_dict()

    def trivia_payload(self) -> List[dict]:
        questions = []
        for q in self.trivia.available(self.game.state.is_halftime):
            item = q.to_dict()
            item['answered'] = q.id in self.trivia.answered
            questions.append(item)
        return questions

    def to_dict(self) -> dict:
        return {
            'participant': self.participant_payload(),
            'syncState': self.state.value,
            'state': self.state_payload(),
            'chat': self.chat_payload(),
            'leaderboard': self.leaderboard_payload(),
            'props': self.bets_payload(),
            'trivia': self.trivia_payload(),
            'recap': self.recap.recap.to_dict(),
        }
