import secrets
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from sideline.oracle import OracleError
from sideline.store import DocumentStore, Query, Snapshot, Subscription
from .seeds import INITIAL_PROPS
from .types import ActionRejected, BetStatus, PropBet, SenderKind, UserBet


PROPS_COLLECTION = 'props'
BETS_COLLECTION = 'bets'

WIN_POINTS = 10
LOSS_POINTS = -3


def seed_props(store: DocumentStore) -> int:
    """Create the opening prop bets that are not in the store yet."""
    created = 0
    for prop in INITIAL_PROPS:
        data = PropBet.from_dict(prop['id'], prop).to_dict()
        del data['id']
        if store.ensure(PROPS_COLLECTION, prop['id'], data):
            created += 1
    return created


def user_bet_id(user_id: str, bet_id: str) -> str:
    return f'{user_id}_{bet_id}'


@dataclass
class BetStats:
    total_count: int
    most_popular_selection: str

    def to_dict(self):
        return {'totalCount': self.total_count, 'mostPopularSelection': self.most_popular_selection}


def bet_stats(bets: List[UserBet]) -> Optional[BetStats]:
    """Count and most popular pick. Ties go to the pick seen first in ``bets``."""
    if not bets:
        return None
    counts = Counter(b.selection for b in bets)
    # Counter keeps first-seen order and max() returns the first maximal item
    popular = max(counts, key=lambda s: counts[s])
    return BetStats(total_count=len(bets), most_popular_selection=popular)


class BettingEngine:
    def __init__(self, session, on_change: Optional[Callable[[], None]] = None):
        self.session = session
        self.on_change = on_change
        self.props: Dict[str, PropBet] = {p['id']: PropBet.from_dict(p['id'], p) for p in INITIAL_PROPS}
        self.bets: Dict[str, UserBet] = {}
        self.subscriptions: List[Subscription] = []

    def subscribe(self, store: DocumentStore) -> List[Subscription]:
        self.subscriptions = [
            store.subscribe(Query(PROPS_COLLECTION), self._on_props),
            store.subscribe(Query(BETS_COLLECTION, order_by='placedAt'), self._on_bets),
        ]
        return self.subscriptions

    def _on_props(self, snapshot: Snapshot) -> None:
        self.props = {doc.id: PropBet.from_dict(doc.id, doc.data) for doc in snapshot}
        self._changed()

    def _on_bets(self, snapshot: Snapshot) -> None:
        self.bets = {doc.id: UserBet.from_dict(doc.id, doc.data) for doc in snapshot}
        self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def prop_list(self) -> List[PropBet]:
        return list(self.props.values())

    def bets_for(self, bet_id: str) -> List[UserBet]:
        found = [b for b in self.bets.values() if b.bet_id == bet_id]
        return sorted(found, key=lambda b: (b.placed_at, b.id))

    def my_bet(self, bet_id: str) -> Optional[UserBet]:
        return self.bets.get(user_bet_id(self.session.participant.id, bet_id))

    def _prop(self, bet_id: str) -> PropBet:
        if self.session.is_live:
            data = self.session.ctx.store.get(PROPS_COLLECTION, bet_id)
            prop = PropBet.from_dict(bet_id, data) if data is not None else None
        else:
            prop = self.props.get(bet_id)
        if prop is None:
            raise ActionRejected(f'Unknown prop bet {bet_id}')
        return prop

    def place_bet(self, bet_id: str, selection: str) -> UserBet:
        """Lock in a pick. One bet per participant per prop; resolved props are closed."""
        prop = self._prop(bet_id)
        if prop.resolved:
            raise ActionRejected('This prop has already been resolved')
        if selection not in prop.options:
            raise ActionRejected(f'"{selection}" is not an option for this prop')
        participant = self.session.participant
        bet = UserBet(
            id=user_bet_id(participant.id, bet_id),
            user_id=participant.id,
            bet_id=bet_id,
            selection=selection,
            status=BetStatus.PENDING,
            placed_at=self.session.ctx.clock(),
        )
        if self.session.is_live:
            data = bet.to_dict()
            del data['id']
            if not self.session.ctx.store.ensure(BETS_COLLECTION, bet.id, data):
                raise ActionRejected('You already have a bet on this prop')
            return bet
        if bet.id in self.bets:
            raise ActionRejected('You already have a bet on this prop')
        self.bets[bet.id] = bet
        self._changed()
        return bet

    def get_stats(self, bet_id: str) -> Optional[BetStats]:
        return bet_stats(self.bets_for(bet_id))

    def resolve_bet(self, bet_id: str, outcome: str) -> List[UserBet]:
        """Declare the outcome and settle every pending bet on the prop, exactly once."""
        prop = self._prop(bet_id)
        if prop.resolved:
            raise ActionRejected('This prop has already been resolved')
        if outcome not in prop.options:
            raise ActionRejected(f'"{outcome}" is not an option for this prop')

        store = self.session.ctx.store
        if self.session.is_live:
            store.write(PROPS_COLLECTION, bet_id, {'resolved': True, 'outcome': outcome}, merge=True)
            snapshot = store.query(Query(BETS_COLLECTION, order_by='placedAt', where=(('betId', bet_id),)))
            pending = [UserBet.from_dict(doc.id, doc.data) for doc in snapshot]
        else:
            prop.resolved = True
            prop.outcome = outcome
            pending = self.bets_for(bet_id)

        settled = []
        for bet in pending:
            if bet.status is not BetStatus.PENDING:
                continue
            won = bet.selection == outcome
            bet.status = BetStatus.WON if won else BetStatus.LOST
            if self.session.is_live:
                store.write(BETS_COLLECTION, bet.id, {'status': bet.status.value}, merge=True)
            else:
                self.bets[bet.id] = bet
            self.session.ranks.apply_delta(bet.user_id, WIN_POINTS if won else LOSS_POINTS)
            settled.append(bet)

        if not self.session.is_live:
            self._changed()
        won_count = sum(1 for b in settled if b.status is BetStatus.WON)
        self.session.log('info', f"[bet-resolved] session={self.session.sid} bet={bet_id} outcome={outcome} won={won_count} lost={len(settled) - won_count}")
        self.session.chat.post_bot(
            SenderKind.FACT_BOT,
            f'Prop settled: {prop.question} -> {outcome}. {won_count} won, {len(settled) - won_count} lost.',
        )
        return settled

    def generate_props(self):
        """Ask the oracle for fresh props in the background."""
        return self.session.spawn('prop-lab', self._generate_props)

    def _generate_props(self, task) -> None:
        try:
            generated = self.session.ctx.oracle.generate_props()
        except OracleError as exc:
            self.session.log('warning', f"[prop-lab-skip] session={self.session.sid} error={exc}")
            return
        if task.cancelled or not generated:
            return
        for item in generated:
            prop = PropBet(id=secrets.token_hex(6), question=item['question'], category=item['category'], options=list(item['options']))
            if self.session.is_live:
                data = prop.to_dict()
                del data['id']
                self.session.ctx.store.write(PROPS_COLLECTION, prop.id, data, merge=False)
            else:
                self.props[prop.id] = prop
        if not self.session.is_live:
            self._changed()
        self.session.chat.post_bot(
            SenderKind.FACT_BOT,
            f"The Prop Lab is cooking! Just dropped {len(generated)} fresh lines.",
        )
