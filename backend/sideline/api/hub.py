from flask import Blueprint, jsonify, current_app
from sideline.services.hub.awards import build_leaderboard
from sideline.services.hub.betting import BETS_COLLECTION, PROPS_COLLECTION, bet_stats
from sideline.services.hub.chat import CHAT_COLLECTION
from sideline.services.hub.rank import RANK_COLLECTION
from sideline.services.hub.seeds import HALFTIME_POOL, MAIN_POOL
from sideline.services.hub.state import STATE_COLLECTION, STATE_DOC, GameState
from sideline.services.hub.types import ChatMessage, PropBet, RankEntry, UserBet
from sideline.store import Query


hub = Blueprint('hub', __name__)


def _store():
    return current_app.extensions['sideline'].store


def _live_or_503():
    store = _store()
    if not store.is_available():
        return None, (jsonify({'error': 'Hub is running in solo mode; no shared state'}), 503)
    return store, None


def _props(store):
    return [PropBet.from_dict(doc.id, doc.data) for doc in store.query(Query(PROPS_COLLECTION))]


def _bets(store):
    return [UserBet.from_dict(doc.id, doc.data) for doc in store.query(Query(BETS_COLLECTION, order_by='placedAt'))]


@hub.route('/health', methods=['GET'])
def health():
    ctx = current_app.extensions['sideline']
    return jsonify({
        'status': 'ok',
        'live': ctx.store.is_available(),
        'sessions': len(ctx.sessions),
    })


@hub.route('/state', methods=['GET'])
def get_state():
    store, error = _live_or_503()
    if error:
        return error
    payload = GameState.from_dict(store.get(STATE_COLLECTION, STATE_DOC)).to_dict()
    payload['homeTeam'] = current_app.config.get('HOME_TEAM', 'Home')
    payload['awayTeam'] = current_app.config.get('AWAY_TEAM', 'Away')
    return jsonify(payload)


@hub.route('/chat', methods=['GET'])
def get_chat():
    store, error = _live_or_503()
    if error:
        return error
    limit = int(current_app.config.get('CHAT_HISTORY_LIMIT', 60))
    snapshot = store.query(Query(CHAT_COLLECTION, order_by='timestamp', descending=True, limit=limit))
    messages = sorted((ChatMessage.from_dict(d.id, d.data) for d in snapshot), key=lambda m: (m.timestamp, m.id))
    return jsonify([m.to_dict() for m in messages])


@hub.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    store, error = _live_or_503()
    if error:
        return error
    entries = [RankEntry.from_dict(doc.id, doc.data) for doc in store.query(Query(RANK_COLLECTION))]
    board = build_leaderboard(entries, _bets(store), _props(store))
    return jsonify(board.to_dict())


@hub.route('/props', methods=['GET'])
def get_props():
    store, error = _live_or_503()
    if error:
        return error
    bets = _bets(store)
    payload = []
    for prop in _props(store):
        item = prop.to_dict()
        stats = bet_stats([b for b in bets if b.bet_id == prop.id])
        item['stats'] = stats.to_dict() if stats else None
        payload.append(item)
    return jsonify(payload)


@hub.route('/trivia', methods=['GET'])
def get_trivia():
    return jsonify({
        'main': [q.to_dict() for q in MAIN_POOL],
        'halftime': [q.to_dict() for q in HALFTIME_POOL],
    })
