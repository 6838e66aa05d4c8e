from flask import current_app, request
from flask_socketio import emit, join_room, leave_room
from sideline import socketio
from sideline.services.hub.session import PartySession
from sideline.services.hub.types import ActionRejected
from typing import Optional


HUB_ROOM = 'hub'


def _ctx():
    return current_app.extensions['sideline']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _emitter(sid: str, namespace: str):
    def _emit(event, payload):
        socketio.emit(event, payload, to=sid, namespace=namespace)
    return _emit


def _session() -> Optional[PartySession]:
    return _ctx().sessions.get(_get_sid())


def _require_session() -> Optional[PartySession]:
    session = _session()
    if session is None or session.participant is None:
        emit('error', {'message': 'Join the hub first'})
        return None
    return session


def _end_session(sid: str) -> None:
    ctx = _ctx()
    with ctx.sessions_lock:
        session = ctx.sessions.pop(sid, None)
    if session is not None:
        session.leave()


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    # Leaving tears down subscriptions and timers so nothing writes into a gone session
    _end_session(_get_sid())


def handle_join(data):
    data = data or {}
    ctx = _ctx()
    sid = _get_sid()
    if _session() is not None:
        emit('error', {'message': 'Already joined'})
        return
    session = PartySession(ctx, sid, emit=_emitter(sid, request.namespace))
    try:
        session.join(data.get('name'), data.get('side'), device_id=data.get('device_id'))
    except ActionRejected as exc:
        emit('error', {'message': exc.message})
        return
    with ctx.sessions_lock:
        ctx.sessions[sid] = session
    join_room(HUB_ROOM)
    emit('joined', session.to_dict())


def handle_leave(data=None):
    sid = _get_sid()
    leave_room(HUB_ROOM)
    _end_session(sid)
    emit('left', {'room': HUB_ROOM})


def handle_send_message(data):
    session = _require_session()
    if session is None:
        return
    session.chat.send((data or {}).get('text') or '')


def handle_answer_trivia(data):
    data = data or {}
    session = _require_session()
    if session is None:
        return
    question_id = data.get('question_id')
    try:
        chosen_index = int(data.get('chosen_index'))
        result = session.trivia.answer(question_id, chosen_index)
    except (TypeError, ValueError):
        emit('error', {'message': 'chosen_index must be an integer'})
        return
    except ActionRejected as exc:
        emit('error', {'message': exc.message})
        return
    emit('trivia_result', {'question_id': question_id, 'result': result.value})


def handle_place_bet(data):
    data = data or {}
    session = _require_session()
    if session is None:
        return
    try:
        bet = session.betting.place_bet(data.get('bet_id'), data.get('selection'))
    except ActionRejected as exc:
        emit('error', {'message': exc.message})
        return
    emit('bet_placed', bet.to_dict())


def handle_resolve_bet(data):
    # Host-only by convention; the control is only shown to the host
    data = data or {}
    session = _require_session()
    if session is None:
        return
    try:
        settled = session.betting.resolve_bet(data.get('bet_id'), data.get('outcome'))
    except ActionRejected as exc:
        emit('error', {'message': exc.message})
        return
    emit('bet_resolved', {'bet_id': data.get('bet_id'), 'settled': [b.to_dict() for b in settled]})


def handle_generate_props(data=None):
    session = _require_session()
    if session is None:
        return
    session.betting.generate_props()


def handle_ping(data):
    emit('pong', data or {})


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'join': handle_join,
    'leave': handle_leave,
    'send_message': handle_send_message,
    'answer_trivia': handle_answer_trivia,
    'place_bet': handle_place_bet,
    'resolve_bet': handle_resolve_bet,
    'generate_props': handle_generate_props,
    'ping': handle_ping,
}


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler, namespace='/ws')

    if testing:
        for event, handler in HANDLERS.items():
            socketio.on_event(event, handler, namespace='/')
