from sideline import socketio


def _events(client, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in client.get_received('/ws') if pkt['name'] == name]


def _join(client, name='Alice', side='home', **extra):
    if not client.is_connected('/ws'):
        client.connect(namespace='/ws')
    client.get_received('/ws')
    client.emit('join', dict({'name': name, 'side': side}, **extra), namespace='/ws')
    return client.get_received('/ws')


def test_socket_connect_and_join(sio_client, ctx):
    assert sio_client.is_connected('/ws')
    received = _join(sio_client, 'Alice', 'home')
    joined = [pkt['args'][0] for pkt in received if pkt['name'] == 'joined']
    assert len(joined) == 1
    snapshot = joined[0]
    assert snapshot['participant']['displayName'] == 'Alice'
    assert snapshot['syncState'] == 'live'
    assert snapshot['state']['homeTeam'] == 'Chiefs'
    assert len(snapshot['trivia']) == 8
    assert 'correctOptionIndex' not in snapshot['trivia'][0]
    assert len(ctx.sessions) == 1


def test_join_with_bad_side_reports_error(sio_client, ctx):
    received = _join(sio_client, 'Alice', 'sideline')
    errors = [pkt['args'][0] for pkt in received if pkt['name'] == 'error']
    assert errors and 'home' in errors[0]['message']
    assert ctx.sessions == {}


def test_actions_before_join_are_rejected(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('send_message', {'text': 'hello?'}, namespace='/ws')
    errors = _events(sio_client, 'error')
    assert errors == [{'message': 'Join the hub first'}]


def test_chat_reaches_other_clients(flask_app, sio_client):
    other = socketio.test_client(flask_app, namespace='/ws')
    try:
        _join(sio_client, 'Alice', 'home')
        _join(other, 'Bob', 'away')
        sio_client.emit('send_message', {'text': 'Lets go!'}, namespace='/ws')
        updates = _events(other, 'chat_update')
        assert updates and updates[-1][-1]['text'] == 'Lets go!'
        assert updates[-1][-1]['senderName'] == 'Alice'
    finally:
        other.disconnect(namespace='/ws')


def test_trivia_answer_reports_result(sio_client):
    _join(sio_client)
    sio_client.emit('answer_trivia', {'question_id': 't2', 'chosen_index': 1}, namespace='/ws')
    assert _events(sio_client, 'trivia_result') == [{'question_id': 't2', 'result': 'correct'}]
    sio_client.emit('answer_trivia', {'question_id': 't2', 'chosen_index': 1}, namespace='/ws')
    assert _events(sio_client, 'trivia_result') == [{'question_id': 't2', 'result': 'already_answered'}]
    sio_client.emit('answer_trivia', {'question_id': 't2', 'chosen_index': 'b'}, namespace='/ws')
    assert _events(sio_client, 'error') == [{'message': 'chosen_index must be an integer'}]


def test_place_bet_then_duplicate(ctx, sio_client):
    _join(sio_client)
    sio_client.emit('place_bet', {'bet_id': '1', 'selection': 'Heads'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    placed = [pkt['args'][0] for pkt in received if pkt['name'] == 'bet_placed']
    assert placed[0]['selection'] == 'Heads'
    assert any(pkt['name'] == 'bets_update' for pkt in received)

    sio_client.emit('place_bet', {'bet_id': '1', 'selection': 'Tails'}, namespace='/ws')
    assert _events(sio_client, 'error') == [{'message': 'You already have a bet on this prop'}]


def test_resolve_bet_settles(ctx, sio_client):
    _join(sio_client)
    sio_client.emit('place_bet', {'bet_id': '5', 'selection': 'No'}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('resolve_bet', {'bet_id': '5', 'outcome': 'No'}, namespace='/ws')
    resolved = _events(sio_client, 'bet_resolved')
    assert resolved[0]['bet_id'] == '5'
    assert [b['status'] for b in resolved[0]['settled']] == ['won']


def test_disconnect_ends_the_session(flask_app, ctx):
    client = socketio.test_client(flask_app, namespace='/ws')
    _join(client, 'Carol', 'away')
    assert len(ctx.sessions) == 1
    assert ctx.store.listener_count() > 0
    client.disconnect(namespace='/ws')
    assert ctx.sessions == {}
    assert ctx.store.listener_count() == 0


def test_ping_pong(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('ping', {'n': 1}, namespace='/ws')
    assert _events(sio_client, 'pong') == [{'n': 1}]
