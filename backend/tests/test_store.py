import pytest
from sqlalchemy import event

from sideline import db
from sideline.store import SERVER_TIMESTAMP, Query, StoreUnavailable, store_configured


def test_store_configured_is_a_shape_check():
    assert store_configured({'STORE_API_KEY': 'abcdefghijklmnop', 'STORE_PROJECT_ID': 'party'})
    assert not store_configured({'STORE_API_KEY': 'short', 'STORE_PROJECT_ID': 'party'})
    assert not store_configured({'STORE_API_KEY': 'REPLACE_WITH_YOUR_STORE_API_KEY', 'STORE_PROJECT_ID': 'party'})
    assert not store_configured({'STORE_API_KEY': 'abcdefghijklmnop', 'STORE_PROJECT_ID': ''})
    assert not store_configured({})


def test_merge_patch_keeps_unnamed_fields(ctx):
    store = ctx.store
    store.write('game', 'state', {'homeScore': 7, 'awayScore': 3, 'isHalftime': False})
    store.write('game', 'state', {'isHalftime': True})
    assert store.get('game', 'state') == {'homeScore': 7, 'awayScore': 3, 'isHalftime': True}

    store.write('game', 'state', {'homeScore': 10}, merge=False)
    assert store.get('game', 'state') == {'homeScore': 10}


def test_add_resolves_server_timestamp(ctx, clock):
    doc_id = ctx.store.add('chat', {'text': 'hi', 'timestamp': SERVER_TIMESTAMP})
    assert ctx.store.get('chat', doc_id) == {'text': 'hi', 'timestamp': clock.now}


def test_ensure_only_creates_once(ctx):
    assert ctx.store.ensure('bets', 'u1_1', {'selection': 'Heads'})
    assert not ctx.store.ensure('bets', 'u1_1', {'selection': 'Tails'})
    assert ctx.store.get('bets', 'u1_1') == {'selection': 'Heads'}


def test_ordered_limited_query(ctx, clock):
    for text in ['a', 'b', 'c']:
        ctx.store.add('chat', {'text': text, 'timestamp': SERVER_TIMESTAMP})
        clock.advance(1000)
    snapshot = ctx.store.query(Query('chat', order_by='timestamp', descending=True, limit=2))
    assert [d.data['text'] for d in snapshot] == ['c', 'b']



def test_limited_query_reads_only_the_newest_rows(ctx, clock):
    for i in range(8):
        ctx.store.add('chat', {'text': f'm{i}', 'timestamp': SERVER_TIMESTAMP})
        clock.advance(1000)
    statements = []

    def capture(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(db.engine, 'before_cursor_execute', capture)
    try:
        snapshot = ctx.store.query(Query('chat', order_by='timestamp', descending=True, limit=3))
    finally:
        event.remove(db.engine, 'before_cursor_execute', capture)
    assert [d.data['text'] for d in snapshot] == ['m7', 'm6', 'm5']
    assert any('LIMIT' in s.upper() for s in statements)


def test_missing_order_field_sorts_last(ctx):
    ctx.store.write('bets', 'b', {'placedAt': 20})
    ctx.store.write('bets', 'c', {})
    ctx.store.write('bets', 'a', {'placedAt': 10})
    ctx.store.write('bets', 'd', {'placedAt': 10})
    snapshot = ctx.store.query(Query('bets', order_by='placedAt'))
    assert [d.id for d in snapshot] == ['a', 'd', 'b', 'c']

def test_where_filter(ctx):
    ctx.store.write('bets', 'a', {'betId': '1'})
    ctx.store.write('bets', 'b', {'betId': '2'})
    snapshot = ctx.store.query(Query('bets', where=(('betId', '2'),)))
    assert [d.id for d in snapshot] == ['b']


def test_subscribe_delivers_initial_then_changes_until_cancelled(ctx):
    seen = []
    sub = ctx.store.subscribe(Query('game', doc_id='state'), lambda snap: seen.append(snap.first.data if snap.first else None))
    assert seen == [None]

    ctx.store.write('game', 'state', {'homeScore': 3})
    assert seen[-1] == {'homeScore': 3}

    # writes to other collections are not delivered
    ctx.store.write('ranks', 'u1', {'points': 5})
    assert len(seen) == 2

    sub.cancel()
    ctx.store.write('game', 'state', {'homeScore': 6})
    assert len(seen) == 2
    assert ctx.store.listener_count('game') == 0


def test_listener_errors_do_not_stop_other_listeners(ctx):
    seen = []

    def broken(snapshot):
        raise RuntimeError('boom')

    ctx.store.subscribe(Query('chat'), broken)
    ctx.store.subscribe(Query('chat'), lambda snap: seen.append(len(snap)))
    ctx.store.add('chat', {'text': 'hello'})
    assert seen == [0, 1]


def test_unavailable_store_refuses_operations(solo_ctx):
    store = solo_ctx.store
    assert not store.is_available()
    with pytest.raises(StoreUnavailable):
        store.write('game', 'state', {'homeScore': 1})
    with pytest.raises(StoreUnavailable):
        store.subscribe(Query('chat'), lambda snap: None)
