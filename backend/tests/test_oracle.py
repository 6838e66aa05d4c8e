from types import SimpleNamespace

import pytest

from sideline.oracle import Oracle, OracleError, OracleUnavailable


class StubMessages:
    def __init__(self, replies):
        self.replies = list(replies)
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        return self.replies.pop(0)


def _reply(text, urls=()):
    citations = [SimpleNamespace(url=u) for u in urls]
    return SimpleNamespace(content=[
        SimpleNamespace(type='server_tool_use'),
        SimpleNamespace(type='text', text=text, citations=citations),
    ])


def _oracle(*replies):
    oracle = Oracle(api_key='sk-test', model='claude-3-5-haiku-latest', home='Chiefs', away='Eagles')
    messages = StubMessages(replies)
    oracle._client = SimpleNamespace(messages=messages)
    return oracle, messages


def test_missing_key_is_unavailable():
    oracle = Oracle(api_key='', model='m')
    with pytest.raises(OracleUnavailable):
        oracle.sideline_fact()


def test_live_score_parses_and_collects_sources():
    oracle, messages = _oracle(_reply(
        'Here you go: {"homeScore": 21, "awayScore": 17, "isHalftime": false, "sources": ["https://a.example"]}',
        urls=['https://b.example', 'https://a.example'],
    ))
    report = oracle.live_score()
    assert (report.home_score, report.away_score, report.is_halftime) == (21, 17, False)
    assert report.sources == ['https://a.example', 'https://b.example']
    assert report.usable
    assert messages.requests[0]['tools'][0]['name'] == 'web_search'
    assert 'Chiefs' in messages.requests[0]['messages'][0]['content']


def test_unverified_score_is_not_usable():
    oracle, _ = _oracle(_reply('{"homeScore": null, "awayScore": 3, "isHalftime": true}'))
    report = oracle.live_score()
    assert report.home_score is None
    assert not report.usable


def test_garbage_reply_raises():
    oracle, _ = _oracle(_reply('I could not find the game, sorry.'))
    with pytest.raises(OracleError):
        oracle.live_score()


def test_momentum_is_clamped():
    oracle, _ = _oracle(_reply('{"momentum": 140, "isBigPlay": true, "intel": "Pick six!"}'))
    report = oracle.analyze_momentum(7, 14)
    assert report.momentum == 100
    assert report.is_big_play is True
    assert report.intel == 'Pick six!'


def test_generated_props_drop_bad_entries():
    oracle, _ = _oracle(_reply(
        '[{"question": "First score a field goal?", "category": "Game", "options": ["Yes", "No"]},'
        ' {"question": "Only one option", "category": "Stats", "options": ["Yes"]},'
        ' {"question": "Halftime show runs long?", "category": "Vibes", "options": ["Yes", "No"]}]'
    ))
    props = oracle.generate_props()
    assert [p['question'] for p in props] == ['First score a field goal?', 'Halftime show runs long?']
    assert props[1]['category'] == 'Game'


def test_coach_uses_system_prompt():
    oracle, messages = _oracle(_reply('Run the ball, control the clock.'))
    assert oracle.coach_response('what now?') == 'Run the ball, control the clock.'
    assert 'coach' in messages.requests[0]['system']
    assert 'tools' not in messages.requests[0]


def test_empty_reply_raises():
    oracle, _ = _oracle(SimpleNamespace(content=[]))
    with pytest.raises(OracleError):
        oracle.sideline_fact()
