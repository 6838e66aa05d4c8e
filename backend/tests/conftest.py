import os
import sys
import pytest

# Ensure the backend root (containing the `sideline` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sideline import create_app, db, socketio
from sideline.oracle import MomentumReport, OracleError, ScoreReport
from sideline.services.hub.session import PartySession


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORE_API_KEY = 'test-store-api-key-123456'
    STORE_PROJECT_ID = 'sideline-test'
    ANTHROPIC_API_KEY = ''
    TICK_INTERVAL_SEC = 30
    FACT_INTERVAL_SEC = 480
    SCORE_CHECK_INTERVAL_SEC = 300
    JOIN_GRACE_SEC = 5
    CHAT_HISTORY_LIMIT = 60
    COACH_TOKEN = '@coach'
    HOME_TEAM = 'Chiefs'
    AWAY_TEAM = 'Eagles'


class SoloConfig(TestConfig):
    STORE_API_KEY = ''
    STORE_PROJECT_ID = ''


class FakeClock:
    def __init__(self, now=1_700_000_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


class FakeOracle:
    """Canned oracle replies; set ``fail`` to make every call raise."""

    def __init__(self):
        self.fail = False
        self.calls = []
        self.fact = 'The first title game was not a sellout.'
        self.coach = 'Blitz on third down!'
        self.score = ScoreReport(home_score=14, away_score=10, is_halftime=True, sources=['https://example.com/box'])
        self.momentum = MomentumReport(momentum=35, is_big_play=False, intel='Chiefs control the clock.')
        self.props = [{'question': 'Will a kicker miss an extra point?', 'category': 'Stats', 'options': ['Yes', 'No']}]

    def _call(self, name, value):
        self.calls.append(name)
        if self.fail:
            raise OracleError(f'{name} failed')
        return value

    def sideline_fact(self):
        return self._call('fact', self.fact)

    def coach_response(self, prompt):
        self.calls.append(('coach_prompt', prompt))
        return self._call('coach', self.coach)

    def live_score(self):
        return self._call('score', self.score)

    def analyze_momentum(self, home_score, away_score):
        return self._call('momentum', self.momentum)

    def generate_props(self, count=3):
        return self._call('props', list(self.props))


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [p for e, p in self.events if e == event]


def _build(config, oracle, clock, tmp_path):
    config.IDENTITY_DIR = str(tmp_path / 'identities')
    application = create_app(config, oracle=oracle)
    ctx = application.extensions['sideline']
    ctx.clock = clock
    ctx.store.clock = clock
    return application


@pytest.fixture()
def oracle():
    return FakeOracle()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def flask_app(oracle, clock, tmp_path):
    application = _build(TestConfig, oracle, clock, tmp_path)
    with application.app_context():
        # Ensure models are imported so tables are created
        import sideline.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def solo_app(oracle, clock, tmp_path):
    application = _build(SoloConfig, oracle, clock, tmp_path)
    with application.app_context():
        import sideline.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def ctx(flask_app):
    return flask_app.extensions['sideline']


@pytest.fixture()
def solo_ctx(solo_app):
    return solo_app.extensions['sideline']


@pytest.fixture()
def make_session():
    """Build and join sessions; every session is left at teardown."""
    sessions = []

    def _make(context, name='Alice', side='home', sid=None, device_id=None):
        recorder = Recorder()
        session = PartySession(context, sid or f'sid-{len(sessions)}', emit=recorder)
        session.recorder = recorder
        session.join(name, side, device_id=device_id)
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.leave()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
