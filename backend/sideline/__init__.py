from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config, oracle=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # The hub context is built once here and handed to everything that needs
    # the store, the oracle or device identities
    from sideline.context import build_context
    ctx = build_context(flask_app, oracle=oracle)
    flask_app.extensions['sideline'] = ctx

    from sideline.api.hub import hub
    flask_app.register_blueprint(hub, url_prefix='/api/hub')

    @flask_app.route('/')
    def index():
        return jsonify({'message': 'Welcome to the Sideline hub!'})

    from sideline.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('hub-reset')
    def hub_reset_command():
        """Drops, recreates, and seeds the document store."""
        from sideline.services.hub.betting import seed_props
        from sideline.services.hub.state import seed_game_state
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            if ctx.store.is_available():
                seed_props(ctx.store)
                seed_game_state(ctx.store)
                print('Document store has been reset and seeded!')
            else:
                print('Tables recreated; store credentials missing so nothing was seeded.')

    flask_app.cli.add_command(hub_reset_command)

    return flask_app
