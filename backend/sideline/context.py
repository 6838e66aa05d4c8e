"""Application context shared by every party session.

Built once in ``create_app`` and reachable as ``app.extensions['sideline']``.
Sessions receive it explicitly; nothing in the hub reaches for module-level
handles to the store, the oracle or device identities.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict

from sideline.identity import IdentityStore
from sideline.oracle import Oracle
from sideline.services.hub.tasks import TaskRunner
from sideline.store import DocumentStore, now_ms, store_configured


@dataclass
class HubContext:
    config: dict
    store: DocumentStore
    oracle: Oracle
    runner: TaskRunner
    identities: IdentityStore
    logger: object
    clock: Callable[[], int] = now_ms
    # Live sessions keyed by socket id
    sessions: Dict[str, object] = field(default_factory=dict)
    sessions_lock: threading.Lock = field(default_factory=threading.Lock)

    def setting(self, key, default=None):
        return self.config.get(key, default)


def build_context(app, oracle=None, clock=None) -> HubContext:
    cfg = app.config
    available = store_configured(cfg)
    if available:
        app.logger.info(f"[store] project={cfg.get('STORE_PROJECT_ID')} live sync enabled")
    else:
        app.logger.info("[store] credentials missing; sessions will run solo")
    clock = clock or now_ms
    if oracle is None:
        oracle = Oracle(
            api_key=cfg.get('ANTHROPIC_API_KEY', ''),
            model=cfg.get('ORACLE_MODEL', 'claude-3-5-haiku-latest'),
            home=cfg.get('HOME_TEAM', 'Home'),
            away=cfg.get('AWAY_TEAM', 'Away'),
            logger=app.logger,
        )
    return HubContext(
        config=cfg,
        store=DocumentStore(app, available=available, clock=clock),
        oracle=oracle,
        runner=TaskRunner(inline=bool(cfg.get('TESTING')), logger=app.logger),
        identities=IdentityStore(cfg.get('IDENTITY_DIR', 'instance/identities')),
        logger=app.logger,
        clock=clock,
    )
