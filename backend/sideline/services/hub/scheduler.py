from typing import List, Optional

from sideline.oracle import OracleError
from .tasks import Task, TaskGroup
from .types import Recap, SenderKind


class SyncScheduler:
    """Per-session background sync: sideline facts and score refreshes.

    - Ticks every TICK_INTERVAL_SEC while the session is live
    - Each due action first claims its slot by writing the "last performed"
      marker to the shared state, then calls the oracle in its own task
    - The claim is advisory: two sessions ticking inside the same window can
      both fire, and a failed call still uses up its window
    - No loop is started in TESTING unless ENABLE_SCHEDULER_IN_TESTS is set;
      tests drive :meth:`tick` directly
    """

    def __init__(self, session):
        self.session = session
        ctx = session.ctx
        self.tick_interval = float(ctx.setting('TICK_INTERVAL_SEC', 30))
        self.fact_interval_ms = int(ctx.setting('FACT_INTERVAL_SEC', 480)) * 1000
        self.score_interval_ms = int(ctx.setting('SCORE_CHECK_INTERVAL_SEC', 300)) * 1000
        self.tasks = TaskGroup()
        self._loop: Optional[Task] = None

    @property
    def running(self) -> bool:
        return self._loop is not None and not self._loop.cancelled

    def start(self) -> None:
        ctx = self.session.ctx
        if self.running:
            return
        if ctx.setting('TESTING') and not ctx.setting('ENABLE_SCHEDULER_IN_TESTS'):
            return
        self.session.log('info', f"[sync-start] session={self.session.sid} tick={self.tick_interval}s")
        self._loop = ctx.runner.spawn('sync-loop', self._run)

    def stop(self) -> None:
        if self._loop is not None:
            self._loop.cancel()
            self._loop = None
        self.tasks.cancel_all()

    def _run(self, task: Task) -> None:
        runner = self.session.ctx.runner
        while not task.cancelled:
            runner.sleep(self.tick_interval)
            if task.cancelled:
                break
            try:
                self.tick()
            except Exception:
                # A failed tick is skipped; the next one runs on schedule
                self.session.log('exception', f"[sync-error] session={self.session.sid}")
            if runner.inline:
                break

    def tick(self, now: Optional[int] = None) -> List[str]:
        """Run one tick and return the names of the actions it claimed."""
        if not self.session.is_live:
            return []
        ctx = self.session.ctx
        now = ctx.clock() if now is None else now
        state = self.session.game.state
        claimed = []

        if now - state.last_fact_broadcast_at >= self.fact_interval_ms:
            self.session.game.patch(last_fact_broadcast_at=now)
            self.session.log('info', f"[fact-claim] session={self.session.sid} at={now}")
            self.tasks.add(ctx.runner.spawn('fact', self._broadcast_fact))
            claimed.append('fact')

        if now - state.last_score_check_at >= self.score_interval_ms:
            self.session.game.patch(last_score_check_at=now)
            self.session.log('info', f"[score-claim] session={self.session.sid} at={now}")
            self.tasks.add(ctx.runner.spawn('score', self._refresh_score))
            claimed.append('score')

        return claimed

    def _broadcast_fact(self, task: Task) -> None:
        try:
            fact = self.session.ctx.oracle.sideline_fact()
        except OracleError as exc:
            self.session.log('warning', f"[fact-skip] session={self.session.sid} error={exc}")
            return
        if task.cancelled:
            return
        self.session.chat.post_bot(SenderKind.FACT_BOT, fact)

    def _refresh_score(self, task: Task) -> None:
        ctx = self.session.ctx
        try:
            report = ctx.oracle.live_score()
        except OracleError as exc:
            self.session.log('warning', f"[score-skip] session={self.session.sid} error={exc}")
            return
        if task.cancelled:
            return
        if not report.usable:
            self.session.log('info', f"[score-skip] session={self.session.sid} no usable score")
            return
        self.session.game.patch(
            home_score=report.home_score,
            away_score=report.away_score,
            is_halftime=report.is_halftime,
            verification_sources=report.sources,
        )
        self.session.log('info', f"[score-set] session={self.session.sid} home={report.home_score} away={report.away_score} halftime={report.is_halftime}")

        try:
            momentum = ctx.oracle.analyze_momentum(report.home_score, report.away_score)
        except OracleError as exc:
            self.session.log('warning', f"[recap-skip] session={self.session.sid} error={exc}")
            return
        if task.cancelled:
            return
        self.session.recap.publish(Recap(
            momentum=momentum.momentum,
            is_big_play=momentum.is_big_play,
            intel=momentum.intel,
            sources=momentum.sources or report.sources,
            updated_at=ctx.clock(),
        ))
