import enum
from typing import Dict, List, Set

from .seeds import HALFTIME_POOL, MAIN_POOL
from .types import ActionRejected, TriviaQuestion


class AnswerResult(str, enum.Enum):
    CORRECT = 'correct'
    MISS = 'miss'
    ALREADY_ANSWERED = 'already_answered'


class TriviaEngine:
    """Per-session trivia. Answered questions are tracked locally; points go to the rank table."""

    def __init__(self, session, main_pool=MAIN_POOL, halftime_pool=HALFTIME_POOL):
        self.session = session
        self.main_pool = tuple(main_pool)
        self.halftime_pool = tuple(halftime_pool)
        self.questions: Dict[str, TriviaQuestion] = {q.id: q for q in self.main_pool + self.halftime_pool}
        self.answered: Set[str] = set()

    def available(self, is_halftime: bool = False) -> List[TriviaQuestion]:
        pool = list(self.main_pool)
        if is_halftime:
            pool.extend(self.halftime_pool)
        return pool

    def answer(self, question_id: str, chosen_index: int) -> AnswerResult:
        """Answer a question once. Repeat answers on this session have no effect."""
        question = self.questions.get(question_id)
        if question is None:
            raise ActionRejected(f'Unknown question {question_id}')
        if question_id in self.answered:
            return AnswerResult.ALREADY_ANSWERED
        # Marked before scoring; a failed rank write is not undone
        self.answered.add(question_id)
        if chosen_index != question.correct_option_index:
            return AnswerResult.MISS
        participant = self.session.participant
        self.session.ranks.apply_delta(
            participant.id,
            question.points,
            user_name=participant.display_name,
            side=participant.side,
        )
        return AnswerResult.CORRECT
