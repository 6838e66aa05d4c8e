"""Leaderboard ranking and awards.

Pure functions over rank entries, user bets and prop bets. Nothing here is
stored; callers rebuild the board whenever one of the inputs changes. Every
award goes to the whole tie group, ties are never broken.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .betting import LOSS_POINTS, WIN_POINTS
from .rank import sort_entries
from .types import BetStatus, PropBet, RankEntry, UserBet


MVP = 'MVP'
WOODEN_SPOON = 'Wooden Spoon'
STATS_FUMBLE = 'Stats Fumble'

CATEGORY_AWARDS = {
    'Stats': 'Stats Guru',
    'Game': 'Game Caller',
    'Player': 'Player Whisperer',
    'Entertainment': 'Showtime Oracle',
}


@dataclass
class Leaderboard:
    ranking: List[RankEntry]
    awards: Dict[str, List[str]] = field(default_factory=dict)
    category_points: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def awards_for(self, user_id: str) -> List[str]:
        return [name for name, winners in self.awards.items() if user_id in winners]

    def to_dict(self):
        return {
            'ranking': [
                dict(entry.to_dict(), rank=idx + 1, awards=self.awards_for(entry.user_id))
                for idx, entry in enumerate(self.ranking)
            ],
            'awards': {name: list(winners) for name, winners in self.awards.items()},
        }


def _tied_at(scores: Dict[str, int], target: int) -> List[str]:
    return [uid for uid, pts in scores.items() if pts == target]


def category_points(entries: Iterable[RankEntry], user_bets: Iterable[UserBet], prop_bets: Iterable[PropBet]) -> Dict[str, Dict[str, int]]:
    """Points won or lost per category and participant, from settled bets on resolved props."""
    user_ids = [e.user_id for e in entries]
    props = {p.id: p for p in prop_bets}
    table = {cat: {uid: 0 for uid in user_ids} for cat in CATEGORY_AWARDS}
    for bet in user_bets:
        prop = props.get(bet.bet_id)
        if prop is None or not prop.resolved or prop.category not in table:
            continue
        if bet.user_id not in table[prop.category]:
            continue
        if bet.status is BetStatus.WON:
            table[prop.category][bet.user_id] += WIN_POINTS
        elif bet.status is BetStatus.LOST:
            table[prop.category][bet.user_id] += LOSS_POINTS
    return table


def build_leaderboard(entries: Iterable[RankEntry], user_bets: Iterable[UserBet], prop_bets: Iterable[PropBet]) -> Leaderboard:
    ranking = sort_entries(entries)
    board = Leaderboard(ranking=ranking)
    if not ranking:
        return board

    points = {e.user_id: e.points for e in ranking}
    top = max(points.values())
    if top > 0:
        board.awards[MVP] = _tied_at(points, top)
    if len(ranking) > 1:
        board.awards[WOODEN_SPOON] = _tied_at(points, min(points.values()))

    board.category_points = category_points(ranking, user_bets, prop_bets)
    for category, award in CATEGORY_AWARDS.items():
        scores = board.category_points[category]
        best = max(scores.values())
        if best > 0:
            board.awards[award] = _tied_at(scores, best)

    stats = board.category_points['Stats']
    worst = min(stats.values())
    if worst < 0:
        board.awards[STATS_FUMBLE] = _tied_at(stats, worst)
    return board
