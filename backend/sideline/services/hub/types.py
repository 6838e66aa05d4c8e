"""Document shapes shared by the hub engines.

Attributes are snake_case; ``to_dict`` / ``from_dict`` use the camelCase field
names stored in the document store, which every deployed client reads.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ActionRejected(Exception):
    """A user action that is not allowed in the current state."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Side(str, enum.Enum):
    HOME = 'home'
    AWAY = 'away'


class SenderKind(str, enum.Enum):
    HUMAN = 'human'
    FACT_BOT = 'fact_bot'
    COACH_BOT = 'coach_bot'


BOT_SENDERS = {
    SenderKind.FACT_BOT: ('bot-fact', 'Sideline Intel'),
    SenderKind.COACH_BOT: ('bot-coach', 'Coach'),
}


class BetStatus(str, enum.Enum):
    PENDING = 'pending'
    WON = 'won'
    LOST = 'lost'


@dataclass
class Participant:
    id: str
    display_name: str
    side: Side
    cumulative_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'displayName': self.display_name,
            'side': self.side.value,
            'cumulativePoints': self.cumulative_points,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Participant':
        return cls(
            id=str(data['id']),
            display_name=str(data['displayName']),
            side=Side(data.get('side', Side.HOME.value)),
            cumulative_points=int(data.get('cumulativePoints') or 0),
        )


@dataclass
class ChatMessage:
    id: str
    sender_id: str
    sender_name: str
    sender_kind: SenderKind
    text: str
    timestamp: int
    sender_side: Optional[Side] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'senderId': self.sender_id,
            'senderName': self.sender_name,
            'senderSide': self.sender_side.value if self.sender_side else None,
            'senderKind': self.sender_kind.value,
            'text': self.text,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'ChatMessage':
        side = data.get('senderSide')
        return cls(
            id=doc_id,
            sender_id=str(data.get('senderId', '')),
            sender_name=str(data.get('senderName', '')),
            sender_kind=SenderKind(data.get('senderKind', SenderKind.HUMAN.value)),
            text=str(data.get('text', '')),
            timestamp=int(data.get('timestamp') or 0),
            sender_side=Side(side) if side else None,
        )


@dataclass(frozen=True)
class TriviaQuestion:
    id: str
    text: str
    options: List[str]
    correct_option_index: int
    points: int
    bonus: bool = False

    def to_dict(self) -> Dict[str, Any]:
        # correctOptionIndex stays server-side
        return {
            'id': self.id,
            'text': self.text,
            'options': list(self.options),
            'points': self.points,
            'bonus': self.bonus,
        }


@dataclass
class PropBet:
    id: str
    question: str
    category: str
    options: List[str]
    resolved: bool = False
    outcome: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'question': self.question,
            'category': self.category,
            'options': list(self.options),
            'resolved': self.resolved,
            'outcome': self.outcome,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'PropBet':
        return cls(
            id=doc_id,
            question=str(data.get('question', '')),
            category=str(data.get('category', 'Game')),
            options=[str(o) for o in data.get('options') or []],
            resolved=bool(data.get('resolved')),
            outcome=data.get('outcome'),
        )


@dataclass
class UserBet:
    id: str
    user_id: str
    bet_id: str
    selection: str
    status: BetStatus = BetStatus.PENDING
    placed_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'userId': self.user_id,
            'betId': self.bet_id,
            'selection': self.selection,
            'status': self.status.value,
            'placedAt': self.placed_at,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'UserBet':
        return cls(
            id=doc_id,
            user_id=str(data.get('userId', '')),
            bet_id=str(data.get('betId', '')),
            selection=str(data.get('selection', '')),
            status=BetStatus(data.get('status', BetStatus.PENDING.value)),
            placed_at=int(data.get('placedAt') or 0),
        )


@dataclass
class RankEntry:
    user_id: str
    user_name: str
    side: Optional[Side] = None
    points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'userName': self.user_name,
            'side': self.side.value if self.side else None,
            'points': self.points,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'RankEntry':
        side = data.get('side')
        return cls(
            user_id=str(data.get('userId') or doc_id),
            user_name=str(data.get('userName') or ''),
            side=Side(side) if side else None,
            points=int(data.get('points') or 0),
        )


@dataclass
class Recap:
    momentum: int = 50
    is_big_play: bool = False
    intel: str = ''
    sources: List[str] = field(default_factory=list)
    updated_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'momentum': self.momentum,
            'isBigPlay': self.is_big_play,
            'intel': self.intel,
            'sources': list(self.sources),
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Recap':
        return cls(
            momentum=int(data.get('momentum', 50)),
            is_big_play=bool(data.get('isBigPlay')),
            intel=str(data.get('intel') or ''),
            sources=[str(s) for s in data.get('sources') or []],
            updated_at=int(data.get('updatedAt') or 0),
        )
