import re
import secrets
from typing import Callable, List, Optional

from sideline.oracle import OracleError
from sideline.store import SERVER_TIMESTAMP, DocumentStore, Query, Snapshot, Subscription
from .types import BOT_SENDERS, ChatMessage, SenderKind, Side


CHAT_COLLECTION = 'chat'


class ChatChannel:
    """Append-only party chat, most recent messages only.

    Live sessions never insert their own messages locally: a sent message
    shows up when the store's snapshot comes back. Solo sessions append to
    their own view and that is the only copy.
    """

    def __init__(self, session, on_change: Optional[Callable[[List[ChatMessage]], None]] = None):
        self.session = session
        self.on_change = on_change
        self.messages: List[ChatMessage] = []
        self.limit = int(session.ctx.setting('CHAT_HISTORY_LIMIT', 60))
        self.subscription: Optional[Subscription] = None

    def subscribe(self, store: DocumentStore) -> Subscription:
        query = Query(CHAT_COLLECTION, order_by='timestamp', descending=True, limit=self.limit)
        self.subscription = store.subscribe(query, self._on_snapshot)
        return self.subscription

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        self._set([ChatMessage.from_dict(doc.id, doc.data) for doc in snapshot])

    def _set(self, messages: List[ChatMessage]) -> None:
        ordered = sorted(messages, key=lambda m: (m.timestamp, m.id))
        self.messages = ordered[-self.limit:]
        if self.on_change is not None:
            self.on_change(self.messages)

    def send(self, text: str) -> Optional[ChatMessage]:
        """Post a message from the session's participant. Blank text is ignored."""
        if not text or not text.strip():
            return None
        text = text.strip()
        participant = self.session.participant
        message = self._publish(participant.id, participant.display_name, participant.side, SenderKind.HUMAN, text)
        token = self.session.ctx.setting('COACH_TOKEN', '@coach')
        if token and token.lower() in text.lower():
            prompt = re.sub(re.escape(token), '', text, flags=re.IGNORECASE).strip()
            self.session.spawn('coach', self._coach_reply, prompt)
        return message

    def post_bot(self, kind: SenderKind, text: str) -> ChatMessage:
        sender_id, sender_name = BOT_SENDERS[kind]
        return self._publish(sender_id, sender_name, None, kind, text)

    def _publish(self, sender_id: str, sender_name: str, side: Optional[Side], kind: SenderKind, text: str) -> ChatMessage:
        ctx = self.session.ctx
        if self.session.is_live:
            message = ChatMessage(
                id='',
                sender_id=sender_id,
                sender_name=sender_name,
                sender_kind=kind,
                text=text,
                timestamp=ctx.clock(),
                sender_side=side,
            )
            data = message.to_dict()
            del data['id']
            data['timestamp'] = SERVER_TIMESTAMP
            message.id = ctx.store.add(CHAT_COLLECTION, data)
            return message
        # Local timestamps keep increasing so a reply never sorts before its prompt
        last = self.messages[-1].timestamp if self.messages else 0
        message = ChatMessage(
            id=secrets.token_hex(8),
            sender_id=sender_id,
            sender_name=sender_name,
            sender_kind=kind,
            text=text,
            timestamp=max(ctx.clock(), last + 1),
            sender_side=side,
        )
        self._set(self.messages + [message])
        return message

    def _coach_reply(self, task, prompt: str) -> None:
        try:
            reply = self.session.ctx.oracle.coach_response(prompt)
        except OracleError as exc:
            self.session.log('warning', f"[coach-skip] session={self.session.sid} error={exc}")
            return
        if task.cancelled:
            return
        self.post_bot(SenderKind.COACH_BOT, reply)
