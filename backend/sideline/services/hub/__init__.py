"""Hub domain services: shared state sync, chat, trivia, betting and ranking.

Each connected client gets a :class:`~sideline.services.hub.session.PartySession`
that owns one instance of every engine. Transport code (socket handlers and
HTTP routes) only forwards intents to a session, keeping wire concerns out of
the game mechanics.
"""
