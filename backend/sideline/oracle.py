"""
Text generation collaborator for the hub.

Uses Claude Haiku for the short, cheap calls the hub makes during a game:
- sideline facts broadcast into chat on a timer
- coach replies to chat messages carrying the coach command
- live score lookups (with web search) for the scoreboard
- momentum recaps after a score refresh
- fresh prop bets for the Prop Lab
"""

import json
import re
from dataclasses import dataclass, field
from typing import List, Optional

import anthropic


FACT_PROMPT = """You are a football historian on a watch-party second screen. Give ONE surprising championship game fact (max 20 words).

No hashtags. One emoji at most."""

COACH_SYSTEM = """You are the hub's sideline coach at a football watch party. Answer the fan in ONE punchy reply (max 25 words).

Use football lingo. Stay friendly. No hashtags."""

SCORE_PROMPT = """Look up the live score of today's championship football game between {home} (home) and {away} (away).

Answer with ONLY a JSON object:
{{"homeScore": <int or null>, "awayScore": <int or null>, "isHalftime": <true|false>, "sources": [<url>, ...]}}

Use null for a score you could not verify."""

MOMENTUM_PROMPT = """Assess the momentum of the football game {home} {home_score} - {away} {away_score}.

Answer with ONLY a JSON object:
{{"momentum": <0-100, 0 = {home} in control, 100 = {away} in control>, "isBigPlay": <true|false>, "intel": "<one sentence, max 20 words>"}}"""

PROPS_PROMPT = """Invent {count} fun prop bets for a football watch party.

Answer with ONLY a JSON array of objects:
[{{"question": "...", "category": "Game|Player|Entertainment|Stats", "options": ["...", "..."]}}]"""

PROP_CATEGORIES = ('Game', 'Player', 'Entertainment', 'Stats')


class OracleError(RuntimeError):
    """A generation call failed or returned something unusable."""


class OracleUnavailable(OracleError):
    """No API key configured."""


@dataclass
class ScoreReport:
    home_score: Optional[int]
    away_score: Optional[int]
    is_halftime: bool = False
    sources: List[str] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        return self.home_score is not None and self.away_score is not None


@dataclass
class MomentumReport:
    momentum: int
    is_big_play: bool
    intel: str
    sources: List[str] = field(default_factory=list)


def _extract_json(text):
    """Pull the first JSON object or array out of a model reply."""
    match = re.search(r'(\{.*\}|\[.*\])', text or '', re.DOTALL)
    if not match:
        raise OracleError(f"no JSON in reply: {text!r}")
    try:
        return json.loads(match.group(1))
    except ValueError as exc:
        raise OracleError(f"bad JSON in reply: {exc}") from exc


def _score(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = int(value)
    except (TypeError, ValueError):
        return None
    return score if score >= 0 else None


class Oracle:
    def __init__(self, api_key: str, model: str, home: str = 'Home', away: str = 'Away', logger=None):
        self.api_key = api_key
        self.model = model
        self.home = home
        self.away = away
        self.logger = logger
        self._client = None

    def get_client(self):
        """Get Anthropic client, or raise when no key is configured."""
        if not self.api_key:
            raise OracleUnavailable('ANTHROPIC_API_KEY is not set')
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def _generate(self, prompt, system=None, max_tokens=120, search=False):
        client = self.get_client()
        kwargs = {
            'model': self.model,
            'max_tokens': max_tokens,
            'messages': [{'role': 'user', 'content': prompt}],
        }
        if system:
            kwargs['system'] = system
        if search:
            kwargs['tools'] = [{'type': 'web_search_20250305', 'name': 'web_search', 'max_uses': 3}]
        try:
            response = client.messages.create(**kwargs)
        except anthropic.APIError as exc:
            raise OracleError(f"generation failed: {exc}") from exc

        texts = []
        sources = []
        for block in response.content or []:
            if getattr(block, 'type', None) != 'text':
                continue
            texts.append(block.text)
            for citation in getattr(block, 'citations', None) or []:
                url = getattr(citation, 'url', None)
                if url and url not in sources:
                    sources.append(url)
        text = ''.join(texts).strip()
        if not text:
            raise OracleError('empty reply')
        return text, sources

    def sideline_fact(self) -> str:
        text, _ = self._generate(FACT_PROMPT, max_tokens=60)
        return text

    def coach_response(self, prompt: str) -> str:
        text, _ = self._generate(prompt or 'Hype us up!', system=COACH_SYSTEM, max_tokens=80)
        return text

    def live_score(self) -> ScoreReport:
        text, cited = self._generate(SCORE_PROMPT.format(home=self.home, away=self.away), max_tokens=400, search=True)
        data = _extract_json(text)
        if not isinstance(data, dict):
            raise OracleError('score reply is not an object')
        sources = [s for s in data.get('sources') or [] if isinstance(s, str)]
        for url in cited:
            if url not in sources:
                sources.append(url)
        return ScoreReport(
            home_score=_score(data.get('homeScore')),
            away_score=_score(data.get('awayScore')),
            is_halftime=bool(data.get('isHalftime')),
            sources=sources,
        )

    def analyze_momentum(self, home_score: int, away_score: int) -> MomentumReport:
        prompt = MOMENTUM_PROMPT.format(home=self.home, away=self.away, home_score=home_score, away_score=away_score)
        text, cited = self._generate(prompt, max_tokens=200, search=True)
        data = _extract_json(text)
        if not isinstance(data, dict):
            raise OracleError('momentum reply is not an object')
        try:
            momentum = max(0, min(100, int(data.get('momentum', 50))))
        except (TypeError, ValueError):
            momentum = 50
        return MomentumReport(
            momentum=momentum,
            is_big_play=bool(data.get('isBigPlay')),
            intel=str(data.get('intel') or 'Scanning the field...'),
            sources=cited,
        )

    def generate_props(self, count: int = 3) -> List[dict]:
        text, _ = self._generate(PROPS_PROMPT.format(count=count), max_tokens=600)
        data = _extract_json(text)
        if not isinstance(data, list):
            raise OracleError('props reply is not a list')
        props = []
        for item in data:
            if not isinstance(item, dict):
                continue
            options = [str(o) for o in item.get('options') or [] if str(o).strip()]
            question = str(item.get('question') or '').strip()
            if not question or len(options) < 2:
                continue
            category = item.get('category') if item.get('category') in PROP_CATEGORIES else 'Game'
            props.append({'question': question, 'category': category, 'options': options})
        return props
