"""Match preview text generation.

The generated analysis is opaque to the rest of the system: an HTML
fragment cached on the match record with its own generated-at stamp.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
from dotenv import load_dotenv
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from pitchside.normalizer import Match

# Ensure .env is loaded for API key access
load_dotenv()

logger = logging.getLogger(__name__)


ANALYSIS_PROMPT = """You are writing a short pre-match preview for a football fixtures website.

Match: {home} vs {away}
Competition: {competition}
Kickoff (UTC): {kickoff}
Venue: {venue}

Write 2-3 short paragraphs covering what is at stake and what to watch for.

RULES:
- Respond with an HTML fragment using only <p>, <strong> and <em> tags
- No headings, no markdown, no surrounding <html> or <body>
- Do not invent scores, injuries or statistics"""


class AnalysisRateLimitError(Exception):
    """Raised when rate limited by the text-generation API."""
    pass


class AnalysisGenerator(ABC):
    """Produces a free-text HTML analysis for a match."""

    @abstractmethod
    def generate(self, match: Match) -> str:
        """Return an HTML fragment, or "" when nothing could be generated."""
        pass

    @property
    def is_available(self) -> bool:
        return True


class NullAnalysisGenerator(AnalysisGenerator):
    """Used when no API key is configured."""

    def generate(self, match: Match) -> str:
        return ""

    @property
    def is_available(self) -> bool:
        return False


class ClaudeAnalysisGenerator(AnalysisGenerator):
    """Match previews from Anthropic's Claude API."""

    MODEL = "claude-3-haiku-20240307"
    MAX_TOKENS = 700

    def __init__(self, api_key: str, client: Optional[anthropic.Anthropic] = None):
        self._client = client or anthropic.Anthropic(api_key=api_key)

    @staticmethod
    def build_prompt(match: Match) -> str:
        return ANALYSIS_PROMPT.format(
            home=match.home_team.name,
            away=match.away_team.name,
            competition=match.competition_name,
            kickoff=match.kickoff_utc or "TBD",
            venue=match.venue,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(AnalysisRateLimitError),
        reraise=True,
    )
    def _call_claude(self, prompt: str) -> str:
        """
        Call Claude, retrying rate limits with exponential backoff.
        Returns empty string on non-retryable API errors.
        """
        try:
            message = self._client.messages.create(
                model=self.MODEL,
                max_tokens=self.MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
            return message.content[0].text

        except anthropic.RateLimitError as e:
            logger.warning(f"Claude rate limit hit: {e}")
            raise AnalysisRateLimitError(str(e))

        except anthropic.APIConnectionError as e:
            logger.error(f"Claude connection error: {e}")
            return ""

        except anthropic.APIStatusError as e:
            logger.error(f"Claude API error: {e.status_code} - {e.message}")
            return ""

    def generate(self, match: Match) -> str:
        try:
            return self._call_claude(self.build_prompt(match)).strip()
        except AnalysisRateLimitError:
            logger.warning(f"Giving up on analysis for match {match.id} after repeated rate limits")
            return ""


def get_analysis_generator(api_key: Optional[str] = None) -> AnalysisGenerator:
    """
    ClaudeAnalysisGenerator when an Anthropic key is configured, otherwise
    the null generator (analysis is simply left empty).
    """
    api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
    if api_key:
        logger.info("Using Claude for match analysis")
        return ClaudeAnalysisGenerator(api_key=api_key)
    logger.info("No ANTHROPIC_API_KEY set, match analysis disabled")
    return NullAnalysisGenerator()
