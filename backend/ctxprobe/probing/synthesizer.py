"""Content synthesis: build a prompt that lands on a requested token count.

Filler is appended in structured blocks and every block is measured with the
token counter, so drift from encoding non-linearity stays bounded. Blocks
that no longer fit give way to single-word filler. A last pass appends
single-token pieces against whole-text counts until the next one would
overshoot.
"""

import math
from dataclasses import dataclass

from ctxprobe.probing.tokens import DEFAULT_ENCODING, TokenCounter

DEFAULT_TOLERANCE = 32

PREAMBLE = (
    "# Context capacity check\n"
    "\n"
    "This request measures how much context the endpoint accepts.\n"
    "The material below is filler laid out as a content-analysis document.\n"
    "Do not analyze or summarize it. Reply with the single word: ACK\n"
    "\n"
    "## Material\n"
)

PROJECT_CONTEXT_HEADER = "## Project context\n"

SECTION_TOPICS = [
    "Architecture",
    "Data flow",
    "Error handling",
    "Performance",
    "Testing",
    "Deployment",
    "Security",
    "Observability",
]

SENTENCE_TEMPLATES = [
    "Part {n} describes how the {topic} concerns of this component interact with its neighbours.",
    "Each {topic} decision in part {n} is written down so later readers can follow it.",
    "The {topic} notes for part {n} list inputs, outputs, and the rules that connect them.",
    "Reviewers of part {n} compare the {topic} plan with the behaviour they observe.",
    "Open {topic} questions from part {n} stay on the list until the next revision.",
]

FILLER_WORDS = ["alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel"]

# Single-token piece for closing the last few tokens of a gap.
TOP_UP_PIECE = " a"


@dataclass(frozen=True)
class SynthesizedContent:
    text: str
    token_count: int


class ContentSynthesizer:
    """Produces text whose token count is within tolerance of a target."""

    def __init__(self, counter: TokenCounter, *, tolerance: int = DEFAULT_TOLERANCE) -> None:
        self._counter = counter
        self.tolerance = tolerance

    def synthesize(
        self,
        target_tokens: int,
        encoding: str = DEFAULT_ENCODING,
        *,
        project_context: str | None = None,
    ) -> str:
        return self.compose(target_tokens, encoding, project_context=project_context).text

    def compose(
        self,
        target_tokens: int,
        encoding: str = DEFAULT_ENCODING,
        *,
        project_context: str | None = None,
    ) -> SynthesizedContent:
        """Build the payload and return it with its measured token count.

        Targets smaller than the preamble return the preamble unchanged; the
        preamble is never trimmed.
        """
        base = self._preamble(project_context)
        running = self._counter.count(base, encoding)
        pieces = [base]

        index = 0
        while running < target_tokens:
            block = _filler_block(index)
            cost = self._counter.count(block, encoding)
            if cost == 0 or running + cost > target_tokens:
                break
            pieces.append(block)
            running += cost
            index += 1

        if index:
            # Per-block counts drift at the joins; resync before the word pass.
            running = self._counter.count("".join(pieces), encoding)
        self._fill_words(pieces, running, target_tokens, encoding)
        return self._settle("".join(pieces), len(base), target_tokens, encoding)

    def preamble_tokens(self, encoding: str = DEFAULT_ENCODING, project_context: str | None = None) -> int:
        return self._counter.count(self._preamble(project_context), encoding)

    @staticmethod
    def _preamble(project_context: str | None) -> str:
        if project_context and project_context.strip():
            return f"{PROJECT_CONTEXT_HEADER}{project_context.strip()}\n\n{PREAMBLE}"
        return PREAMBLE

    def _fill_words(
        self, pieces: list[str], running: int, target_tokens: int, encoding: str
    ) -> int:
        """Append single words until the next one would overshoot. Returns the running count."""
        index = 0
        while running < target_tokens:
            piece = " " + FILLER_WORDS[index % len(FILLER_WORDS)]
            cost = self._counter.count(piece, encoding)
            if cost == 0 or running + cost > target_tokens:
                break
            pieces.append(piece)
            running += cost
            index += 1
        return running

    def _settle(
        self, text: str, floor: int, target_tokens: int, encoding: str
    ) -> SynthesizedContent:
        """Re-measure the whole payload and correct it once in either direction."""
        actual = self._counter.count(text, encoding)

        if actual > target_tokens + self.tolerance and len(text) > floor:
            chars_per_token = len(text) / actual
            cut = math.ceil((actual - target_tokens) * chars_per_token)
            text = text[: max(floor, len(text) - cut)]
            actual = self._counter.count(text, encoding)
        elif actual < target_tokens - self.tolerance:
            pieces = [text]
            self._fill_words(pieces, actual, target_tokens, encoding)
            text = "".join(pieces)
            actual = self._counter.count(text, encoding)

        if actual < target_tokens:
            text, actual = self._top_up(text, actual, target_tokens, encoding)
        return SynthesizedContent(text=text, token_count=actual)

    def _top_up(
        self, text: str, actual: int, target_tokens: int, encoding: str
    ) -> tuple[str, int]:
        """Close the remaining gap one short piece at a time, measuring the whole text.

        Per-piece counts over-estimate for ceiling-based counters, so the word
        pass can stop a few tokens short. Stops before overshooting.
        """
        budget = 2 * (target_tokens - actual) + 2
        while actual < target_tokens and budget:
            candidate = text + TOP_UP_PIECE
            measured = self._counter.count(candidate, encoding)
            if measured > target_tokens:
                break
            text, actual = candidate, measured
            budget -= 1
        return text, actual


def _filler_block(index: int) -> str:
    """Labeled section with templated sentences; rotates topics by index."""
    n = index + 1
    topic = SECTION_TOPICS[index % len(SECTION_TOPICS)]
    sentences = " ".join(
        template.format(n=n, topic=topic.lower()) for template in SENTENCE_TEMPLATES
    )
    return f"\n### {topic} {n}\n{sentences}\n"
