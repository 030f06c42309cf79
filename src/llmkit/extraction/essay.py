"""Single-shot insight extraction for documents that fit in one call.

Each insight is requested with its own plain-text prompt; the list and
object answers are asked for as JSON and parsed leniently (markdown fences
and surrounding prose are tolerated).
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..core.errors import ParseError
from ..llm.client import GenerationClient, parse_json_array, parse_json_object
from ..utils.logging import get_logger
from .models import Concepts, Quote

logger = get_logger(__name__)

TAKEAWAY_PROMPT = """What is the key takeaway of this piece in 50 words?
Essay:
{essay}"""

COMPANIES_PROMPT = """Extract all company names from this essay.
Include both explicit mentions and implied references (e.g., "the startup" referring to a previously mentioned company).

Format as JSON array: ["Company 1", "Company 2"]

Essay: {essay}"""

CONCEPTS_PROMPT = """Identify the main business concepts and technical terms in this essay.
Categorize them as either 'business' or 'technical' concepts.

Format as JSON:
{{
  "business": ["concept1", "concept2"],
  "technical": ["term1", "term2"]
}}

Essay: {essay}"""

QUOTES_PROMPT = """Extract all quotes (text in quotation marks) from this essay.
For each quote, identify who said it if mentioned.

Format as JSON array:
[{{"quote": "text here", "speaker": "name or null"}}]

Essay: {essay}"""


class EssayInsights(BaseModel):
    key_takeaway: str
    companies: List[str] = Field(default_factory=list)
    concepts: Concepts = Field(default_factory=Concepts)
    quotes: List[Quote] = Field(default_factory=list)


async def extract_key_takeaway(
    client: GenerationClient, essay: str, model: Optional[str] = None
) -> str:
    """Return the model's 50-word takeaway of ``essay``."""
    result = await client.generate_text(
        TAKEAWAY_PROMPT.format(essay=essay), model=model, task="summarization"
    )
    return result.text.strip()


async def extract_essay_insights(
    client: GenerationClient, essay: str, model: Optional[str] = None
) -> EssayInsights:
    """Run the takeaway, company, concept and quote prompts against ``essay``.

    Raises:
        ParseError: If an answer does not contain the requested JSON shape.
        GenerationError: If any call fails.
    """
    key_takeaway = await extract_key_takeaway(client, essay, model=model)

    companies_answer = await client.generate_text(
        COMPANIES_PROMPT.format(essay=essay), model=model, task="extraction"
    )
    concepts_answer = await client.generate_text(
        CONCEPTS_PROMPT.format(essay=essay), model=model, task="extraction"
    )
    quotes_answer = await client.generate_text(
        QUOTES_PROMPT.format(essay=essay), model=model, task="extraction"
    )

    try:
        companies = [str(name) for name in parse_json_array(companies_answer.text)]
        concepts = Concepts.model_validate(parse_json_object(concepts_answer.text))
        quotes = [Quote.model_validate(item) for item in parse_json_array(quotes_answer.text)]
    except ValidationError as exc:
        raise ParseError(f"Unexpected insight format: {exc}") from exc

    logger.info(
        f"Extracted {len(companies)} companies, "
        f"{len(concepts.business) + len(concepts.technical)} concepts, {len(quotes)} quotes"
    )
    return EssayInsights(
        key_takeaway=key_takeaway,
        companies=companies,
        concepts=concepts,
        quotes=quotes,
    )
