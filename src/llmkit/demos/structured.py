"""Structured-output demos.

Natural language in, validated objects out: a calendar form filled from a
one-line request, an email triaged into fixed categories, and a side by
side look at plain text versus a parsed object.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import Field

from ..core.models import CamelModel
from ..llm.client import GenerationClient

DEMO_MODEL = "openai/gpt-5-mini"

SAMPLE_FORM_INPUT = (
    "Coffee with John next Tuesday at 2pm at Starbucks on Market St, discuss Q4 roadmap"
)
SAMPLE_EMAIL_SUBJECT = "Re: Q4 Budget Approval Needed by EOD"
SAMPLE_EMAIL_PREVIEW = (
    "Hi team, I need your approval on the attached Q4 budget proposal by end of day today. "
    "Please review the highlighted sections..."
)
SAMPLE_APPOINTMENT_TEXT = (
    "Team meeting tomorrow 3pm in the conference room with Guillermo and Sarah"
)
SAMPLE_NAMES_TEXT = (
    "In the meeting, Guillermo and Lee discussed the new Vercel AI SDK with Sarah from marketing."
)


class CalendarEvent(CamelModel):
    event_title: str = Field(..., description="The title of the event")
    date: str = Field(..., description="The date of the event")
    time: Optional[str] = Field(None, description="The time of the event")
    duration: Optional[str] = Field(None, description="The duration of the event")
    location: Optional[str] = Field(None, description="Where the event will take place")
    attendees: Optional[List[str]] = Field(None, description="People attending")
    notes: Optional[str] = Field(None, description="Additional notes about the event")


class EmailCategory(str, Enum):
    URGENT = "urgent"
    ACTION_REQUIRED = "action-required"
    FYI = "fyi"
    SPAM = "spam"
    NEWSLETTER = "newsletter"


class EmailPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EmailTriage(CamelModel):
    category: EmailCategory
    priority: EmailPriority
    suggested_folder: Optional[str] = Field(None, description="Suggested folder for the email")
    requires_response: bool = Field(..., description="Whether the email requires a response")
    estimated_response_time: Optional[str] = Field(None, description="Estimated response time")


class Appointment(CamelModel):
    title: str = Field(..., description="The meeting title or subject")
    date: str = Field(..., description="The date of the meeting")
    time: Optional[str] = Field(None, description="The time of the event")
    location: Optional[str] = Field(None, description="Where the event will take place")
    attendees: Optional[List[str]] = Field(None, description="People attending")


@dataclass
class OutputComparison:
    """Plain-text answer next to a structured one."""

    names_text: str
    appointment: Appointment


async def smart_form_fill(
    client: GenerationClient, user_input: str, model: str = DEMO_MODEL
) -> CalendarEvent:
    """Fill a calendar event from free text."""
    return await client.generate_object(
        f'Extract calendar event details from: "{user_input}"',
        CalendarEvent,
        model=model,
        task="extraction",
    )


async def smart_email_triage(
    client: GenerationClient, subject: str, preview: str, model: str = DEMO_MODEL
) -> EmailTriage:
    """Categorise and prioritise an email from its subject and preview."""
    return await client.generate_object(
        f'Analyze and categorize the email: "{subject}"\n\nPreview: {preview}',
        EmailTriage,
        model=model,
        task="classification",
    )


async def compare_outputs(
    client: GenerationClient,
    names_text: str = SAMPLE_NAMES_TEXT,
    appointment_text: str = SAMPLE_APPOINTMENT_TEXT,
    model: str = DEMO_MODEL,
) -> OutputComparison:
    plain = await client.generate_text(
        f"Extract all names from this text: {names_text}", model=model, task="extraction"
    )
    appointment = await client.generate_object(
        f"Parse appointment details from: {appointment_text}",
        Appointment,
        model=model,
        task="extraction",
    )
    return OutputComparison(names_text=plain.text, appointment=appointment)
