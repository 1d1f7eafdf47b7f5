"""Render a stored profile into the context paragraph used for drafting replies."""

from __future__ import annotations

import json
from datetime import date

from personal_context.domain.profile import PersonalContextProfile

FALLBACK_CONTEXT = "I am a busy professional. I prefer concise and direct communication."
MAX_KNOWLEDGE_AREAS = 3


def format_date(today: date) -> str:
    """Month/day/year without zero padding, e.g. ``10/5/2026``."""
    return f"{today.month}/{today.day}/{today.year}"


def draft_context_sentences(profile: PersonalContextProfile) -> list[str]:
    """Describe *profile* as a list of short first-person context sentences."""
    style = profile.communication_patterns.global_style
    sentences = [f"Communication style: {style.tone} tone, formality level {style.formality}/10."]
    if style.greeting_style:
        sentences.append(f"Preferred greetings: {', '.join(style.greeting_style)}.")
    if style.closing_style:
        sentences.append(f"Preferred sign-offs: {', '.join(style.closing_style)}.")

    professional = profile.professional_profile
    sentences.extend(
        [
            f"Current role: {professional.job_title}",
            f"Company: {professional.company}",
            f"Department: {professional.department}",
            f"Management level: {professional.management_level.value}",
        ]
    )

    preferences = profile.personal_preferences
    formality = preferences.communication_preferences.formality_by_context
    if formality:
        sentences.append(f"Formality preferences: {json.dumps(formality)}")
    sentences.append(f"Decision making style: {preferences.decision_making_style}")

    top_areas = sorted(profile.knowledge_areas, key=lambda k: k.confidence, reverse=True)
    if top_areas:
        areas = ", ".join(
            f"{area.domain} ({area.expertise_level.value})"
            for area in top_areas[:MAX_KNOWLEDGE_AREAS]
        )
        sentences.append(f"Knowledge areas: {areas}.")
    return sentences


def render_draft_context(profile: PersonalContextProfile | None, today: date) -> str:
    """Join the profile sentences and today's date into one paragraph.

    Without a profile the generic busy-professional context is returned.
    """
    sentences = draft_context_sentences(profile) if profile else [FALLBACK_CONTEXT]
    sentences.append(f"Today is {format_date(today)}.")
    return " ".join(sentences)
