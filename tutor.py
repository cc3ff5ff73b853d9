"""
AI Tutor: study Q&A, study insights and educational video search using Gemini.

All three calls degrade instead of raising: a failed chat answer becomes a
fallback message, failed insights become ``None`` and a failed video search
becomes an empty list. The timer and analytics never depend on these calls.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ai_resilience import resilient_generate
from models import StudyInsights, Video

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gemini-1.5-pro"
DEFAULT_FAST_MODEL = "gemini-2.0-flash"

UNAVAILABLE_MESSAGE = "The AI is currently unavailable. Please check your internet connection."
EMPTY_ANSWER_MESSAGE = "I'm sorry, I couldn't process that question right now."
DEFAULT_RECOMMENDATION = (
    "Maintain a consistent study schedule of at least 6 hours daily to ensure your "
    "current streak builds strong long-term memory pathways."
)
DEFAULT_VIDEO_QUERY = "HSC Preparation"
MAX_VIDEOS = 8

EDUCATIONAL_CHANNELS = [
    {"name": "Physics Hunters", "id": "physics-hunters"},
    {"name": "ACS", "id": "acs"},
    {"name": "Brothers Suggestions", "id": "brothers"},
    {"name": "Bondi Pathshala", "id": "bondi"},
    {"name": "Meson", "id": "meson"},
    {"name": "10 Minute School", "id": "10ms"},
]

SMART_PROMPTS = [
    {"label": "Exam Strategy", "prompt": "Provide a 7-day intensive study strategy for my HSC subjects."},
    {"label": "Summarize Progress", "prompt": "Summarize my study achievements based on my chapters and subjects."},
    {"label": "Difficult Topic", "prompt": "Choose a difficult topic from HSC Physics or Chemistry and explain it simply."},
    {"label": "Daily Quiz", "prompt": "Ask me 3 challenging MCQs from ICT or Biology."},
]

TUTOR_SYSTEM_PROMPT = """You are "Edu Booster AI", a world-class academic tutor and study strategist for Bangladeshi students (specializing in SSC/HSC levels).
Your goal is to provide deep, accurate, and encouraging explanations.
- When explaining science/math, use analogies related to daily life in Bangladesh.
- Reference common textbook styles like NCTB.
- Format your output with clear headings and bullet points.
- If the user asks for a strategy, consider their study data: {context}.
- Always encourage the student and maintain a helpful, "Senior Brother/Teacher" persona."""

INSIGHTS_PROMPT = """Based on this study data: {data}, identify the top 2 weak and top 2 strong subjects.
Also provide one actionable study tip for tomorrow.
Return JSON with keys "weakSubjects" (array of strings), "strongSubjects" (array of strings) and "recommendation" (string)."""

VIDEO_SEARCH_PROMPT = """Find exactly {count} highly relevant YouTube educational video links for the search term: "{query}".
Target Audience: Bangladeshi Students (HSC/SSC level).
Priority Sources: {sources}.
Return the results as a JSON array of objects.
Each object MUST have: title, channel, url (valid YouTube link), thumbnail, and duration (e.g. '15:45')."""

_YOUTUBE_ID = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")


def youtube_id(url: str) -> str | None:
    """Extract the 11-character video id from a YouTube URL."""
    match = _YOUTUBE_ID.match(url or "")
    if match and len(match.group(2)) == 11:
        return match.group(2)
    return None


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


class StudyTutor:
    """Gemini-backed tutor, insight and video-search collaborator."""

    def __init__(self, api_key: str | None = None, chat_model: str = DEFAULT_CHAT_MODEL,
                 fast_model: str = DEFAULT_FAST_MODEL):
        self.api_key = api_key
        self.chat_model = chat_model
        self.fast_model = fast_model

    def ask(self, question: str, context: dict | None = None) -> str:
        """Answer a study question, or return a fallback message on failure."""
        system = TUTOR_SYSTEM_PROMPT.format(context=json.dumps(context or {}))
        try:
            text, _ = resilient_generate(self.chat_model, question, system=system, api_key=self.api_key)
        except Exception:
            logger.exception("Tutor answer failed")
            return UNAVAILABLE_MESSAGE
        return text.strip() or EMPTY_ANSWER_MESSAGE

    def insights(self, study_data: Any) -> StudyInsights | None:
        prompt = INSIGHTS_PROMPT.format(data=json.dumps(study_data))
        try:
            text, _ = resilient_generate(
                self.fast_model, prompt, json_mode=True, cache_ttl=3600, api_key=self.api_key,
            )
            data = json.loads(_strip_fences(text) or "{}")
        except Exception:
            logger.exception("Study insight generation failed")
            return None
        insights = StudyInsights.from_dict(data)
        if insights is None:
            logger.warning("Insight response had an unexpected shape: %r", data)
        return insights

    def search_videos(self, query: str, platform: str | None = None) -> list[Video]:
        """Search for educational videos; an empty list on any failure."""
        if platform:
            sources = f'specifically from the platform "{platform}"'
        else:
            names = ", ".join(c["name"] for c in EDUCATIONAL_CHANNELS)
            sources = f"from leading Bangladeshi educational platforms like {names}"
        prompt = VIDEO_SEARCH_PROMPT.format(
            count=MAX_VIDEOS, query=query or DEFAULT_VIDEO_QUERY, sources=sources,
        )
        try:
            text, _ = resilient_generate(
                self.fast_model, prompt, json_mode=True, cache_ttl=600, api_key=self.api_key,
            )
            raw = json.loads(_strip_fences(text) or "[]")
        except Exception:
            logger.exception("Video search failed for %r", query)
            return []
        if not isinstance(raw, list):
            logger.warning("Video search returned a non-list payload")
            return []

        videos = []
        for item in raw[:MAX_VIDEOS]:
            video = Video.from_dict(item)
            if video is None:
                continue
            vid = youtube_id(video.url)
            if vid:
                video.thumbnail = f"https://img.youtube.com/vi/{vid}/maxresdefault.jpg"
            videos.append(video)
        return videos


# ── Module-level helpers ───────────────────────────────────


def ask_study_question(question: str, context: dict | None = None, tutor: StudyTutor | None = None) -> str:
    return (tutor or StudyTutor()).ask(question, context)


def get_study_insights(study_data: Any, tutor: StudyTutor | None = None) -> StudyInsights | None:
    return (tutor or StudyTutor()).insights(study_data)


def search_educational_videos(query: str, platform: str | None = None,
                              tutor: StudyTutor | None = None) -> list[Video]:
    return (tutor or StudyTutor()).search_videos(query, platform)
