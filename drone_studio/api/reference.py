"""Reference data: supported languages and quick-topic questions."""

from __future__ import annotations

from fastapi import APIRouter

from drone_studio.schemas.chat import LanguageOut, QuickTopicOut
from drone_studio.services.responses import LANGUAGES, QUICK_TOPICS

router = APIRouter()


@router.get("/languages", response_model=list[LanguageOut])
def list_languages():
    return [LanguageOut(code=code, name=name) for code, name in LANGUAGES.items()]


@router.get("/topics", response_model=list[QuickTopicOut])
def list_topics():
    return [
        QuickTopicOut(id=topic, label=label, question=question)
        for topic, (label, question) in QUICK_TOPICS.items()
    ]
