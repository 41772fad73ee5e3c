"""Tests for the canned response resolver."""

from __future__ import annotations

import pytest

from drone_studio.services.responses import (
    DEFAULT_TOPIC,
    LANGUAGES,
    QUICK_TOPICS,
    RESPONSES,
    TOPICS,
    detect_topic,
    iter_responses,
    resolve,
    response_table,
)


# ── Topic detection ──────────────────────────────────────────────────────────


class TestDetectTopic:
    @pytest.mark.parametrize("message,topic", [
        ("How do I assemble a drone?", "assembly"),
        ("Drone ASSEMBLY tips", "assembly"),
        ("Which parts do I need?", "components"),
        ("How to maintain it", "maintenance"),
        ("What are the DGCA rules?", "rules"),
        ("Simscape models", "simulation"),
        ("Drones for agriculture", "usecases"),
        ("Tell me a use case", "usecases"),
    ])
    def test_keywords(self, message, topic):
        assert detect_topic(message) == topic

    def test_first_group_wins(self):
        # "assemble" and "parts" both match; assembly is checked first
        assert detect_topic("assemble the parts") == "assembly"

    def test_no_match(self):
        assert detect_topic("hello there") is None
        assert detect_topic("") is None


# ── Resolution ───────────────────────────────────────────────────────────────


class TestResolve:
    def test_english_assembly(self):
        text = resolve("How do I assemble a drone?", "en")
        assert text == RESPONSES["en"]["assembly"]
        assert text.startswith("To assemble a drone for the first time")

    def test_hindi_rules(self):
        assert resolve("DGCA rules?", "hi") == RESPONSES["hi"]["rules"]

    def test_language_without_topic_falls_back_to_its_default(self):
        assert resolve("How do I assemble a drone?", "te") == RESPONSES["te"][DEFAULT_TOPIC]

    def test_unknown_language_uses_english(self):
        assert resolve("How do I assemble a drone?", "xx") == RESPONSES["en"]["assembly"]
        assert response_table("xx") is RESPONSES["en"]

    def test_no_keyword_gives_default(self):
        assert resolve("hello", "en") == RESPONSES["en"][DEFAULT_TOPIC]

    def test_explicit_topic_wins(self):
        assert resolve("How do I assemble a drone?", "en", "rules") == RESPONSES["en"]["rules"]

    def test_unknown_topic_gives_default(self):
        assert resolve("assemble", "en", "weather") == RESPONSES["en"][DEFAULT_TOPIC]

    def test_empty_message(self):
        assert resolve("", "en") == RESPONSES["en"][DEFAULT_TOPIC]

    def test_deterministic(self):
        assert resolve("maintain", "hi") == resolve("maintain", "hi")


# ── Tables ───────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("language", list(LANGUAGES) + ["xx"])
def test_every_pair_resolves_to_text(language):
    for topic in (*TOPICS, None):
        assert resolve("question", language, topic)


@pytest.mark.parametrize("language", list(LANGUAGES))
def test_detected_topic_matches_explicit_topic(language):
    for message in ("assembly steps", "Drone ASSEMBLY?", "my assembly failed"):
        assert resolve(message, language) == resolve("unrelated", language, "assembly")


def test_every_language_has_a_default():
    for language in LANGUAGES:
        assert RESPONSES[language][DEFAULT_TOPIC]


def test_english_covers_every_topic():
    assert set(TOPICS) <= set(RESPONSES["en"])


def test_quick_topics_are_known_topics():
    assert set(QUICK_TOPICS) == set(TOPICS)


def test_quick_topic_questions_resolve_to_their_topic():
    for topic, (_, question) in QUICK_TOPICS.items():
        assert resolve(question, "en") == RESPONSES["en"][topic]


def test_iter_responses_yields_all_entries():
    triples = list(iter_responses())
    assert len(triples) == sum(len(table) for table in RESPONSES.values())
    assert ("hi", "rules", RESPONSES["hi"]["rules"]) in triples


def test_tables_are_read_only():
    with pytest.raises(TypeError):
        RESPONSES["en"]["assembly"] = "changed"  # type: ignore[index]
