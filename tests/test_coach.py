"""Tests for the canned-response study coach."""

import pytest

from study_planner.coach.advisor import (
    SUGGESTIONS,
    Intent,
    ReplyCategory,
    classify_intent,
    greeting,
    respond,
)


@pytest.mark.parametrize(
    "text,intent",
    [
        ("How can I improve my study HABITS?", Intent.STUDY_HABITS),
        ("Create a study schedule for me", Intent.SCHEDULE),
        ("help me plan my week", Intent.SCHEDULE),
        ("What's the best way to memorize formulas?", Intent.MEMORIZE),
        ("I never remember dates", Intent.MEMORIZE),
        ("Help me stay motivated", Intent.MOTIVATION),
        ("something to inspire me", Intent.MOTIVATION),
        ("Tips for better focus", Intent.FOCUS),
        ("I can't concentrate", Intent.FOCUS),
        ("hello there", Intent.GENERAL),
        ("", Intent.GENERAL),
    ],
)
def test_classify_intent(text, intent):
    assert classify_intent(text) == intent


def test_first_matching_keyword_wins():
    # "habit" is checked before "plan"
    assert classify_intent("plan better habits") == Intent.STUDY_HABITS


def test_suggestions_route_to_specific_intents():
    intents = [classify_intent(s) for s in SUGGESTIONS]
    assert Intent.GENERAL not in intents
    assert len(set(intents)) == len(SUGGESTIONS)


@pytest.mark.parametrize(
    "intent,category",
    [
        (Intent.STUDY_HABITS, ReplyCategory.TIP),
        (Intent.SCHEDULE, ReplyCategory.SUGGESTION),
        (Intent.MEMORIZE, ReplyCategory.TIP),
        (Intent.MOTIVATION, ReplyCategory.MOTIVATION),
        (Intent.FOCUS, ReplyCategory.TIP),
        (Intent.GENERAL, ReplyCategory.SUGGESTION),
    ],
)
def test_respond_category(intent, category):
    reply = respond(intent)
    assert reply.intent == intent
    assert reply.category == category
    assert reply.content


def test_greeting():
    reply = greeting()
    assert reply.category == ReplyCategory.MOTIVATION
    assert "Study Coach" in reply.content
