# tests/test_fallback.py
from backend.enrich.fallback import fallback_sentiment, fallback_summary


def test_two_positive_keywords():
    assert fallback_sentiment("Great service and a wonderful team") == ("positive", 0.7)


def test_negative_keywords_win():
    sentiment, confidence = fallback_sentiment("TERRIBLE wait, awful food, I hate it")
    assert sentiment == "negative"
    assert confidence == 0.8  # capped


def test_tie_and_no_keywords_are_neutral():
    assert fallback_sentiment("good start but bad ending") == ("neutral", 0.5)
    assert fallback_sentiment("The meeting is on Tuesday") == ("neutral", 0.5)


def test_repeated_keyword_counts_once():
    assert fallback_sentiment("good good good") == ("positive", 0.6)


def test_substring_match():
    # "goodness" contains "good"
    assert fallback_sentiment("thank goodness")[0] == "positive"


def test_summary_first_two_sentences():
    assert fallback_summary("A. B. C.") == "A. B."
    assert fallback_summary("One thing! Another thing? A third thing.") == "One thing. Another thing."


def test_summary_short_text_unchanged():
    assert fallback_summary("Only one sentence here.") == "Only one sentence here."
    assert fallback_summary("First. Second.") == "First. Second."
    assert fallback_summary("...") == "..."
