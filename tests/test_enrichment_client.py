# tests/test_enrichment_client.py
import asyncio
import json

import httpx
import pytest

from backend.enrich.client import (
    EnrichmentClient,
    EnrichmentConfig,
    parse_sentiment_payload,
)

CONFIG = EnrichmentConfig(api_key="hf-test", base_url="https://hf.test/models", timeout_s=2.0)
LONG_TEXT = (
    "The new community centre has been a great addition to the neighbourhood. "
    "Parking is still difficult on weekends. "
    "Opening hours should be extended into the evening for working families."
)


def client_with(handler, config=CONFIG):
    return EnrichmentClient(config, transport=httpx.MockTransport(handler))


def test_classify_maps_highest_label():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["authorization"]
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[[
            {"label": "LABEL_0", "score": 0.05},
            {"label": "LABEL_1", "score": 0.15},
            {"label": "LABEL_2", "score": 0.80},
        ]])

    res = asyncio.run(client_with(handler).classify_sentiment("love it"))
    assert res.sentiment == "positive"
    assert res.confidence == pytest.approx(0.80)
    assert seen["auth"] == "Bearer hf-test"
    assert seen["url"] == "https://hf.test/models/cardiffnlp/twitter-roberta-base-sentiment-latest"
    assert seen["body"]["options"] == {"wait_for_model": True}


def test_classify_accepts_named_labels():
    res = parse_sentiment_payload([[{"label": "negative", "score": 0.9}, {"label": "positive", "score": 0.1}]])
    assert (res.sentiment, res.confidence) == ("negative", 0.9)


@pytest.mark.parametrize("response", [
    httpx.Response(503, json={"error": "loading"}),
    httpx.Response(200, json={"error": "weird"}),
    httpx.Response(200, json=[[{"label": "LABEL_9", "score": 1.0}]]),
    httpx.Response(200, text="not json"),
])
def test_classify_falls_back(response):
    res = asyncio.run(client_with(lambda req: response).classify_sentiment("great and amazing"))
    assert (res.sentiment, res.confidence) == ("positive", 0.7)


def test_classify_falls_back_on_transport_error():
    def handler(request):
        raise httpx.ConnectError("down", request=request)

    res = asyncio.run(client_with(handler).classify_sentiment("awful"))
    assert (res.sentiment, res.confidence) == ("negative", 0.6)


def test_short_text_skips_remote():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    text = "x" * 99
    assert asyncio.run(client_with(handler).summarize(text)) == text
    assert calls == []


def test_hundred_char_text_goes_remote():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[{"summary_text": "short version"}])

    assert asyncio.run(client_with(handler).summarize("x" * 100)) == "short version"
    assert len(calls) == 1


def test_summarize_uses_remote_summary():
    def handler(request):
        body = json.loads(request.content)
        assert body["parameters"] == {"max_length": 150, "min_length": 30, "do_sample": False}
        assert request.url.path.endswith("/facebook/bart-large-cnn")
        return httpx.Response(200, json=[{"summary_text": "  Centre is great; parking is hard.  "}])

    assert asyncio.run(client_with(handler).summarize(LONG_TEXT)) == "Centre is great; parking is hard."


def test_summarize_falls_back_to_two_sentences():
    summary = asyncio.run(client_with(lambda req: httpx.Response(500)).summarize(LONG_TEXT))
    assert summary == (
        "The new community centre has been a great addition to the neighbourhood. "
        "Parking is still difficult on weekends."
    )


def test_hung_remote_call_times_out_to_fallback():
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=[[{"label": "LABEL_0", "score": 1.0}]])

    config = EnrichmentConfig(api_key="hf-test", base_url="https://hf.test/models", timeout_s=0.05)
    res = asyncio.run(client_with(slow, config).classify_sentiment("happy"))
    assert res.sentiment == "positive"


def test_no_api_key_goes_straight_to_fallback():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[])

    c = client_with(handler, EnrichmentConfig(api_key=""))
    res = asyncio.run(c.enrich(LONG_TEXT))
    assert res.succeeded
    assert res.sentiment == "positive"
    assert calls == []


def test_enrich_merges_both_calls():
    def handler(request):
        if "sentiment" in request.url.path:
            return httpx.Response(200, json=[[{"label": "LABEL_1", "score": 0.66}]])
        return httpx.Response(200, json=[{"summary_text": "Short summary."}])

    res = asyncio.run(client_with(handler).enrich(LONG_TEXT))
    assert res.succeeded
    assert (res.sentiment, res.confidence, res.summary) == ("neutral", 0.66, "Short summary.")


def test_enrich_absorbs_unexpected_error(monkeypatch):
    c = client_with(lambda req: httpx.Response(500))

    async def boom(text):
        raise RuntimeError("bug")

    monkeypatch.setattr(c, "summarize", boom)
    res = asyncio.run(c.enrich("some text"))
    assert not res.succeeded
    assert (res.sentiment, res.confidence, res.summary) == ("neutral", 0.0, "some text")


@pytest.mark.parametrize("text", ["", "ok", "hate love", LONG_TEXT, "!!!???", "ünïcödé text " * 20])
def test_enrich_always_in_range(text):
    res = asyncio.run(client_with(lambda req: httpx.Response(502)).enrich(text))
    assert res.sentiment in {"positive", "negative", "neutral"}
    assert 0.0 <= res.confidence <= 1.0
