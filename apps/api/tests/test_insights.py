import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from analysis.fallback import generate_instagram_posts, generate_tiktok_posts
from services.insights import (
    FALLBACK_ANALYSIS,
    InsightSynthesizer,
    build_analysis_prompt,
    get_openai_client,
)


VALID_RESPONSE = {
    "overallScore": 8.2,
    "insights": [
        {"type": "success", "title": "Reels outperform photos", "description": "Reels get 3x the engagement", "metric": "3x"},
    ],
    "recommendations": ["Post two reels per week"],
    "contentAnalysis": {
        "bestPerforming": "Reels",
        "worstPerforming": "Photos",
        "optimalPostingTime": "8 PM",
        "topHashtags": ["#newmusic"],
    },
    "growthPrediction": {"thirtyDays": 10, "sixtyDays": 22, "ninetyDays": 40},
    "contentGuide": {
        "tone": "Playful",
        "visualStyle": "Warm film grain",
        "captionStyle": "Short, first person",
        "postingCadence": "4 posts per week",
        "do": ["Show the studio"],
        "avoid": ["Stock photos"],
    },
}


def _mock_client(content):
    client = MagicMock()
    message = SimpleNamespace(content=content)
    client.chat.completions.create.return_value = SimpleNamespace(choices=[SimpleNamespace(message=message)])
    return client


def _posts():
    return generate_instagram_posts("artist") + generate_tiktok_posts("artist")


@pytest.mark.parametrize("api_key", ["", "your_openai_api_key", "test-key"])
def test_placeholder_keys_disable_client(api_key):
    assert get_openai_client(api_key) is None


@pytest.mark.asyncio
async def test_missing_key_returns_fixed_fallback():
    result = await InsightSynthesizer(api_key="").synthesize(_posts())

    assert result.overall_score == 7.5
    assert len(result.insights) == 3
    assert len(result.recommendations) == 4
    assert result.growth_prediction.thirty_days == 15
    assert result.growth_prediction.sixty_days == 35
    assert result.growth_prediction.ninety_days == 75


@pytest.mark.asyncio
async def test_valid_response_is_parsed():
    client = _mock_client(json.dumps(VALID_RESPONSE))
    synthesizer = InsightSynthesizer(client=client, model="gpt-test")

    result = await synthesizer.synthesize(_posts(), {"name": "Artist"}, {"total_posts": 27})

    assert result.overall_score == 8.2
    assert result.content_guide.tone == "Playful"
    assert result.content_guide.do == ["Show the studio"]
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert '"name": "Artist"' in kwargs["messages"][1]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        json.dumps(["a", "list"]),
        json.dumps({k: v for k, v in VALID_RESPONSE.items() if k != "growthPrediction"}),
        json.dumps({**VALID_RESPONSE, "overallScore": 11}),
        json.dumps({**VALID_RESPONSE, "insights": []}),
        "",
    ],
)
async def test_malformed_response_returns_fallback(content):
    result = await InsightSynthesizer(client=_mock_client(content)).synthesize(_posts())
    assert result.overall_score == FALLBACK_ANALYSIS["overallScore"]


@pytest.mark.asyncio
async def test_api_error_returns_fallback():
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("rate limited")

    result = await InsightSynthesizer(client=client).synthesize(_posts())

    assert result.overall_score == 7.5


def test_prompt_caps_posts_per_platform():
    posts = generate_instagram_posts("a") + generate_instagram_posts("b") + generate_tiktok_posts("a")
    prompt = build_analysis_prompt(posts)

    assert "INSTAGRAM POSTS ANALYZED (30 posts, top 15 shown)" in prompt
    assert "TIKTOK POSTS ANALYZED (12 posts, top 12 shown)" in prompt
    assert "No music platform data available" in prompt
