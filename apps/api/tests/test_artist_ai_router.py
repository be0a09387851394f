import asyncio

import pytest

from services.analysis_token import create_analysis_token


async def _wait_for_completion(client, analysis_id):
    payload = {}
    for _ in range(50):
        response = await client.get(f"/artist-ai/status/{analysis_id}")
        assert response.status_code == 200
        payload = response.json()
        if payload["complete"]:
            break
        await asyncio.sleep(0.02)
    return payload


async def _start(client, **body):
    request = {"artistName": "Test Artist", "instagramUsername": "testuser"}
    request.update(body)
    return await client.post("/artist-ai/analyze", json=request)


@pytest.mark.asyncio
async def test_analyze_returns_202_and_completes_with_fallback_data(api_client):
    client, _ = api_client

    response = await _start(client)
    assert response.status_code == 202
    body = response.json()
    assert body["analysisId"].startswith("analysis-")
    assert body["analysisToken"]

    status = await _wait_for_completion(client, body["analysisId"])
    assert status["complete"] is True
    assert status["success"] is True
    assert status["stage"] == "complete"
    assert status["progress"] == 100
    assert status["estimatedTime"] == 0
    assert status["artistSlug"] == "testartist"
    assert "error" not in status


@pytest.mark.asyncio
async def test_status_while_running_omits_success(api_client):
    client, orchestrator = api_client

    response = await _start(client)
    analysis_id = response.json()["analysisId"]
    status = (await client.get(f"/artist-ai/status/{analysis_id}")).json()

    assert "stage" in status
    if not status["complete"]:
        assert "success" not in status
    await orchestrator.drain(timeout=5)


@pytest.mark.asyncio
async def test_analyze_accepts_snake_case_fields(api_client):
    client, orchestrator = api_client

    response = await client.post(
        "/artist-ai/analyze",
        json={"artist_name": "Snake Case", "tiktok_username": "snake"},
    )

    assert response.status_code == 202
    await orchestrator.drain(timeout=5)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"artistName": "Test Artist", "instagramUsername": "", "tiktokUsername": ""},
        {"artistName": "", "instagramUsername": "testuser"},
    ],
)
async def test_analyze_rejects_invalid_requests(api_client, body):
    client, orchestrator = api_client

    response = await client.post("/artist-ai/analyze", json=body)

    assert response.status_code == 400
    assert orchestrator.active_jobs == 0


@pytest.mark.asyncio
async def test_unknown_status_is_404(api_client):
    client, _ = api_client

    response = await client.get("/artist-ai/status/analysis-does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"] == "Analysis not found or expired"


@pytest.mark.asyncio
async def test_results_and_posts_follow_up(api_client):
    client, orchestrator = api_client

    body = (await _start(client, tiktokUsername="testuser")).json()
    await orchestrator.drain(timeout=5)
    auth = {"Authorization": f"Bearer {body['analysisToken']}"}

    results = await client.get("/artist-ai/results/testartist")
    assert results.status_code == 200
    record = results.json()
    assert record["postsAnalyzed"] == 27
    assert record["analysis"]["overallScore"] == 7.5
    assert "scrapedPosts" not in record

    posts = await client.get("/artist-ai/results/testartist/posts?platform=tiktok", headers=auth)
    assert posts.status_code == 200
    payload = posts.json()
    assert payload["platform"] == "tiktok"
    assert len(payload["posts"]) == 12
    scores = [post["engagementScore"] for post in payload["posts"]]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_posts_follow_up_requires_matching_token(api_client):
    client, orchestrator = api_client

    await _start(client)
    await orchestrator.drain(timeout=5)

    missing = await client.get("/artist-ai/results/testartist/posts?platform=instagram")
    assert missing.status_code == 401

    invalid = await client.get(
        "/artist-ai/results/testartist/posts?platform=instagram",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert invalid.status_code == 401

    other_token = create_analysis_token("analysis-other", "otherartist")
    forbidden = await client.get(
        "/artist-ai/results/testartist/posts?platform=instagram",
        headers={"Authorization": f"Bearer {other_token}"},
    )
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_unknown_results_are_404(api_client):
    client, _ = api_client

    assert (await client.get("/artist-ai/results/nobody")).status_code == 404

    token = create_analysis_token("analysis-1", "nobody")
    response = await client.get(
        "/artist-ai/results/nobody/posts?platform=tiktok",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_liveness_and_root(api_client):
    client, _ = api_client

    assert (await client.get("/health/live")).json() == {"alive": True}
    root = (await client.get("/")).json()
    assert root["name"] == "Artist AI Analysis API"
