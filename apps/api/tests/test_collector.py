import asyncio

import pytest

from services.collector import PlatformCollector
from services.scrapers import ProviderFailedError, ProviderTimeoutError


class _FakeScrapeClient:
    def __init__(self, posts=None, profile=None, configured=True):
        self.posts = posts
        self.profile = profile
        self.configured = configured
        self.modes = []
        self.closed = False

    async def scrape(self, handle, mode="posts"):
        self.modes.append(mode)
        result = self.posts if mode == "posts" else self.profile
        if isinstance(result, BaseException):
            raise result
        return result

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_unconfigured_platform_uses_fallback():
    collector = PlatformCollector({})

    collection = await collector.collect("instagram", "testuser")

    assert len(collection.posts) == 15
    assert collection.posts_fallback is True
    assert collection.profile is not None
    assert collection.profile_fallback is True
    scores = [post.engagement_score for post in collection.posts]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_provider_data_is_normalized_and_ranked():
    client = _FakeScrapeClient(
        posts=[
            {"text": "low", "diggCount": 5},
            {"text": "high", "diggCount": 500, "playCount": 1000},
        ],
        profile=[{"authorMeta": {"fans": 4200, "avatar": "https://cdn.example/a.jpg"}}],
    )
    collector = PlatformCollector({"tiktok": client})

    collection = await collector.collect("tiktok", "artist")

    assert [post.caption for post in collection.posts] == ["high", "low"]
    assert collection.posts_fallback is False
    assert collection.profile.follower_count == 4200
    assert collection.profile_fallback is False
    assert sorted(client.modes) == ["posts", "profile"]


@pytest.mark.asyncio
async def test_provider_failure_falls_back_per_dataset():
    client = _FakeScrapeClient(
        posts=ProviderTimeoutError("timed out"),
        profile=[{"followersCount": 900}],
    )
    collector = PlatformCollector({"instagram": client})

    collection = await collector.collect("instagram", "artist")

    assert len(collection.posts) == 15
    assert collection.posts_fallback is True
    assert collection.profile.follower_count == 900
    assert collection.profile_fallback is False


@pytest.mark.asyncio
async def test_hidden_likes_only_result_falls_back():
    client = _FakeScrapeClient(
        posts=[{"caption": "hidden", "likesCount": -1}],
        profile=ProviderFailedError("no profile"),
    )
    collector = PlatformCollector({"instagram": client})

    collection = await collector.collect("instagram", "artist")

    assert collection.posts_fallback is True
    assert collection.profile_fallback is True
    assert all(post.caption != "hidden" for post in collection.posts)


@pytest.mark.asyncio
async def test_fallback_disabled_returns_nothing():
    collector = PlatformCollector({}, fallback_enabled=False)

    collection = await collector.collect("tiktok", "artist")

    assert collection.posts == []
    assert collection.profile is None


@pytest.mark.asyncio
async def test_aclose_closes_every_client():
    clients = {"instagram": _FakeScrapeClient(), "tiktok": _FakeScrapeClient()}
    await PlatformCollector(clients).aclose()
    assert all(client.closed for client in clients.values())


class _RendezvousScrapeClient:
    """Each mode waits for the other to start, so only concurrent calls finish."""

    configured = True

    def __init__(self):
        self.started = {"posts": asyncio.Event(), "profile": asyncio.Event()}

    async def scrape(self, handle, mode="posts"):
        other = "profile" if mode == "posts" else "posts"
        self.started[mode].set()
        await asyncio.wait_for(self.started[other].wait(), timeout=1)
        if mode == "posts":
            return [{"text": "real", "diggCount": 10}]
        return [{"authorMeta": {"fans": 77}}]

    async def aclose(self):
        return None


@pytest.mark.asyncio
async def test_posts_and_profile_are_fetched_concurrently():
    collector = PlatformCollector({"tiktok": _RendezvousScrapeClient()})

    collection = await asyncio.wait_for(collector.collect("tiktok", "artist"), timeout=5)

    assert collection.posts_fallback is False
    assert collection.profile_fallback is False
    assert [post.caption for post in collection.posts] == ["real"]
    assert collection.profile.follower_count == 77


@pytest.mark.asyncio
async def test_one_odd_provider_item_keeps_the_real_posts():
    client = _FakeScrapeClient(
        posts=[
            {"text": "seconds", "diggCount": 100, "createTime": 1760000000},
            {"text": "millis", "diggCount": 50, "createTime": 1760000000000},
        ],
        profile=[{"authorMeta": {"fans": 10}}],
    )
    collector = PlatformCollector({"tiktok": client})

    collection = await collector.collect("tiktok", "artist")

    assert collection.posts_fallback is False
    assert [post.caption for post in collection.posts] == ["seconds", "millis"]


@pytest.mark.asyncio
async def test_cancellation_is_not_turned_into_fallback_data():
    client = _FakeScrapeClient(posts=asyncio.CancelledError(), profile=[{"followersCount": 1}])
    collector = PlatformCollector({"instagram": client})

    with pytest.raises(asyncio.CancelledError):
        await collector.collect("instagram", "artist")
