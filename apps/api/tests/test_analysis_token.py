import pytest
from jose import jwt

from config import settings
from services.analysis_token import create_analysis_token, decode_analysis_token


def test_token_binds_job_and_slug():
    token = create_analysis_token("analysis-123", "testartist")
    payload = decode_analysis_token(token)

    assert payload["sub"] == "analysis-123"
    assert payload["slug"] == "testartist"
    assert payload["type"] == "artist_analysis"
    assert payload["exp"] > payload["iat"]


def test_tampered_token_is_rejected():
    token = create_analysis_token("analysis-123", "testartist")
    with pytest.raises(ValueError):
        decode_analysis_token(token[:-4] + "AAAA")


def test_other_token_types_are_rejected():
    token = jwt.encode(
        {"sub": "user-1", "slug": "testartist", "type": "session"},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(ValueError):
        decode_analysis_token(token)


def test_expired_token_is_rejected():
    token = jwt.encode(
        {"sub": "analysis-1", "slug": "testartist", "type": "artist_analysis", "exp": 1},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(ValueError):
        decode_analysis_token(token)
