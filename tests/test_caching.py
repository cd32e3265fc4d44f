"""Tests for Redis caching of the doctor directory."""

import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_portal.core.redis_client import CacheManager
from clinic_portal.services.doctor_service import DoctorService


def test_cache_manager_get_json():
    """Test CacheManager get_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    # Test cache miss
    mock_redis.get.return_value = None
    result = cache_manager.get_json("test_key")
    assert result is None
    mock_redis.get.assert_called_once_with("test_key")

    # Test cache hit
    mock_redis.reset_mock()
    mock_redis.get.return_value = '{"name": "Test", "value": 123}'
    result = cache_manager.get_json("test_key")
    assert result == {"name": "Test", "value": 123}
    mock_redis.get.assert_called_once_with("test_key")


def test_cache_manager_set_json():
    """Test CacheManager set_json method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    test_data = {"name": "Test", "value": 123}

    # Test without TTL
    result = cache_manager.set_json("test_key", test_data)
    assert result is True
    mock_redis.set.assert_called_once()

    # Test with TTL
    mock_redis.reset_mock()
    result = cache_manager.set_json("test_key", test_data, ttl=300)
    assert result is True
    mock_redis.setex.assert_called_once_with("test_key", 300, json.dumps(test_data))


def test_cache_manager_fails_open():
    """Test that Redis errors behave like a cache miss."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = ConnectionError("redis down")
    mock_redis.setex.side_effect = ConnectionError("redis down")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get_json("test_key") is None
    assert cache_manager.set_json("test_key", {"a": 1}, ttl=60) is False


@pytest.mark.asyncio
async def test_doctor_list_cached_after_miss(db_session: AsyncSession, clinic):
    """Test that a cache miss loads from the database and fills the cache."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    service = DoctorService(cache_manager=CacheManager(redis_client=mock_redis))

    doctors = await service.list_doctors(db_session)

    assert [d.full_name for d in doctors] == ["Dr. Ana Pop", "Dr. Radu Ionescu"]
    mock_redis.setex.assert_called_once()
    key, ttl, payload = mock_redis.setex.call_args.args
    assert key == DoctorService.DOCTOR_LIST_CACHE_KEY
    assert ttl == 300
    assert [d["full_name"] for d in json.loads(payload)] == ["Dr. Ana Pop", "Dr. Radu Ionescu"]


@pytest.mark.asyncio
async def test_doctor_list_served_from_cache(db_session: AsyncSession):
    """Test that a cache hit skips the database."""
    cached = [
        {
            "id": "2f1c3e5a-8d4b-4f6e-9a7c-1b2d3e4f5a6b",
            "full_name": "Dr. Cached",
            "department": None,
            "specialization": "GP",
        }
    ]
    mock_redis = MagicMock()
    mock_redis.get.return_value = json.dumps(cached)
    service = DoctorService(cache_manager=CacheManager(redis_client=mock_redis))

    doctors = await service.list_doctors(db_session)

    assert [d.full_name for d in doctors] == ["Dr. Cached"]
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_doctor_list_without_cache(db_session: AsyncSession, clinic):
    """Test that the directory works with no cache configured."""
    doctors = await DoctorService().list_doctors(db_session)

    assert len(doctors) == 2
