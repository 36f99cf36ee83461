"""Pytest configuration and shared fixtures for draft pipeline tests."""

import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


# ============================================================================
# Import root
# ============================================================================
# Modules import each other as `config`, `models`, `services`, `pipeline`, `utils`.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client.

    Chains: client.collection().where().where().where().get()
            client.collection().document().set()
    """
    client = MagicMock()

    collection_mock = MagicMock()
    query_mock = MagicMock()
    document_mock = MagicMock()

    client.collection.return_value = collection_mock
    collection_mock.where.return_value = query_mock
    query_mock.where.return_value = query_mock
    query_mock.get = AsyncMock(return_value=[])

    collection_mock.document.return_value = document_mock
    document_mock.id = "price-entry-1"
    document_mock.set = AsyncMock()

    return client


@pytest.fixture
def mock_firestore_service(mock_firestore_client):
    """FirestoreService with mocked client."""
    from services.firestore_service import FirestoreService

    return FirestoreService(db=mock_firestore_client)


# ============================================================================
# LLM Mocks
# ============================================================================

@pytest.fixture
def mock_chat_openai():
    """Mock ChatOpenAI client."""
    mock = AsyncMock()
    mock.ainvoke.return_value = MagicMock(
        content='{"scope": ["Mock scope item."]}',
        response_metadata={"token_usage": {"total_tokens": 100}}
    )
    return mock


@pytest.fixture
def mock_llm_service(mock_chat_openai):
    """LLMService backed by the mock chat model."""
    from services.llm_service import LLMService

    return LLMService(api_key="test-api-key", client=mock_chat_openai)


# ============================================================================
# Pipeline Collaborator Mocks
# ============================================================================

@pytest.fixture
def mock_price_cache():
    """Mock price cache repository (empty cache)."""
    cache = MagicMock()
    cache.get_latest_price_entry = AsyncMock(return_value=None)
    cache.insert_price_entry = AsyncMock(return_value="price-entry-1")
    return cache


@pytest.fixture
def mock_pricing_provider():
    """Mock configured regional pricing provider."""
    from tests.fixtures.mock_draft_data import PLUMBING_TRADE_PRICING

    provider = MagicMock()
    provider.is_configured.return_value = True
    provider.get_trade_pricing = AsyncMock(return_value=PLUMBING_TRADE_PRICING)
    return provider


@pytest.fixture
def fixed_now():
    from tests.fixtures.mock_draft_data import FIXED_NOW

    return FIXED_NOW


@pytest.fixture
def market_pricing_service(mock_price_cache, mock_pricing_provider, fixed_now):
    """MarketPricingService over mocked cache/provider with a fixed clock."""
    from services.market_pricing_service import MarketPricingService

    return MarketPricingService(
        cache=mock_price_cache,
        provider=mock_pricing_provider,
        now_fn=lambda: fixed_now,
    )


@pytest.fixture
def mock_scope_enhancer():
    """Scope enhancer that echoes the base scope with a prefix item."""
    from services.scope_enhancer import EnhanceScopeResult

    enhancer = MagicMock()

    async def _enhance(request):
        return EnhanceScopeResult(
            success=True,
            enhanced_scope=["Mobilize and protect work area."] + list(request.base_scope),
        )

    enhancer.enhance_scope = AsyncMock(side_effect=_enhance)
    return enhancer


@pytest.fixture
def draft_settings():
    """Real Settings instance with pipeline defaults."""
    from config.settings import Settings

    return Settings(
        pricebook_version="v1",
        pricing_cache_ttl_hours=168,
        pricing_live_timeout_ms=1200,
    )


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_job():
    from tests.fixtures.mock_draft_data import PLUMBING_JOB

    return PLUMBING_JOB


@pytest.fixture
def sample_template():
    from tests.fixtures.mock_draft_data import FAUCET_TEMPLATE

    return FAUCET_TEMPLATE


@pytest.fixture
def sample_user():
    from tests.fixtures.mock_draft_data import DEFAULT_USER

    return DEFAULT_USER


@pytest.fixture
def sample_photos():
    """Three photos with findings."""
    from tests.fixtures.mock_draft_data import (
        KITCHEN_FAUCET_FINDINGS,
        UNDER_SINK_FINDINGS,
        WIDE_SHOT_FINDINGS,
        make_photos,
    )

    return make_photos(KITCHEN_FAUCET_FINDINGS, UNDER_SINK_FINDINGS, WIDE_SHOT_FINDINGS)


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings():
    """Mock settings for all tests."""
    with patch('config.settings.settings') as mock:
        mock.openai_api_key = "test-api-key"
        mock.llm_model = "gpt-4o"
        mock.llm_temperature = 0.1
        mock.use_firebase_emulators = True
        mock.pricebook_version = "v1"
        mock.pricing_cache_ttl_hours = 168
        mock.pricing_live_timeout_ms = 1200
        mock.onebuild_api_url = "https://gateway-external.1build.com/"
        mock.log_level = "INFO"
        yield mock
