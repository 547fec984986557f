"""
Service wiring.

Services are built once per app by ``build_services`` and stored on
``app.state.services``; route handlers reach them through ``get_services``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from fastapi import Request

from gamelogd.config import Settings
from gamelogd.db.kv_store import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore
from gamelogd.preferences.concurrency import ConcurrencyStrategy, build_strategy
from gamelogd.preferences.models import utcnow
from gamelogd.preferences.reconciler import RatingReconciler
from gamelogd.preferences.recommendation_gate import (
    RecommendationCacheGate,
    RecommendationGenerator,
    build_policy,
)
from gamelogd.preferences.store import PreferenceStore
from gamelogd.web.services.admin_service import AdminService
from gamelogd.web.services.auth_service import AuthService
from gamelogd.web.services.note_service import NoteService
from gamelogd.web.services.recommendation_service import OpenAIRecommendationGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    kv: KeyValueStore
    preference_store: PreferenceStore
    strategy: ConcurrencyStrategy
    reconciler: RatingReconciler
    recommendation_gate: RecommendationCacheGate
    auth: AuthService
    notes: NoteService
    admin: AdminService


def build_kv_store(settings: Settings) -> tuple[KeyValueStore, Optional[KeyValueStore]]:
    """
    Returns:
        Tuple (primary, fallback); fallback is None unless Redis is the primary
    """
    if not settings.redis_url:
        logger.warning("REDIS_URL not set, using in-memory store (data is lost on restart)")
        return InMemoryKeyValueStore(), None

    primary = RedisKeyValueStore(
        redis_url=settings.redis_url,
        socket_timeout=settings.redis_socket_timeout
    )
    fallback = InMemoryKeyValueStore() if settings.kv_fallback_enabled else None
    return primary, fallback


def build_services(
    settings: Settings,
    kv: Optional[KeyValueStore] = None,
    fallback: Optional[KeyValueStore] = None,
    generator: Optional[RecommendationGenerator] = None,
    clock: Callable[[], datetime] = utcnow
) -> Services:
    """
    Build every service from settings.

    Args:
        settings: Settings
        kv: Primary store (optional, built from settings if None)
        fallback: Fallback store, only used together with ``kv``
        generator: Recommendation generator (optional, OpenAI if None)
        clock: Source of "now" for ratings, notes and the cache gate
    """
    if kv is None:
        kv, fallback = build_kv_store(settings)

    if generator is None:
        generator = OpenAIRecommendationGenerator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout_seconds
        )
        if not generator.is_configured:
            logger.warning("OPENAI_API_KEY not set, recommendations will be unavailable")

    store = PreferenceStore(kv, fallback=fallback, clock=clock)
    strategy = build_strategy(settings.concurrency_strategy, store, cas_max_attempts=settings.cas_max_attempts)
    policy = build_policy(
        settings.recommendation_invalidation,
        window=timedelta(hours=settings.recommendation_ttl_hours)
    )
    notes = NoteService(kv, clock=clock)

    logger.info(
        f"Services built: store={kv.name}, concurrency={strategy.name}, "
        f"invalidation={settings.recommendation_invalidation}, ttl={settings.recommendation_ttl_hours}h"
    )

    return Services(
        settings=settings,
        kv=kv,
        preference_store=store,
        strategy=strategy,
        reconciler=RatingReconciler(store, strategy=strategy, clock=clock),
        recommendation_gate=RecommendationCacheGate(
            store, generator, strategy=strategy, policy=policy, clock=clock
        ),
        auth=AuthService(kv, store, settings, clock=clock),
        notes=notes,
        admin=AdminService(kv, store, notes),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency returning the app's services."""
    return request.app.state.services
