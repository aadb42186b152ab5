"""Dependency injection with a singleton service manager.

This module owns the process-wide resources (settings, logger, database
engine, registry, optional Redis cache) and hands out per-request allocator
and resolver instances bound to a request-scoped logger.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.allocator import CodeAllocator
from shortener.cache import close_cache, create_cache
from shortener.config import Settings, get_settings
from shortener.database import close_db, create_engine, init_db
from shortener.registry import SqlRegistry
from shortener.resolver import Resolver


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Registry sessions are opened per operation, so nothing here is tied to a
    single request.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, settings: Settings | None = None) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self.engine: AsyncEngine = create_engine(self.settings)
        await init_db(self.engine)
        self.registry = SqlRegistry.from_engine(
            self.engine,
            default_length=self.settings.DEFAULT_SHORT_CODE_LENGTH,
            logger=self.logger,
        )
        self.cache: redis.Redis | None = create_cache(self.settings)
        self._initialized = True
        self.logger.info(
            f"{self.settings.APP_NAME} ready (database={self.engine.dialect.name}, "
            f"cache={'on' if self.cache is not None else 'off'})"
        )

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Cleanup shared resources at shutdown."""
        if not self._initialized:
            return
        await close_cache(self.cache)
        await close_db(self.engine)
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID taken from X-Trace-ID when present
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def registry(self) -> SqlRegistry:
        return self.service_manager.registry

    @property
    def cache(self) -> redis.Redis | None:
        return self.service_manager.cache

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        trace_id=request.headers.get("x-trace-id"),
        client_ip=request.client.host if request.client else None,
    )


# Generated codes must not shadow fixed routes such as /docs or /lookup.
RESERVED_CODES = frozenset({"docs", "health", "lookup", "metrics", "redoc", "shorten"})


def get_allocator(ctx: RequestContext = Depends(get_request_context)) -> CodeAllocator:
    return CodeAllocator(
        ctx.registry,
        settings=ctx.settings,
        logger=ctx.logger,
        reserved_codes=RESERVED_CODES,
    )


def get_resolver(ctx: RequestContext = Depends(get_request_context)) -> Resolver:
    return Resolver(
        ctx.registry,
        cache=ctx.cache,
        cache_ttl_seconds=ctx.settings.CACHE_TTL_SECONDS,
        logger=ctx.logger,
    )
