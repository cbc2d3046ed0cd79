"""MCP API key generation, verification and permission checks.

Keys are random hex behind a fixed ``mcp_live_`` prefix. Only the SHA-256 of
the full key is stored.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from oceo.db.base import utcnow
from oceo.db.models import McpApiKey

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

KEY_PREFIX = "mcp_live_"


def hash_api_key(full_key: str) -> str:
    return hashlib.sha256(full_key.encode()).hexdigest()


def generate_mcp_key() -> tuple[str, str, str]:
    """
    Generate a new MCP API key.

    Returns:
        (full_key, prefix, sha256_hash).
        The full key is shown to the user once, never stored.
    """
    random_part = secrets.token_hex(20)
    full_key = f"{KEY_PREFIX}{random_part}"
    prefix = f"{KEY_PREFIX}{random_part[:8]}"  # "mcp_live_a1b2c3d4"
    return full_key, prefix, hash_api_key(full_key)


async def create_mcp_key(
    db: AsyncSession,
    name: str,
    created_by: int,
    permissions: dict[str, list[str]] | None = None,
    expires_in_days: int | None = None,
) -> tuple[McpApiKey, str]:
    """Store a new key. Returns the row and the full key."""
    full_key, prefix, key_hash = generate_mcp_key()
    api_key = McpApiKey(
        name=name,
        key_hash=key_hash,
        key_prefix=prefix,
        created_by=created_by,
        expires_at=utcnow() + timedelta(days=expires_in_days) if expires_in_days else None,
    )
    if permissions is not None:
        api_key.permissions = permissions
    db.add(api_key)
    await db.flush()
    logger.info("mcp_key_created", key_id=api_key.id, prefix=prefix)
    return api_key, full_key


async def verify_mcp_key(db: AsyncSession, full_key: str) -> McpApiKey | None:
    """Return the active, unexpired key matching ``full_key`` and touch last_used_at."""
    if not full_key.startswith(KEY_PREFIX):
        return None

    result = await db.execute(
        select(McpApiKey).where(
            McpApiKey.key_hash == hash_api_key(full_key),
            McpApiKey.is_active.is_(True),
        )
    )
    api_key = result.scalar_one_or_none()
    if api_key is None:
        return None
    if api_key.expires_at is not None and api_key.expires_at < utcnow():
        return None

    api_key.last_used_at = utcnow()
    await db.flush()
    return api_key


def has_permission(api_key: McpApiKey, resource: str, operation: str) -> bool:
    return operation in (api_key.permissions or {}).get(resource, [])


async def list_mcp_keys(db: AsyncSession) -> list[McpApiKey]:
    result = await db.execute(select(McpApiKey).order_by(McpApiKey.created_at.desc(), McpApiKey.id.desc()))
    return list(result.scalars().all())


async def deactivate_mcp_key(db: AsyncSession, key_id: int) -> bool:
    """Revoke a key by clearing is_active. Returns False when the key does not exist."""
    api_key = await db.get(McpApiKey, key_id)
    if api_key is None:
        return False
    api_key.is_active = False
    await db.flush()
    logger.info("mcp_key_deactivated", key_id=key_id)
    return True
