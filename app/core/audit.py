from typing import Any, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logger import logger
from app.db.models import AuditLog
from app.db.models.enums import AuditAction


def request_origin(request: Optional[Request]) -> tuple[Optional[str], Optional[str]]:
    """(ip_address, user_agent) for an incoming request."""
    if request is None:
        return None, None
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.headers.get("x-real-ip")
    return ip_address, request.headers.get("user-agent")


async def log_audit(
    session: AsyncSession,
    action: AuditAction,
    target_type: str,
    target_id: UUID,
    actor_id: Optional[UUID] = None,
    metadata: Optional[dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> None:
    """Record an audit event. Must be called after the main write committed."""
    ip_address, user_agent = request_origin(request)
    try:
        session.add(AuditLog(
            action=action.value,
            target_type=target_type,
            target_id=target_id,
            actor_id=actor_id,
            meta=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        ))
        await session.commit()
        logger.info(f"[Audit] {action.value} on {target_type}:{target_id}" + (f" by {actor_id}" if actor_id else ""))
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error(f"[Audit] Failed to log {action.value} on {target_type}:{target_id}: {e}")
