"""
fleetflow/repositories/audit_repository.py
───────────────────────────────────────────
Append-only writes for the audit log.

Rule: Never call update() or delete() on AuditLog rows.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.models.audit import AuditLog, AuditEventType


class AuditRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        event_type: AuditEventType | str,
        *,
        actor_user_id: Optional[str] = None,
        company_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> AuditLog:
        """
        Insert a single audit event and commit.

        Example:
            await audit.log(
                AuditEventType.INVITE_ISSUED,
                actor_user_id=principal.id,
                company_id=principal.company_id,
                subject_id=invite.email,
                metadata={"role": "driver", "invite_id": invite.id},
            )
        """
        row = AuditLog(
            event_type=event_type.value if isinstance(event_type, AuditEventType) else event_type,
            actor_user_id=actor_user_id,
            company_id=company_id,
            subject_id=str(subject_id) if subject_id else None,
            metadata_=metadata,
        )
        self.db.add(row)
        await self.db.commit()
        return row
