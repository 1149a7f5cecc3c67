'''
Per-user notifications: delivery helpers used by the other services and the
notification center (filters, stats, read state, bulk actions).
'''
from typing import Optional, Annotated, Iterable
from uuid import UUID
from fastapi import Depends, HTTPException, status
from sqlalchemy import select, update, func, or_, case
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, NotificationType
from ..models import notification as notification_models
from ..models.common import Page
from ..common.logger import log
from ..common.time_utils import utcnow
from ..core.date_ranges import resolve_date_range, local_day_bounds_utc, local_today
from .pagination import paginate, contains_pattern, LIKE_ESCAPE

LATEST_UNSEEN_LIMIT = 5


class NotificationService:
    """
    Service for creating and managing notifications.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Delivery ---

    async def send_to_user(
        self,
        user_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        action_text: Optional[str] = None,
        action_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> db_models.Notifications:
        """Creates one notification. Failures are logged and re-raised."""
        try:
            notification = db_models.Notifications(
                user_id=user_id,
                type=type.value,
                title=title,
                message=message,
                action_text=action_text,
                action_url=action_url,
                extra_data=metadata,
            )
            self.db.add(notification)
            await self.db.flush()
            log.info(f"Notification '{type.value}' sent to user {user_id}.")
            return notification
        except Exception as e:
            log.error(f"Failed to send notification to user {user_id}: {e}", exc_info=True)
            raise

    async def send_to_users(
        self,
        user_ids: Iterable[UUID],
        type: NotificationType,
        title: str,
        message: str,
        action_text: Optional[str] = None,
        action_url: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> int:
        """
        Sends the same notification to many users. Unknown or inactive users
        and individual failures are logged and skipped. Returns how many were sent.
        """
        requested = list(dict.fromkeys(user_ids))
        if not requested:
            return 0

        result = await self.db.execute(
            select(db_models.Users.id).filter(
                db_models.Users.id.in_(requested), db_models.Users.is_active.is_(True)
            )
        )
        deliverable = set(result.scalars().all())

        sent = 0
        for user_id in requested:
            if user_id not in deliverable:
                log.warning(f"Skipping notification for unknown or inactive user {user_id}.")
                continue
            try:
                async with self.db.begin_nested():
                    await self.send_to_user(user_id, type, title, message, action_text, action_url, metadata)
                sent += 1
            except Exception as e:
                log.error(f"Continuing after failed notification for user {user_id}: {e}")
        log.info(f"Sent '{title}' to {sent}/{len(requested)} users.")
        return sent

    async def send_to_role(self, role: UserRole, type: NotificationType, title: str, message: str, **kwargs) -> int:
        result = await self.db.execute(
            select(db_models.Users.id).filter(
                db_models.Users.role == role.value, db_models.Users.is_active.is_(True)
            )
        )
        return await self.send_to_users(result.scalars().all(), type, title, message, **kwargs)

    async def send_system_notification_to_all(self, title: str, message: str, **kwargs) -> int:
        result = await self.db.execute(
            select(db_models.Users.id).filter(db_models.Users.is_active.is_(True))
        )
        return await self.send_to_users(result.scalars().all(), NotificationType.SYSTEM, title, message, **kwargs)

    async def broadcast(
        self,
        data: notification_models.NotificationSend,
        current_user: db_models.Users
    ) -> notification_models.NotificationSendResult:
        """Admin-only entry point for sending to ids, a role, or everyone."""
        if current_user.role != UserRole.ADMIN.value:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can send notifications.")
        kwargs = dict(action_text=data.action_text, action_url=data.action_url, metadata=data.metadata)
        if data.everyone:
            if data.type != NotificationType.SYSTEM:
                sent = await self.send_to_users(await self._all_active_ids(), data.type, data.title, data.message, **kwargs)
            else:
                sent = await self.send_system_notification_to_all(data.title, data.message, **kwargs)
        elif data.role is not None:
            sent = await self.send_to_role(data.role, data.type, data.title, data.message, **kwargs)
        else:
            sent = await self.send_to_users(data.user_ids, data.type, data.title, data.message, **kwargs)
        log.info(f"Admin {current_user.id} broadcast '{data.title}' to {sent} users.")
        return notification_models.NotificationSendResult(sent=sent)

    async def _all_active_ids(self) -> list[UUID]:
        result = await self.db.execute(select(db_models.Users.id).filter(db_models.Users.is_active.is_(True)))
        return list(result.scalars().all())

    # --- Internal helpers ---

    def _own(self, current_user: db_models.Users):
        """Base query: the caller's notifications that are not soft-deleted."""
        return select(db_models.Notifications).filter(
            db_models.Notifications.user_id == current_user.id,
            db_models.Notifications.deleted_at.is_(None),
        )

    async def _get_notification_internal(self, notification_id: UUID, current_user: db_models.Users) -> db_models.Notifications:
        stmt = self._own(current_user).filter(db_models.Notifications.id == notification_id)
        notification = (await self.db.execute(stmt)).scalars().first()
        if not notification:
            log.warning(f"User {current_user.id} asked for missing notification {notification_id}.")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")
        return notification

    # --- Notification center ---

    async def list_notifications(
        self,
        current_user: db_models.Users,
        filters: notification_models.NotificationFilters
    ) -> Page[notification_models.NotificationRead]:
        stmt = self._own(current_user)

        if filters.type != 'all':
            stmt = stmt.filter(db_models.Notifications.type == NotificationType(filters.type).value)
        if filters.unread_only:
            stmt = stmt.filter(db_models.Notifications.read_at.is_(None))
        if filters.search:
            pattern = contains_pattern(filters.search)
            stmt = stmt.filter(or_(
                func.lower(db_models.Notifications.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(db_models.Notifications.message).like(pattern, escape=LIKE_ESCAPE),
            ))
        if filters.date_range:
            today = local_today(utcnow(), current_user.timezone)
            first, last = resolve_date_range(filters.date_range, today, filters.date_from, filters.date_to)
            start, end = local_day_bounds_utc(first, last, current_user.timezone)
            stmt = stmt.filter(
                db_models.Notifications.created_at >= start,
                db_models.Notifications.created_at < end,
            )

        stmt = stmt.order_by(db_models.Notifications.created_at.desc())
        return await paginate(self.db, stmt, filters.page, notification_models.NotificationRead)

    async def unread_count(self, current_user: db_models.Users) -> int:
        stmt = select(func.count(db_models.Notifications.id)).filter(
            db_models.Notifications.user_id == current_user.id,
            db_models.Notifications.deleted_at.is_(None),
            db_models.Notifications.read_at.is_(None),
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def get_stats(self, current_user: db_models.Users) -> notification_models.NotificationStats:
        today = local_today(utcnow(), current_user.timezone)
        day_start, day_end = local_day_bounds_utc(today, today, current_user.timezone)
        n = db_models.Notifications

        def count_if(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            func.count(n.id),
            count_if(n.read_at.is_(None)),
            count_if((n.created_at >= day_start) & (n.created_at < day_end)),
            count_if(n.type == NotificationType.ACADEMIC.value),
            count_if(n.type == NotificationType.BILLING.value),
            count_if(n.type == NotificationType.SYSTEM.value),
        ).filter(n.user_id == current_user.id, n.deleted_at.is_(None))
        total, unread, today_count, academic, billing, system = (await self.db.execute(stmt)).one()

        return notification_models.NotificationStats(
            total_unread=unread,
            total=total,
            today=today_count,
            academic=academic,
            billing=billing,
            system=system,
        )

    async def check_for_new(self, current_user: db_models.Users) -> list[notification_models.NotificationRead]:
        """Marks the latest unseen notifications as seen and returns them."""
        stmt = self._own(current_user).filter(
            db_models.Notifications.seen_at.is_(None)
        ).order_by(db_models.Notifications.created_at.desc()).limit(LATEST_UNSEEN_LIMIT)
        latest = (await self.db.execute(stmt)).scalars().all()

        now = utcnow()
        for notification in latest:
            notification.seen_at = now
        await self.db.flush()
        return [notification_models.NotificationRead.model_validate(n) for n in latest]

    async def mark_as_read(self, notification_id: UUID, current_user: db_models.Users) -> notification_models.NotificationRead:
        notification = await self._get_notification_internal(notification_id, current_user)
        if notification.read_at is None:
            notification.read_at = utcnow()
            await self.db.flush()
        return notification_models.NotificationRead.model_validate(notification)

    async def mark_as_unread(self, notification_id: UUID, current_user: db_models.Users) -> notification_models.NotificationRead:
        notification = await self._get_notification_internal(notification_id, current_user)
        notification.read_at = None
        await self.db.flush()
        return notification_models.NotificationRead.model_validate(notification)

    async def delete_notification(self, notification_id: UUID, current_user: db_models.Users) -> None:
        notification = await self._get_notification_internal(notification_id, current_user)
        notification.deleted_at = utcnow()
        await self.db.flush()
        log.info(f"User {current_user.id} deleted notification {notification_id}.")

    async def mark_all_as_read(self, current_user: db_models.Users) -> int:
        stmt = update(db_models.Notifications).where(
            db_models.Notifications.user_id == current_user.id,
            db_models.Notifications.deleted_at.is_(None),
            db_models.Notifications.read_at.is_(None),
        ).values(read_at=utcnow()).execution_options(synchronize_session=False)
        result = await self.db.execute(stmt)
        log.info(f"User {current_user.id} marked {result.rowcount} notifications as read.")
        return result.rowcount

    async def bulk_action(
        self,
        data: notification_models.BulkNotificationAction,
        current_user: db_models.Users
    ) -> notification_models.BulkActionResult:
        """
        Applies one action to the selected notifications. Ids that are not the
        caller's (or are already deleted) are ignored.
        """
        values = {
            'mark_read': {"read_at": utcnow()},
            'mark_unread': {"read_at": None},
            'delete': {"deleted_at": utcnow()},
        }[data.action]
        stmt = update(db_models.Notifications).where(
            db_models.Notifications.id.in_(data.notification_ids),
            db_models.Notifications.user_id == current_user.id,
            db_models.Notifications.deleted_at.is_(None),
        ).values(**values).execution_options(synchronize_session=False)
        result = await self.db.execute(stmt)
        log.info(f"User {current_user.id} applied '{data.action}' to {result.rowcount} notifications.")
        return notification_models.BulkActionResult(action=data.action, affected=result.rowcount)
