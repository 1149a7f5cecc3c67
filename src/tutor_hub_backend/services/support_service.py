'''
Support tickets: the ticket wizard, conversations between users and admins,
attachments, status changes, satisfaction ratings and soft deletes.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import Depends, HTTPException, UploadFile, status
from sqlalchemy import select, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, TicketStatus, MessageType, NotificationType
from ..models import support as support_models
from ..models.common import Page, WizardStepResult
from ..core.wizard import Wizard
from ..core.references import ticket_reference
from ..common.config import settings
from ..common.time_utils import utcnow
from ..common.logger import log
from .pagination import paginate, contains_pattern, LIKE_ESCAPE
from .notification_service import NotificationService
from .uploads import store_upload

ticket_wizard = Wizard(
    "Support ticket",
    [support_models.TicketSummaryStep, support_models.TicketDetailsStep, support_models.TicketConfirmStep],
)

ALLOWED_ATTACHMENT_TYPES = {
    "image/jpeg", "image/png", "image/gif", "image/webp",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
CLOSED_STATUSES = (TicketStatus.RESOLVED.value, TicketStatus.CLOSED.value)


class SupportService:
    """
    Service for support tickets.
    Owners see their own tickets; admins see everything, including internal notes.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        notification_service: Annotated[NotificationService, Depends(NotificationService)]
    ):
        self.db = db
        self.notification_service = notification_service

    # --- Authorization Helpers ---

    @staticmethod
    def _is_admin(current_user: db_models.Users) -> bool:
        return current_user.role == UserRole.ADMIN.value

    def _authorize_access(self, ticket: db_models.SupportTickets, current_user: db_models.Users):
        if ticket.user_id != current_user.id and not self._is_admin(current_user):
            log.warning(f"SECURITY: User {current_user.id} tried to access ticket {ticket.ticket_id}.")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this ticket."
            )

    def _authorize_owner(self, ticket: db_models.SupportTickets, current_user: db_models.Users):
        if ticket.user_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the ticket owner can do this."
            )

    # --- Internal Helpers ---

    async def _get_ticket_internal(self, ticket_id: UUID, with_thread: bool = False) -> db_models.SupportTickets:
        stmt = select(db_models.SupportTickets).filter(
            db_models.SupportTickets.id == ticket_id,
            db_models.SupportTickets.deleted_at.is_(None),
        )
        if with_thread:
            stmt = stmt.options(
                selectinload(db_models.SupportTickets.messages),
                selectinload(db_models.SupportTickets.attachments),
            ).execution_options(populate_existing=True)
        ticket = (await self.db.execute(stmt)).scalars().first()
        if not ticket:
            log.warning(f"Tried to fetch non-existing ticket: {ticket_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found.")
        return ticket

    async def _new_reference(self) -> str:
        while True:
            reference = ticket_reference()
            taken = (await self.db.execute(
                select(db_models.SupportTickets.id).filter(db_models.SupportTickets.ticket_id == reference)
            )).first()
            if taken is None:
                return reference

    def _add_message(
        self,
        ticket: db_models.SupportTickets,
        author: db_models.Users,
        message: str,
        message_type: MessageType,
        is_internal: bool = False,
    ) -> db_models.SupportMessages:
        entry = db_models.SupportMessages(
            ticket_id=ticket.id,
            user_id=author.id,
            admin_id=author.id if message_type == MessageType.ADMIN else None,
            message=message,
            message_type=message_type.value,
            is_internal=is_internal,
        )
        self.db.add(entry)
        return entry

    def _reopen(self, ticket: db_models.SupportTickets):
        ticket.status = TicketStatus.OPEN.value
        ticket.reopened_at = utcnow()
        ticket.closed_by_user = False

    async def _detail(self, ticket_id: UUID, current_user: db_models.Users) -> support_models.TicketDetail:
        ticket = await self._get_ticket_internal(ticket_id, with_thread=True)
        admin_view = self._is_admin(current_user)
        messages = [
            m for m in ticket.messages
            if m.deleted_at is None and (admin_view or not m.is_internal)
        ]
        attachments = [a for a in ticket.attachments if a.deleted_at is None]
        detail = support_models.TicketRead.model_validate(ticket).model_dump()
        return support_models.TicketDetail(
            **detail,
            messages=[support_models.MessageRead.model_validate(m) for m in messages],
            attachments=[support_models.AttachmentRead.model_validate(a) for a in attachments],
        )

    # --- Wizard ---

    def validate_step(self, step: int, data: dict[str, Any]) -> WizardStepResult:
        ticket_wizard.validate_step(step, data)
        next_step = ticket_wizard.next_step(step)
        return WizardStepResult(step=step, next_step=next_step, is_last=next_step is None)

    # --- Public Methods (API-Facing) ---

    async def create_ticket(
        self,
        data: support_models.TicketCreate,
        current_user: db_models.Users
    ) -> support_models.TicketDetail:
        try:
            ticket = db_models.SupportTickets(
                ticket_id=await self._new_reference(),
                user_id=current_user.id,
                **data.model_dump(exclude={'category', 'priority'}),
                category=data.category.value,
                priority=data.priority.value,
                status=TicketStatus.OPEN.value,
            )
            self.db.add(ticket)
            await self.db.flush()

            system_message = self._add_message(
                ticket, current_user,
                f"Ticket {ticket.ticket_id} was created. Our team will get back to you soon.",
                MessageType.SYSTEM,
            )
            system_message.read_at = utcnow()
            await self.db.flush()

            await self.notification_service.send_to_role(
                UserRole.ADMIN,
                NotificationType.MESSAGE,
                "New support ticket",
                f"{ticket.ticket_id}: {ticket.title}",
                action_text="Open ticket",
                action_url=f"/admin/support/{ticket.id}",
                metadata={"ticket_id": str(ticket.id), "priority": ticket.priority},
            )
            log.info(f"User {current_user.id} opened ticket {ticket.ticket_id}.")
            return await self._detail(ticket.id, current_user)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error creating ticket for user {current_user.id}: {e}", exc_info=True)
            raise

    async def list_tickets(
        self,
        current_user: db_models.Users,
        filters: support_models.TicketFilters
    ) -> Page[support_models.TicketRead]:
        t = db_models.SupportTickets
        stmt = select(t).filter(t.deleted_at.is_(None))
        if not self._is_admin(current_user):
            stmt = stmt.filter(t.user_id == current_user.id)
        if filters.status:
            stmt = stmt.filter(t.status == filters.status.value)
        if filters.category:
            stmt = stmt.filter(t.category == filters.category.value)
        if filters.priority:
            stmt = stmt.filter(t.priority == filters.priority.value)
        if filters.search:
            pattern = contains_pattern(filters.search)
            stmt = stmt.filter(or_(
                func.lower(t.title).like(pattern, escape=LIKE_ESCAPE),
                func.lower(t.ticket_id).like(pattern, escape=LIKE_ESCAPE),
            ))

        sort_column = getattr(t, filters.sort_field)
        order = sort_column.asc() if filters.sort_direction == 'asc' else sort_column.desc()
        stmt = stmt.order_by(order, t.id)
        return await paginate(self.db, stmt, filters.page, support_models.TicketRead)

    async def get_ticket(self, ticket_id: UUID, current_user: db_models.Users) -> support_models.TicketDetail:
        """Returns the thread and marks the other side's messages as read."""
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_access(ticket, current_user)

        other_side = MessageType.USER if self._is_admin(current_user) else MessageType.ADMIN
        await self.db.execute(
            update(db_models.SupportMessages).where(
                db_models.SupportMessages.ticket_id == ticket.id,
                db_models.SupportMessages.message_type == other_side.value,
                db_models.SupportMessages.read_at.is_(None),
            ).values(read_at=utcnow())
        )
        return await self._detail(ticket.id, current_user)

    async def reply(
        self,
        ticket_id: UUID,
        data: support_models.MessageCreate,
        current_user: db_models.Users
    ) -> support_models.TicketDetail:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_access(ticket, current_user)
        try:
            admin_reply = self._is_admin(current_user)
            is_internal = data.is_internal and admin_reply

            if ticket.status in CLOSED_STATUSES and not is_internal:
                self._reopen(ticket)
                log.info(f"Ticket {ticket.ticket_id} reopened by a reply from {current_user.id}.")

            if admin_reply:
                self._add_message(ticket, current_user, data.message, MessageType.ADMIN, is_internal)
                if not is_internal and ticket.first_response_at is None:
                    ticket.first_response_at = utcnow()
                    if ticket.status == TicketStatus.OPEN.value:
                        ticket.status = TicketStatus.IN_PROGRESS.value
            else:
                self._add_message(ticket, current_user, data.message, MessageType.USER)
            await self.db.flush()

            if admin_reply and not is_internal:
                await self.notification_service.send_to_user(
                    ticket.user_id,
                    NotificationType.MESSAGE,
                    "New reply on your ticket",
                    f"Support replied to {ticket.ticket_id}.",
                    action_text="View ticket",
                    action_url=f"/support/{ticket.id}",
                    metadata={"ticket_id": str(ticket.id)},
                )
            elif not admin_reply:
                await self.notification_service.send_to_role(
                    UserRole.ADMIN,
                    NotificationType.MESSAGE,
                    "Ticket updated",
                    f"{current_user.name} replied to {ticket.ticket_id}.",
                    metadata={"ticket_id": str(ticket.id)},
                )
            log.info(f"User {current_user.id} replied to ticket {ticket.ticket_id} (internal={is_internal}).")
            return await self._detail(ticket.id, current_user)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error replying to ticket {ticket_id}: {e}", exc_info=True)
            raise

    # --- Attachments ---

    async def add_attachment(
        self,
        ticket_id: UUID,
        upload: UploadFile,
        current_user: db_models.Users,
        message_id: Optional[UUID] = None
    ) -> support_models.AttachmentRead:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_access(ticket, current_user)
        if message_id is not None:
            message = await self.db.get(db_models.SupportMessages, message_id)
            if not message or message.ticket_id != ticket.id:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found.")

        try:
            stored = await store_upload(
                upload,
                f"support/{ticket.id}",
                settings.MAX_UPLOAD_SIZE,
                ALLOWED_ATTACHMENT_TYPES,
                "Only images, PDF, text and Word documents can be attached.",
            )
            attachment = db_models.SupportAttachments(
                ticket_id=ticket.id,
                message_id=message_id,
                user_id=current_user.id,
                **stored._asdict(),
            )
            self.db.add(attachment)
            await self.db.flush()
            log.info(f"User {current_user.id} attached {stored.file_name} to {ticket.ticket_id}.")
            return support_models.AttachmentRead.model_validate(attachment)
        except HTTPException:
            raise
        except Exception as e:
            log.error(f"Error storing attachment for ticket {ticket_id}: {e}", exc_info=True)
            raise

    # --- Status, rating & deletion ---

    async def update_status(
        self,
        ticket_id: UUID,
        data: support_models.TicketStatusUpdate,
        current_user: db_models.Users
    ) -> support_models.TicketDetail:
        """Admin status moves. Each one stamps its own timestamp."""
        if not self._is_admin(current_user):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change a ticket's status.")
        ticket = await self._get_ticket_internal(ticket_id)
        now = utcnow()
        ticket.status = data.status
        if data.status == TicketStatus.IN_PROGRESS.value:
            ticket.first_response_at = ticket.first_response_at or now
        elif data.status == TicketStatus.RESOLVED.value:
            ticket.resolved_at = now
        elif data.status == TicketStatus.CLOSED.value:
            ticket.closed_at = now
            ticket.closed_by_user = False
        self._add_message(ticket, current_user, f"Status changed to {data.status}.", MessageType.SYSTEM)
        await self.db.flush()

        await self.notification_service.send_to_user(
            ticket.user_id,
            NotificationType.MESSAGE,
            "Ticket status changed",
            f"{ticket.ticket_id} is now {data.status.replace('_', ' ')}.",
            action_url=f"/support/{ticket.id}",
            metadata={"ticket_id": str(ticket.id), "status": data.status},
        )
        log.info(f"Admin {current_user.id} set ticket {ticket.ticket_id} to {data.status}.")
        return await self._detail(ticket.id, current_user)

    async def close_ticket(self, ticket_id: UUID, current_user: db_models.Users) -> support_models.TicketDetail:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_owner(ticket, current_user)
        if ticket.status == TicketStatus.CLOSED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This ticket is already closed.")
        ticket.status = TicketStatus.CLOSED.value
        ticket.closed_at = utcnow()
        ticket.closed_by_user = True
        self._add_message(ticket, current_user, "Ticket closed by the user.", MessageType.SYSTEM)
        await self.db.flush()
        log.info(f"User {current_user.id} closed ticket {ticket.ticket_id}.")
        return await self._detail(ticket.id, current_user)

    async def reopen_ticket(self, ticket_id: UUID, current_user: db_models.Users) -> support_models.TicketDetail:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_owner(ticket, current_user)
        if ticket.status not in CLOSED_STATUSES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only resolved or closed tickets can be reopened.")
        self._reopen(ticket)
        self._add_message(ticket, current_user, "Ticket reopened by the user.", MessageType.SYSTEM)
        await self.db.flush()
        log.info(f"User {current_user.id} reopened ticket {ticket.ticket_id}.")
        return await self._detail(ticket.id, current_user)

    async def rate_ticket(
        self,
        ticket_id: UUID,
        data: support_models.TicketRating,
        current_user: db_models.Users
    ) -> support_models.TicketDetail:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_owner(ticket, current_user)
        if ticket.status not in CLOSED_STATUSES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Only resolved or closed tickets can be rated.")
        if ticket.satisfaction_rating is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This ticket has already been rated.")
        ticket.satisfaction_rating = data.rating
        ticket.satisfaction_comment = data.comment
        ticket.rated_at = utcnow()
        await self.db.flush()
        log.info(f"User {current_user.id} rated ticket {ticket.ticket_id} {data.rating}/5.")
        return await self._detail(ticket.id, current_user)

    async def delete_ticket(self, ticket_id: UUID, current_user: db_models.Users) -> None:
        ticket = await self._get_ticket_internal(ticket_id)
        self._authorize_access(ticket, current_user)
        ticket.deleted_at = utcnow()
        await self.db.flush()
        log.info(f"User {current_user.id} deleted ticket {ticket.ticket_id}.")
