"""Notification dispatcher and inbox queries. Delivery is one insert per notice, best-effort."""

import logging

from sqlalchemy.exc import SQLAlchemyError

from carelink.extensions import db
from carelink.models.notification import Notification
from carelink.models.roles import RoleEnum
from carelink.models.user import User
from carelink.services.errors import NotificationDeliveryFailed
from carelink.services.notices import AppointmentNotice, SystemNotice
from carelink.utils import utcnow

logger = logging.getLogger(__name__)


def dispatch(notice):
    """Persist exactly one notification for `notice`."""
    if not isinstance(notice, (AppointmentNotice, SystemNotice)):
        raise TypeError(f"Unsupported notice type: {type(notice).__name__}")

    notification = Notification(
        user_id=notice.user_id,
        title=notice.title,
        message=notice.message,
        type=notice.type.value,
        priority=notice.priority.value,
        is_read=False,
        appointment_id=notice.appointment_id,
    )

    try:
        db.session.add(notification)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to deliver '{notice.title}' to user {notice.user_id}: {e}")
        raise NotificationDeliveryFailed(notice.user_id, notice.title, e) from e

    logger.info(f"Notification {notification.notification_id} '{notice.title}' sent to user {notice.user_id}")
    return notification


def list_for_user(user_id, unread_only=False, type=None, priority=None, limit=None):
    query = Notification.query.filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    if type:
        query = query.filter(Notification.type == type)
    if priority:
        query = query.filter(Notification.priority == priority)

    query = query.order_by(Notification.created_at.desc(), Notification.notification_id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def unread_count(user_id):
    return Notification.query.filter(
        Notification.user_id == user_id,
        Notification.is_read == False,
    ).count()


def mark_read(notification_id, user_id):
    """Mark one notification read. Only its recipient may do this; returns False otherwise."""
    notification = db.session.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        return False

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.session.commit()
    return True


def mark_all_read(user_id):
    now = utcnow()
    updated = Notification.query.filter(
        Notification.user_id == user_id,
        Notification.is_read == False,
    ).update({"is_read": True, "read_at": now}, synchronize_session=False)
    db.session.commit()
    return updated


def staff_recipients(limit=None):
    query = User.query.filter(User.role == RoleEnum.STAFF).order_by(User.user_id.asc())
    if limit:
        query = query.limit(limit)
    return [user.user_id for user in query.all()]
