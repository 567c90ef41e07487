from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from libdesk.domain.errors import RecordNotFoundError
from libdesk.models import Role, User
from libdesk.services.auth_service import _hash_password, _verify_password


logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise RecordNotFoundError('User not found')
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username.asc()).all()


def update_profile(
    db: Session,
    user_id: int,
    *,
    full_name: str | None = None,
    email: str | None = None,
    current_password: str | None = None,
    new_password: str | None = None,
) -> User:
    user = get_user(db, user_id)
    if email:
        clash = db.query(User).filter(User.email == email, User.id != user.id).first()
        if clash:
            raise ValueError('Email already in use by another user')
        user.email = email
    if full_name is not None:
        user.full_name = full_name
    if current_password and new_password:
        if not _verify_password(current_password, user.password_hash):
            raise ValueError('Current password is incorrect')
        user.password_hash = _hash_password(new_password)
        logger.info('user_password_changed user_id=%s', user.id)
    db.commit()
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> None:
    user = get_user(db, user_id)
    if user.role == Role.ADMIN.value:
        admin_count = db.query(User).filter(User.role == Role.ADMIN.value).count()
        if admin_count <= 1:
            raise ValueError('Cannot delete the last admin')
    db.delete(user)
    db.commit()
    logger.info('user_deleted user_id=%s', user_id)
