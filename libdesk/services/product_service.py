from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from libdesk.domain.errors import RecordNotFoundError
from libdesk.models import Product


logger = logging.getLogger(__name__)


def serialize_product(row: Product) -> dict:
    return {'id': row.id, 'name': row.name}


def list_products(db: Session) -> list[dict]:
    return [serialize_product(row) for row in db.query(Product).order_by(Product.name.asc()).all()]


def _get_product(db: Session, product_id: int) -> Product:
    row = db.query(Product).filter(Product.id == product_id).first()
    if not row:
        raise RecordNotFoundError('Product not found')
    return row


def _clean_name(name: str) -> str:
    clean_name = (name or '').strip()
    if not clean_name:
        raise ValueError('Product name is required')
    return clean_name


def create_product(db: Session, *, name: str) -> dict:
    row = Product(name=_clean_name(name))
    db.add(row)
    db.commit()
    db.refresh(row)
    return serialize_product(row)


def update_product(db: Session, product_id: int, *, name: str) -> dict:
    row = _get_product(db, product_id)
    row.name = _clean_name(name)
    db.commit()
    db.refresh(row)
    return serialize_product(row)


def delete_product(db: Session, product_id: int) -> None:
    row = _get_product(db, product_id)
    db.delete(row)
    db.commit()
    logger.info('product_deleted product_id=%s', product_id)
