from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from libdesk.db import get_db
from libdesk.route_logging import EndpointNameRoute
from libdesk.routers.deps import http_error, require_admin
from libdesk.schemas import ProductPayload
from libdesk.services import product_service


router = APIRouter(
    route_class=EndpointNameRoute,
    prefix='/api/products',
    tags=['Products'],
    dependencies=[Depends(require_admin)],
)


@router.get('')
def list_products(db: Session = Depends(get_db)):
    return {'products': product_service.list_products(db)}


@router.post('', status_code=201)
def create_product(payload: ProductPayload, db: Session = Depends(get_db)):
    try:
        return product_service.create_product(db, name=payload.name)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.put('/{product_id}')
def update_product(product_id: int, payload: ProductPayload, db: Session = Depends(get_db)):
    try:
        return product_service.update_product(db, product_id, name=payload.name)
    except ValueError as exc:
        raise http_error(exc) from exc


@router.delete('/{product_id}')
def delete_product(product_id: int, db: Session = Depends(get_db)):
    try:
        product_service.delete_product(db, product_id)
    except ValueError as exc:
        raise http_error(exc) from exc
    return {'message': 'Product deleted'}
