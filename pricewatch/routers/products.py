import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from pricewatch.core.auth import require_admin, require_auth
from pricewatch.database import get_session
from pricewatch.models.user import User
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.schemas.product import (
    CategoryCreate,
    CategoryRead,
    ProductCreate,
    ProductRead,
    ProductUpdate,
)
from pricewatch.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    search: str | None = None,
):
    """
    List products.

    - Public endpoint.
    - `search` matches name or brand (case-insensitive) or a barcode prefix.
    """
    return service.list_products(session, skip=skip, limit=limit, search=search)


@router.get(
    "/barcode/{barcode}",
    response_model=ProductRead,
    dependencies=[Depends(require_auth)],
)
def get_product_by_barcode(
    barcode: str,
    session: Session = Depends(get_session),
):
    """
    Look up a product by its EAN before submitting a price.

    404 means the collector should switch to manual entry.
    """
    return service.get_by_barcode(session, barcode)


# -------- Admin endpoints --------


@router.get("/categories", response_model=list[CategoryRead])
def list_categories(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    List the admin's company categories.
    """
    return service.list_categories(session, admin)


@router.post(
    "/categories",
    response_model=CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    payload: CategoryCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return service.create_category(session, admin, payload)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product by id.

    - Public endpoint.
    """
    return service.get_product(session, product_id)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Create a new product (admin only).
    """
    return service.create_product(session, admin, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a product (admin only).
    """
    service.delete_product(session, product_id)
    return None
