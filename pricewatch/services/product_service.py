import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from pricewatch.models.product import Category, Product
from pricewatch.models.user import User
from pricewatch.repositories.product_repo import ProductRepository
from pricewatch.schemas.product import CategoryCreate, ProductCreate, ProductUpdate


class ProductService:
    """
    Business logic for Product & Category.

    Responsibilities:
      - barcode uniqueness
      - category existence checks
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    def _ensure_barcode_free(
        self,
        session: Session,
        barcode: str,
        product_id: uuid.UUID | None = None,
    ) -> None:
        existing = self.repo.get_by_barcode(session, barcode)
        if existing is not None and existing.id != product_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A product with this barcode already exists",
            )

    def _ensure_category(self, session: Session, category_id: uuid.UUID | None) -> None:
        if category_id is None:
            return
        if self.repo.get_category(session, category_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Category not found",
            )

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
    ) -> list[Product]:
        return self.repo.list_products(session, skip=skip, limit=limit, search=search)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_by_barcode(self, session: Session, barcode: str) -> Product:
        """
        Barcode lookup used by collectors before submitting a price.

        404 tells the client to fall back to manual entry.
        """
        product = self.repo.get_by_barcode(session, barcode.strip())
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found. Please use manual entry.",
            )
        return product

    def create_product(
        self,
        session: Session,
        admin: User,
        payload: ProductCreate,
    ) -> Product:
        self._ensure_barcode_free(session, payload.barcode)
        self._ensure_category(session, payload.category_id)

        product = Product(
            name=payload.name,
            brand=payload.brand,
            barcode=payload.barcode,
            category_id=payload.category_id,
            company_id=admin.company_id,
        )
        return self.repo.create(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        """
        Partial update of a product.

        - If barcode is changed, enforce uniqueness.
        """
        product = self.get_product(session, product_id)

        if payload.name is not None:
            product.name = payload.name

        if payload.brand is not None:
            product.brand = payload.brand.strip() or None

        if payload.barcode is not None and payload.barcode != product.barcode:
            self._ensure_barcode_free(session, payload.barcode, product.id)
            product.barcode = payload.barcode

        if payload.category_id is not None:
            self._ensure_category(session, payload.category_id)
            product.category_id = payload.category_id

        return self.repo.update(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> None:
        product = self.get_product(session, product_id)
        self.repo.delete(session, product)

    # ----- Categories -----

    def list_categories(self, session: Session, admin: User) -> list[Category]:
        return self.repo.list_categories(session, company_id=admin.company_id)

    def create_category(
        self,
        session: Session,
        admin: User,
        payload: CategoryCreate,
    ) -> Category:
        category = Category(name=payload.name, company_id=admin.company_id)
        return self.repo.create_category(session, category)
