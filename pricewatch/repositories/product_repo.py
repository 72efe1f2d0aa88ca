import uuid

from sqlmodel import Session, col, or_, select

from pricewatch.models.product import Category, Product


class ProductRepository:
    """
    Data access layer for products and categories.
    """

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        search: str | None = None,
    ) -> list[Product]:
        """
        List products ordered by name.

        search: case-insensitive match on name or brand, or a barcode prefix.
        """
        stmt = select(Product)
        if search:
            pattern = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    col(Product.name).ilike(pattern),
                    col(Product.brand).ilike(pattern),
                    col(Product.barcode).startswith(search),
                )
            )
        stmt = stmt.order_by(Product.name).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_all(self, session: Session) -> list[Product]:
        return list(session.exec(select(Product)).all())

    def list_by_ids(self, session: Session, product_ids: set[uuid.UUID]) -> list[Product]:
        if not product_ids:
            return []
        stmt = select(Product).where(col(Product.id).in_(product_ids))
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_barcode(self, session: Session, barcode: str) -> Product | None:
        stmt = select(Product).where(Product.barcode == barcode)
        return session.exec(stmt).first()

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def add(self, session: Session, product: Product) -> Product:
        """
        Insert a Product without committing, but ensure id is populated.
        """
        session.add(product)
        session.flush()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        session.delete(product)
        session.commit()

    # ----- Categories -----

    def list_categories(
        self,
        session: Session,
        company_id: uuid.UUID | None = None,
    ) -> list[Category]:
        stmt = select(Category)
        if company_id is not None:
            stmt = stmt.where(Category.company_id == company_id)
        return list(session.exec(stmt.order_by(Category.name)).all())

    def get_category(self, session: Session, category_id: uuid.UUID) -> Category | None:
        return session.get(Category, category_id)

    def create_category(self, session: Session, category: Category) -> Category:
        session.add(category)
        session.commit()
        session.refresh(category)
        return category
