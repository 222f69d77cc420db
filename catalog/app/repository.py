from typing import List, Optional

import structlog
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from .db import get_session
from .models import Product

logger = structlog.get_logger(__name__)

# Largest value an INTEGER primary key holds on Postgres
MAX_ID = 2**31 - 1


class ProductRepository:
    """CRUD persistence for products on top of one request-scoped session."""

    def __init__(self, session: Session):
        self.session = session

    def list(self) -> List[Product]:
        """All products, newest id first."""
        return self.session.execute(select(Product).order_by(Product.id.desc())).scalars().all()

    def get(self, pid: int) -> Optional[Product]:
        if not 0 < pid <= MAX_ID:
            return None
        return self.session.get(Product, pid)

    def create(self, **fields) -> Product:
        p = Product(**fields)
        return self.save(p)

    def save(self, p: Product) -> Product:
        """Insert or update *p* and reload it so server-side defaults are populated."""
        self.session.add(p)
        self.session.flush()
        self.session.refresh(p)
        logger.info("product_saved", product_id=p.id)
        return p

    def delete(self, p: Product) -> None:
        self.session.delete(p)
        self.session.flush()
        logger.info("product_deleted", product_id=p.id)


def get_repository(session: Session = Depends(get_session)) -> ProductRepository:
    return ProductRepository(session)
