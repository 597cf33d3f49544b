"""Generic data access over a Flask-SQLAlchemy model."""
from __future__ import annotations
import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .models import db

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class Repository(Generic[ModelT]):
    """find_all / find_by_id / save for one entity type.

    Usage:
        products = Repository(Product)
        products.save(Product(name="Laptop", price=999.99))
    """

    def __init__(self, model: Type[ModelT]):
        self.model = model

    def find_all(self) -> list[ModelT]:
        return list(db.session.scalars(db.select(self.model).order_by(self.model.id)))

    def find_by_id(self, entity_id: int) -> Optional[ModelT]:
        return db.session.get(self.model, entity_id)

    def save(self, entity: ModelT) -> ModelT:
        """Insert, or overwrite the row with the same id when one exists.

        Raises:
            SQLAlchemyError: Storage failure (session rolled back)
        """
        try:
            persisted = db.session.merge(entity)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.error(f"Failed to save {self.model.__name__}", exc_info=True)
            raise
        logger.debug(f"Saved {persisted!r}")
        return persisted
