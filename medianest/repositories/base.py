"""Primary-key lookups shared by the stores."""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.orm import Session

from ..database import Base
from ..exceptions import NotFoundError

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Subclasses set ``model_class`` and the ``not_found_error`` raised by ``get_by_id``."""

    model_class: Type[ModelT]
    not_found_error: Type[NotFoundError]

    def __init__(self, db: Session):
        self.db = db

    def get_by_id_optional(self, entity_id: int) -> Optional[ModelT]:
        if entity_id is None or entity_id <= 0:
            return None
        return self.db.get(self.model_class, entity_id)

    def get_by_id(self, entity_id: int) -> ModelT:
        entity = self.get_by_id_optional(entity_id)
        if entity is None:
            raise self.not_found_error(entity_id)
        return entity
