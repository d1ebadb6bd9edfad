from typing import Any, Generic, Optional, Type, TypeVar
from sqlmodel import SQLModel, Session, select, func

# Type générique pour le modèle (User, MediaItem, AccessGrant, etc.)
ModelT = TypeVar("ModelT", bound=SQLModel)

class BaseRepository(Generic[ModelT]):
    """
    Repository de base : lecture par identifiant ou par condition, création, mise à jour.

    👉 Ne contient aucune logique métier.
    👉 Les repositories concrets définissent `model = MaClasseSQLModel`
       et n'écrivent que leurs requêtes spécifiques.
    """

    model: Type[ModelT]

    def __init__(self, session: Session):
        self.session = session

    # ---------- READ ----------

    def get(self, id_: Any) -> Optional[ModelT]:
        """Retourne un enregistrement par son identifiant, ou None."""
        return self.session.get(self.model, id_)

    def first_where(self, *conditions) -> Optional[ModelT]:
        """Premier enregistrement qui vérifie toutes les conditions, ou None."""
        return self.session.exec(select(self.model).where(*conditions)).first()

    def count(self) -> int:
        """Retourne le nombre total d’enregistrements."""
        return self.session.exec(select(func.count(self.model.id))).one()

    # ---------- WRITE ----------

    def create(self, **fields) -> ModelT:
        entity = self.model(**fields)
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def update(self, entity: ModelT, **changes) -> ModelT:
        for key, value in changes.items():
            setattr(entity, key, value)
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity
