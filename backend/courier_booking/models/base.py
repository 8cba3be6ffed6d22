from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    def to_document(self) -> dict:
        """Return the row as a plain dict keyed by column attribute name."""
        return {
            attr.key: getattr(self, attr.key)
            for attr in self.__mapper__.column_attrs
        }
