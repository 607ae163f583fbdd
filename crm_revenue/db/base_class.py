"""Declarative base for the pricing and revenue tables.

Table names default to the lowercased class name; multi-word models set
``__tablename__`` explicitly.
"""

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore
        return cls.__name__.lower()
