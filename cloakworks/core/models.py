"""SQLAlchemy models for the product and user services."""
from __future__ import annotations
from typing import Any

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class _SerializableMixin:
    """JSON (de)serialization over the mapped columns.

    Unknown keys are ignored and missing keys stay null.
    """

    @classmethod
    def field_names(cls) -> list[str]:
        return [column.name for column in cls.__table__.columns]

    @classmethod
    def from_dict(cls, payload: dict[str, Any]):
        return cls(**{name: payload[name] for name in cls.field_names() if name in payload})

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.field_names()}


class Product(_SerializableMixin, db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255))
    description = db.Column(db.Text)
    price = db.Column(db.Float)

    def __repr__(self):
        return f"<Product {self.id} {self.name}>"


class User(_SerializableMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(255))
    email = db.Column(db.String(255))
    first_name = db.Column(db.String(255))
    last_name = db.Column(db.String(255))

    def __repr__(self):
        return f"<User {self.id} {self.username}>"
