"""Declarative base for authstate models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
