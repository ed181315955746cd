"""Auth state row model (serialized values partitioned by session)."""

from sqlalchemy import Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from authstate.models.base import Base


class AuthStateRow(Base):
    __tablename__ = "auth_state"

    session_id: Mapped[str] = mapped_column(Text, primary_key=True)
    data_key: Mapped[str] = mapped_column(Text, primary_key=True)
    data_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        # same columns as the primary key
        Index("idx_session_key", "session_id", "data_key"),
        {"sqlite_with_rowid": False},
    )
