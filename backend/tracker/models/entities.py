from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tracker.db.base import Base


class MigrationRecord(Base):
    __tablename__ = "migrations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)


class Player(Base):
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(40), nullable=True)

    aliases: Mapped[list["Alias"]] = relationship(back_populates="player", passive_deletes=True)
    captures: Mapped[list["Capture"]] = relationship(back_populates="player", passive_deletes=True)


class Alias(Base):
    __tablename__ = "aliases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(40), nullable=False, index=True)

    player: Mapped[Player] = relationship(back_populates="aliases")


class Capture(Base):
    __tablename__ = "captures"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)

    player: Mapped[Player] = relationship(back_populates="captures")
