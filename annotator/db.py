"""
SQLAlchemy models and session plumbing for document metadata.

Documents own an ordered list of highlights; deleting a document deletes its
highlights. Engines and session factories are created explicitly by the
application lifespan and handed to request handlers through app.state.
"""

import uuid
from datetime import datetime
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import (
    Column, String, Text, Integer, DateTime, ForeignKey, Index, BigInteger, Uuid,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session
from sqlalchemy.pool import StaticPool


Base = declarative_base()


class Document(Base):
    """Uploaded PDF with extracted text, summary and annotated rendering."""

    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(String(255), nullable=False)  # Opaque id from the auth service
    title = Column(String(500), nullable=False)
    size = Column(BigInteger, nullable=False)
    page_count = Column(Integer, nullable=False)
    text_content = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    storage_path = Column(String(1000), nullable=True)  # Blob key of the original PDF
    upload_date = Column(DateTime, default=datetime.utcnow)

    # Most recent annotated rendering, overwritten on every generation
    annotated_storage_path = Column(String(1000), nullable=True)
    annotated_generated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    highlights = relationship(
        "Highlight",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Highlight.position",
    )

    @property
    def has_annotated_version(self) -> bool:
        return bool(self.annotated_storage_path)


class Highlight(Base):
    """A highlighted text span on one page of a document."""

    __tablename__ = "highlights"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # Insertion order within the document
    text = Column(Text, nullable=False)
    color = Column(String(20), nullable=False, default="yellow")
    comment = Column(Text, nullable=True)
    page = Column(Integer, nullable=False)  # 1-indexed
    start = Column(Integer, nullable=False)
    end = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    document = relationship("Document", back_populates="highlights")


Index("idx_documents_user_id", Document.user_id)
Index("idx_highlights_document_id", Highlight.document_id)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a database engine for the metadata store.

    In-memory SQLite URLs share one connection so every session sees the
    same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=300,
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


def init_schema(engine: Engine) -> None:
    """Create all tables if they do not exist."""
    Base.metadata.create_all(bind=engine)


def drop_schema(engine: Engine) -> None:
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    """Get database session (dependency injection)."""
    session_factory: Optional[sessionmaker] = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        raise RuntimeError("Database session factory is not initialized")
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
