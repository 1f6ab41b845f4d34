# Overview: Store and store media models; the rating aggregate lives on Store.

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z


def format_average(value: Decimal | float | None) -> str:
    """Render an average rating the way the API exposes it ("4.50")."""
    if value is None:
        return "0.00"
    return f"{Decimal(value):.2f}"


class Store(db.Model):
    """
    A rated business, owned by exactly one store_owner user.

    average_rating / total_ratings are a materialized aggregate over the
    store's Rating rows. Only rating_service.recompute_store_aggregate()
    writes them; no route or other service may set them directly.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_stores_owner_id"),
        db.Index("ix_stores_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    address = db.Column(db.String(400), nullable=False)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    average_rating = db.Column(db.Numeric(3, 2), nullable=False, default=Decimal("0.00"))
    total_ratings = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship(
        "User",
        backref=db.backref("store", uselist=False, lazy=True, passive_deletes="all"),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r} owner_id={self.owner_id}>"

    def to_dict(self, *, include_owner: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "owner_id": self.owner_id,
            "average_rating": format_average(self.average_rating),
            "total_ratings": self.total_ratings or 0,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_owner and self.owner is not None:
            data["owner"] = {
                "id": self.owner.id,
                "name": self.owner.name,
                "email": self.owner.email,
            }
        return data


class StoreMedia(db.Model):
    """Image/video assets of a store; the binary lives on the media host."""
    __tablename__ = "store_media"
    __table_args__ = (
        db.CheckConstraint("file_type IN ('image', 'video')", name="ck_store_media_file_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    file_url = db.Column(db.String(500), nullable=False)
    file_name = db.Column(db.String(255), nullable=False)
    file_type = db.Column(db.String(16), nullable=False)

    # Public id on the media host, needed to destroy the asset
    external_media_id = db.Column(db.String(255), nullable=True)
    file_size = db.Column(db.Integer, nullable=True)  # bytes

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("media", lazy=True, passive_deletes="all"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "file_url": self.file_url,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "created_at": to_utc_z(self.created_at),
        }
