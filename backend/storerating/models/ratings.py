# Overview: Rating model, one row per (user, store) pair.

from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Rating(db.Model):
    """
    One user's 1-5 score for one store.

    The (user_id, store_id) unique constraint is what actually enforces
    "one rating per user per store"; rating_service translates the
    IntegrityError into DuplicateRating.
    """
    __tablename__ = "ratings"
    __table_args__ = (
        db.UniqueConstraint("user_id", "store_id", name="uq_ratings_user_store"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_ratings_range"),
        db.Index("ix_ratings_store_id", "store_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("ratings", lazy=True, passive_deletes="all"))
    store = db.relationship("Store", backref=db.backref("ratings", lazy=True, passive_deletes="all"))

    def __repr__(self) -> str:
        return f"<Rating id={self.id} user_id={self.user_id} store_id={self.store_id} rating={self.rating}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "store_id": self.store_id,
            "rating": self.rating,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
