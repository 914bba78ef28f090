from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from photoshare.db.base import BaseModel


class Like(BaseModel):
    __tablename__ = "likes"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)

    # Relationships
    user = relationship("User", back_populates="likes", lazy="raise")
    post = relationship("Post", back_populates="likes", lazy="raise")

    __table_args__ = (
        # One like per (user, post); concurrent duplicates fail at the database
        UniqueConstraint('user_id', 'post_id', name='uq_likes_user_post'),
        Index('ix_likes_post_id', 'post_id'),
        Index('ix_likes_user_id', 'user_id'),
    )
