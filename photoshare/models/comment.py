from sqlalchemy import Column, Text, Integer, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from photoshare.db.base import BaseModel


class Comment(BaseModel):
    __tablename__ = "comments"

    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    is_edited = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    post = relationship("Post", back_populates="comments", lazy="raise")
    author = relationship("User", back_populates="comments", lazy="joined")

    # Indexes for better performance
    __table_args__ = (
        Index('ix_comments_post_id_created_at', 'post_id', 'created_at'),
        Index('ix_comments_author_id', 'author_id'),
    )
