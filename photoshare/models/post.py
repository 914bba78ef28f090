from sqlalchemy import Column, String, Text, Integer, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from photoshare.db.base import BaseModel


class Post(BaseModel):
    __tablename__ = "posts"

    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(255), nullable=False)
    caption = Column(Text, default="", nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)

    # Relationships
    author = relationship("User", back_populates="posts", lazy="joined")
    comments = relationship("Comment", back_populates="post", lazy="raise")
    likes = relationship("Like", back_populates="post", lazy="raise")

    # Denormalized counts, maintained by CounterService
    like_count = Column(Integer, default=0, nullable=False)
    comment_count = Column(Integer, default=0, nullable=False)

    # Indexes for better performance
    __table_args__ = (
        Index('ix_posts_author_id_created_at', 'author_id', 'created_at'),
        Index('ix_posts_created_at', 'created_at'),
        Index('ix_posts_like_count_created_at', 'like_count', 'created_at'),
    )
