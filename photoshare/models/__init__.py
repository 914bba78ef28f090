"""
Models package for Photoshare API
"""
from photoshare.db.base import Base, BaseModel
from photoshare.models.user import User, UserRole, AccountStatus
from photoshare.models.post import Post
from photoshare.models.comment import Comment
from photoshare.models.like import Like

__all__ = [
    'Base',
    'BaseModel',
    'User',
    'UserRole',
    'AccountStatus',
    'Post',
    'Comment',
    'Like',
]
