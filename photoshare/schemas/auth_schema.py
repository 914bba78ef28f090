from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Schema for login request"""
    identifier: str = Field(..., min_length=1, description="Username or email address")
    password: str = Field(..., min_length=1, description="Password")


class TokenData(BaseModel):
    """Schema for token payload data"""
    user_id: int = Field(..., description="User ID")
