"""
Notely Backend - Identity Schemas
===================================

What:  The profile the identity provider hands back after a successful
       code exchange. Everything else about the provider stays inside
       GoogleOAuthClient.
"""

from typing import Optional

from pydantic import BaseModel, Field


class IdentityProfile(BaseModel):
    subject: str = Field(min_length=1, description="Stable provider subject identifier")
    display_name: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
