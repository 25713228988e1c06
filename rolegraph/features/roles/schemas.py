"""
Pydantic schemas for role management.

Request and response models for roles and their ancestors.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from rolegraph.features.roles.identity import parse_id
from rolegraph.features.roles.models import Role


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(BaseModel):
    """Base role schema."""
    display_name: str = Field("", max_length=100, description="Human readable name")
    users: List[str] = Field(default_factory=list, description="User identifiers (owner/name) granted the role")
    roles: List[str] = Field(default_factory=list, description="Sub-role identifiers (owner/name) this role contains")
    domains: List[str] = Field(default_factory=list, description="Scoping domains")
    is_enabled: bool = True

    @field_validator('users', 'roles')
    @classmethod
    def owner_name_identifiers(cls, v: List[str]) -> List[str]:
        """Validate identifier format."""
        for identifier in v:
            parse_id(identifier)
        return v


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    owner: str = Field(..., min_length=1, max_length=100, description="Owning organization")
    name: str = Field(..., min_length=1, max_length=100, description="Role name, unique per owner")

    @field_validator('owner', 'name')
    @classmethod
    def no_separator(cls, v: str) -> str:
        """Owner and name may not contain the identifier separator."""
        if "/" in v:
            raise ValueError("must not contain '/'")
        return v

    def to_model(self) -> Role:
        return Role(**self.model_dump())


class RoleUpdate(RoleBase):
    """
    Schema for replacing a role.

    Every field is written; omitted lists are stored empty. Changing
    ``name`` renames the role and every reference to it.
    """
    name: str = Field(..., min_length=1, max_length=100, description="New (or unchanged) role name")

    @field_validator('name')
    @classmethod
    def no_separator(cls, v: str) -> str:
        if "/" in v:
            raise ValueError("must not contain '/'")
        return v

    def to_model(self, owner: str) -> Role:
        return Role(owner=owner, **self.model_dump())


class RoleResponse(RoleBase):
    """Schema for role response."""
    owner: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
