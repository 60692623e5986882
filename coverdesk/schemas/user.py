"""
Schémas Utilisateur et authentification / User and authentication schemas.
Le hash du mot de passe n'est jamais exposé / The password hash is never exposed.
"""

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=200)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    username: str
    first_name: str
    last_name: str
    contract_index: list[str] = []


class LoginRequest(BaseModel):
    """Requête de connexion / Login request."""
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=200)


class PasswordUpdate(BaseModel):
    new_password: str = Field(min_length=1, max_length=200)


class TokenResponse(BaseModel):
    """Réponse avec token / Token response."""
    access_token: str
    token_type: str = "bearer"
