"""Pydantic schemas for login, registration and driver management."""

from pydantic import BaseModel, ConfigDict, Field


class DriverLoginRequest(BaseModel):
    """Driver login credentials."""

    name: str | None = Field(None, description="Driver name")
    password: str | None = Field(None, description="Driver password")

    model_config = ConfigDict(extra="ignore")


class AdminLoginRequest(BaseModel):
    """Administrator login credentials."""

    username: str | None = Field(None, description="Administrator username")
    password: str | None = Field(None, description="Administrator password")

    model_config = ConfigDict(extra="ignore")


class RegisterDriverRequest(BaseModel):
    """Driver self-registration."""

    name: str | None = Field(None, max_length=100, description="Driver name")
    password: str | None = Field(None, max_length=128, description="Driver password")

    model_config = ConfigDict(extra="ignore")


class LoginResponse(BaseModel):
    """Successful login."""

    success: bool = Field(True, description="Always true on success")
    name: str | None = Field(None, description="Authenticated identity")


class RegisterResponse(BaseModel):
    """Successful registration."""

    success: bool = Field(True, description="Always true on success")
    id: int = Field(..., description="New driver id")


class DriverResponse(BaseModel):
    """A registered driver (no credentials)."""

    id: int = Field(..., description="Driver id")
    name: str = Field(..., description="Driver name")

    model_config = ConfigDict(from_attributes=True)
