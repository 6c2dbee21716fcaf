from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Placement(str, Enum):
    """Where a request signature is attached."""

    HEADER = "header"
    QUERY = "query"


class SignatureMethod(str, Enum):
    """See https://datatracker.ietf.org/doc/html/rfc5849#section-3.4"""

    HMAC_SHA1 = "HMAC-SHA1"
    PLAINTEXT = "PLAINTEXT"


class Credential(BaseModel):
    """OAuth 1.0 credential set issued by the authority.

    Instances are frozen: a new login produces a new object that replaces the
    old one wholesale.
    """

    model_config = ConfigDict(frozen=True)

    consumer_key: str = Field(..., min_length=1)
    consumer_secret: str = Field(..., min_length=1, repr=False)
    token_key: str = Field(..., min_length=1)
    token_secret: str = Field(..., min_length=1, repr=False)
    token_name: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1, repr=False)
    second_factor: str | None = Field(default=None, repr=False)

    @field_validator("second_factor", mode="before")
    @classmethod
    def empty_second_factor_is_absent(cls, v: str | None) -> str | None:
        # "" means the caller has no code to offer, not an empty code
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SignedRequest(BaseModel):
    """The parts of an outgoing request that a signature covers."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    placement: Placement = Placement.HEADER
