"""
Resolved server options.

The per-request view of configuration carried by every Event.
"""

from typing import FrozenSet, Literal

from pydantic import BaseModel, ConfigDict, Field

Protocol = Literal["incoming", "both", "http", "https"]


class AuthenticationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    protocol: Protocol = "incoming"


class TransformationFilterOptions(BaseModel):
    """Transformations that may skip access token checks on reads."""

    model_config = ConfigDict(frozen=True)

    whitelist: FrozenSet[str] = frozenset()
    blacklist: FrozenSet[str] = frozenset()


class ServerOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    authentication: AuthenticationOptions = Field(default_factory=AuthenticationOptions)
    transformations: TransformationFilterOptions = Field(
        default_factory=TransformationFilterOptions
    )

    @classmethod
    def from_config(cls, config) -> "ServerOptions":
        return cls(
            authentication=AuthenticationOptions(protocol=config.AUTH_PROTOCOL),
            transformations=TransformationFilterOptions(
                whitelist=frozenset(config.TRANSFORMATIONS_WHITELIST),
                blacklist=frozenset(config.TRANSFORMATIONS_BLACKLIST),
            ),
        )
