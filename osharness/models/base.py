"""Base model configuration for all data structures."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Base model with standard configuration.

    Frozen so that descriptors and contexts stay read-only once built, and
    allowing arbitrary types so semantic versions can be stored as-is.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
