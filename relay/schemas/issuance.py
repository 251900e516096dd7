"""
============================================================================
Gift Card Relay v1.0.0
Issuance Schemas - Provider Wire Models and Validation Errors
============================================================================

Input Constraints: Values already validated by the request translator
Side Effects: None (pure data)

WIRE SHAPE (Tillo digital issue):
    {
        "client_request_id": "req-1",
        "choices": ["brand-x"],
        "face_value": {"amount": 10, "currency": "USD"},
        "delivery_method": "url",
        "fulfilment_by": "partner",
        "sector": "marketplace",
        "fulfilment_parameters": {...}      # only when supplied
    }

============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_DELIVERY_METHOD = "url"
DEFAULT_FULFILMENT_BY = "partner"
DEFAULT_SECTOR = "marketplace"
DEFAULT_CURRENCY = "USD"

# Sub-fields the provider needs for addressed fulfilment
REQUIRED_FULFILMENT_PARAMETERS = (
    "to_first_name",
    "to_last_name",
    "address_1",
    "city",
    "postal_code",
    "country",
)


# ============================================================================
# PROVIDER WIRE MODELS
# ============================================================================

class FaceValue(BaseModel):
    """Monetary amount and currency of the card being issued."""
    model_config = ConfigDict(frozen=True)

    amount: Union[int, float]
    currency: str


class ProviderRequest(BaseModel):
    """
    Translated payload sent to the provider.

    ``fulfilment_parameters`` is omitted from the wire form when absent;
    the provider treats an explicit null differently from a missing key.
    """
    model_config = ConfigDict(frozen=True)

    client_request_id: str
    choices: List[str] = Field(min_length=1)
    face_value: FaceValue
    delivery_method: str = DEFAULT_DELIVERY_METHOD
    fulfilment_by: str = DEFAULT_FULFILMENT_BY
    sector: str = DEFAULT_SECTOR
    fulfilment_parameters: Optional[Dict[str, Any]] = None

    @property
    def signing_brand(self) -> str:
        """Only the first candidate brand participates in the signature."""
        return self.choices[0]

    def to_wire(self) -> Dict[str, Any]:
        """Render the JSON-ready body."""
        body = self.model_dump(exclude={"fulfilment_parameters"})
        if self.fulfilment_parameters is not None:
            body["fulfilment_parameters"] = self.fulfilment_parameters
        return body


# ============================================================================
# VALIDATION ERROR
# ============================================================================

@dataclass(frozen=True)
class IssuanceValidationError:
    """
    Every constraint the caller request violated.

    Carried as a failure value, never raised.
    """
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "Validation failed"
