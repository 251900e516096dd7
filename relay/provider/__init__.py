# ============================================================================
# Gift Card Relay v1.0.0
# Provider Integration Module - Tillo Digital Issue
# ============================================================================
#
# Components:
#   - AmountGateway: One rendering of the face value for body and signature
#   - TilloSigner: HMAC-SHA256 request signing
#   - TilloClient: Single-attempt issue call
#   - Error normalizer: Provider failures to the local taxonomy
#
# ============================================================================

from relay.provider.amount_gateway import AmountGateway
from relay.provider.result import Result
from relay.provider.hmac_signer import (
    TilloSigner,
    SignatureContext,
    SignedHeaders,
    MissingCredentialsError,
    build_signature_string,
    generate_timestamp,
    sign,
)
from relay.provider.tillo_client import (
    TilloClient,
    ProviderResponse,
    ProviderFailure,
)
from relay.provider.error_normalizer import (
    ErrorCategory,
    NormalizedError,
    TILLO_ERROR_CODES,
    normalize,
    normalize_validation,
)

__all__ = [
    # Amount Gateway
    'AmountGateway',
    # Result
    'Result',
    # HMAC Signer
    'TilloSigner',
    'SignatureContext',
    'SignedHeaders',
    'MissingCredentialsError',
    'build_signature_string',
    'generate_timestamp',
    'sign',
    # Tillo Client
    'TilloClient',
    'ProviderResponse',
    'ProviderFailure',
    # Error Normalizer
    'ErrorCategory',
    'NormalizedError',
    'TILLO_ERROR_CODES',
    'normalize',
    'normalize_validation',
]
