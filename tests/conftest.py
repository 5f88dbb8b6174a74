"""
zkauth Test Configuration
=========================

[QA] Central pytest configuration with fixtures for all test types:
- Unit tests: one component, no I/O, fast
- E2E tests: token -> inputs -> masked content -> verify -> claims

[FIXTURES]
- params: default CircuitParams
- commitment_hash: deterministic stand-in for the external Poseidon hash
- make_token: build signed tokens from header/payload JSON text
- masked_output: masked content and public scalars for a token

Usage:
    pytest tests/unit/          # Fast unit tests
    pytest tests/e2e/           # End-to-end tests
"""

import hashlib
import json
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence

import pytest
from nacl.signing import SigningKey

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "e2e: End-to-end tests (full pipeline)")
    config.addinivalue_line("markers", "security: Verifier rejection tests")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on their path."""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "/e2e/" in str(item.fspath):
            item.add_marker(pytest.mark.e2e)


# ============================================================================
# Logging Configuration
# ============================================================================

@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@pytest.fixture(scope="function")
def audit_trail():
    """AuditTrailHandler attached to the zkauth logger for one test."""
    from zkauth.logger import attach_audit_trail

    handler = attach_audit_trail()
    yield handler
    logging.getLogger("zkauth").removeHandler(handler)


# ============================================================================
# Circuit Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def params():
    from zkauth.config import CircuitParams
    return CircuitParams()


class RecordingHash:
    """
    Stand-in for the circuit's Poseidon hash.

    [MOCKS] SHA-256 of the decimal inputs, reduced mod P. Every call is
    recorded so tests can check input ordering.
    """

    def __init__(self):
        self.calls: List[List[int]] = []

    def __call__(self, values: Sequence[int]) -> int:
        from zkauth.config import P

        self.calls.append(list(values))
        digest = hashlib.sha256(",".join(str(v) for v in values).encode()).digest()
        return int.from_bytes(digest, "big") % P


@pytest.fixture(scope="function")
def commitment_hash() -> RecordingHash:
    return RecordingHash()


@pytest.fixture(scope="function")
def eph_key():
    """Ephemeral Ed25519 verify key."""
    return SigningKey.generate().verify_key


# ============================================================================
# Token Fixtures
# ============================================================================

DEFAULT_HEADER = '{"alg":"RS256","kid":"test_jwk","typ":"JWT"}'

DEFAULT_CLAIMS: Dict[str, Any] = {
    "iss": "https://accounts.example.com",
    "azp": "575519204237-msop9ep45u2uo98hapqmngv8d84qdc8k.apps.example.com",
    "aud": "575519204237-msop9ep45u2uo98hapqmngv8d84qdc8k.apps.example.com",
    "sub": "110463452167303598383",
    "nonce": "16637918813908060261870528903994038721669799613803601616678155512181273289477",
    "iat": 1682002642,
    "exp": 1682006242,
}


@pytest.fixture(scope="function")
def make_token() -> Callable[..., str]:
    """
    Factory for `header.payload.signature` strings.

    Payload may be a dict (compact JSON) or raw JSON text, so tests can
    control exact byte offsets.
    """
    from zkauth.token import b64url_encode

    def _make(payload: Any = None, header: str = DEFAULT_HEADER, signature: str = "c2ln") -> str:
        if payload is None:
            payload = DEFAULT_CLAIMS
        if not isinstance(payload, str):
            payload = json.dumps(payload, separators=(",", ":"))
        return ".".join([
            b64url_encode(header.encode("utf-8")),
            b64url_encode(payload.encode("utf-8")),
            signature,
        ])

    return _make


@pytest.fixture(scope="function")
def sample_token(make_token) -> str:
    return make_token()


@dataclass
class MaskedOutput:
    """Masked content plus the public scalars the circuit would emit."""
    masked_content: List[int]
    num_sha2_blocks: int
    payload_start_index: int
    payload_len: int
    mask: List[int] = field(default_factory=list)

    @property
    def payload_end(self) -> int:
        return self.payload_start_index + self.payload_len

    def verify_args(self):
        return (
            list(self.masked_content),
            self.num_sha2_blocks,
            self.payload_start_index,
            self.payload_len,
        )


@pytest.fixture(scope="function")
def make_masked_output(params) -> Callable[..., MaskedOutput]:
    """Mask a token the way the circuit does, without any hashing."""
    from zkauth.mask import apply_mask, build_mask, extend_mask
    from zkauth.sha2 import padded_bytes
    from zkauth.token import Token

    def _make(token: str, reveal=("iss", "aud"), circuit=None) -> MaskedOutput:
        circuit = circuit or params
        parsed = Token.parse(token)
        max_len = circuit.max_padded_unsigned_jwt_len
        content, num_blocks = padded_bytes(parsed.unsigned.encode("ascii"), max_len)
        mask = extend_mask(build_mask(parsed, reveal), max_len)
        return MaskedOutput(
            masked_content=apply_mask(content, mask, circuit.mask_value),
            num_sha2_blocks=num_blocks,
            payload_start_index=parsed.payload_start_index,
            payload_len=len(parsed.payload),
            mask=mask,
        )

    return _make


@pytest.fixture(scope="function")
def masked_output(sample_token, make_masked_output) -> MaskedOutput:
    return make_masked_output(sample_token)
