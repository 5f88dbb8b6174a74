"""
JWT Token Segments and Claim Location
=====================================

Две параллельные проекции одного и того же payload:
- base64url строка (то, что видит SHA-256 и маска)
- декодированный UTF-8 JSON (то, что видит человек)

Claim location maps a top-level JSON member of the decoded payload back
to the smallest run of base64url characters that carries it.

[B64] 3 decoded bytes <-> 4 encoded characters. Byte i starts at bit 8*i,
which lies inside character floor(8*i / 6). A claim occupying decoded
bytes [s, e] therefore lives in characters

    [floor(4*s / 3), floor((8*e + 7) / 6)]

The first and last characters may carry a few bits of neighbouring bytes;
ClaimExtractor drops those partial bytes on decode.
"""

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .errors import ClaimNotFound, MalformedInput

B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")

_JSON_WS = " \t\n\r"
_decoder = json.JSONDecoder()


def b64url_decode(data: str) -> bytes:
    """Decode unpadded base64url. Rejects characters outside the alphabet."""
    if not B64URL_RE.match(data):
        raise MalformedInput("Segment is not unpadded base64url")
    if len(data) % 4 == 1:
        raise MalformedInput(f"Invalid base64url length {len(data)}")
    try:
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError) as e:
        raise MalformedInput(f"Invalid base64url segment: {e}")


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class Token:
    """
    A JWT split into its segments.

    `signature` is empty for an unsigned token (`header.payload`).
    """

    header: str
    payload: str
    signature: str = ""

    @classmethod
    def parse(cls, token: str) -> "Token":
        """
        Split a dot-delimited token.

        Raises:
            MalformedInput: wrong number of segments, non-ASCII or
                            non-base64url header/payload
        """
        try:
            token.encode("ascii")
        except UnicodeEncodeError:
            raise MalformedInput("Token is not ASCII")

        parts = token.split(".")
        if len(parts) not in (2, 3):
            raise MalformedInput(f"Token must have 2 or 3 segments, got {len(parts)}")

        header, payload = parts[0], parts[1]
        for name, segment in (("header", header), ("payload", payload)):
            if not segment or not B64URL_RE.match(segment):
                raise MalformedInput(f"Token {name} is not unpadded base64url")

        return cls(header=header, payload=payload, signature=parts[2] if len(parts) == 3 else "")

    @property
    def unsigned(self) -> str:
        """`header.payload`, the part hashed and masked."""
        return f"{self.header}.{self.payload}"

    @property
    def payload_start_index(self) -> int:
        return len(self.header) + 1

    def header_json(self) -> Any:
        return load_json_segment(self.header, "header")

    def payload_json(self) -> Any:
        return load_json_segment(self.payload, "payload")

    def decoded_payload(self) -> str:
        try:
            return b64url_decode(self.payload).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInput(f"Payload is not UTF-8: {e}")


def load_json_segment(segment: str, name: str) -> Any:
    try:
        return json.loads(b64url_decode(segment).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedInput(f"Token {name} is not UTF-8 JSON: {e}")


# ============================================================================
# Claim location
# ============================================================================

@dataclass(frozen=True)
class ClaimSpan:
    """
    Position of one top-level claim.

    extended_claim: `"name":value` plus the terminating ',' or '}'
    start/end: inclusive byte offsets of extended_claim in the decoded payload
    index_b64/length_b64: the carrying run in payload-character units
    """

    name: str
    value: Any
    extended_claim: str
    start: int
    end: int
    index_b64: int
    length_b64: int


def b64_span(start: int, end: int) -> Tuple[int, int]:
    """Decoded byte range [start, end] -> (index_b64, length_b64)."""
    if start < 0 or end < start:
        raise MalformedInput(f"Invalid byte range [{start}, {end}]")
    first = (4 * start) // 3
    last = (8 * end + 7) // 6
    return first, last - first + 1


def _skip_ws(text: str, idx: int) -> int:
    while idx < len(text) and text[idx] in _JSON_WS:
        idx += 1
    return idx


def _top_level_members(text: str) -> List[Tuple[str, Any, int, int]]:
    """
    Walk the members of a JSON object.

    Returns:
        [(key, value, key_start, terminator_index), ...] in character
        offsets of `text`; terminator is the ',' or '}' after the value.
    """
    idx = _skip_ws(text, 0)
    if idx >= len(text) or text[idx] != "{":
        raise MalformedInput("Payload is not a JSON object")
    idx = _skip_ws(text, idx + 1)

    members: List[Tuple[str, Any, int, int]] = []
    if idx < len(text) and text[idx] == "}":
        return members

    try:
        while True:
            key_start = idx
            key, idx = _decoder.raw_decode(text, idx)
            if not isinstance(key, str):
                raise MalformedInput(f"Object key at {key_start} is not a string")
            idx = _skip_ws(text, idx)
            if idx >= len(text) or text[idx] != ":":
                raise MalformedInput(f"Expected ':' at {idx}")
            idx = _skip_ws(text, idx + 1)
            value, idx = _decoder.raw_decode(text, idx)
            idx = _skip_ws(text, idx)
            if idx >= len(text) or text[idx] not in ",}":
                raise MalformedInput(f"Expected ',' or '}}' at {idx}")
            members.append((key, value, key_start, idx))
            if text[idx] == "}":
                return members
            idx = _skip_ws(text, idx + 1)
    except json.JSONDecodeError as e:
        raise MalformedInput(f"Payload is not valid JSON: {e}")


def locate_claim(payload_b64: str, name: str) -> ClaimSpan:
    """
    Find the top-level claim `name` inside a base64url payload.

    Raises:
        ClaimNotFound: no top-level member with that name
        MalformedInput: payload is not a base64url JSON object
    """
    raw = b64url_decode(payload_b64)
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedInput(f"Payload is not UTF-8: {e}")

    found: Optional[Tuple[str, Any, int, int]] = None
    for member in _top_level_members(text):
        if member[0] == name:
            found = member
            break
    if found is None:
        raise ClaimNotFound(name)

    _, value, key_start, term = found
    extended = text[key_start:term + 1]

    # Character offsets -> byte offsets (payload may contain multi-byte UTF-8)
    start = len(text[:key_start].encode("utf-8"))
    end = start + len(extended.encode("utf-8")) - 1
    index_b64, length_b64 = b64_span(start, end)

    return ClaimSpan(
        name=name,
        value=value,
        extended_claim=extended,
        start=start,
        end=end,
        index_b64=index_b64,
        length_b64=length_b64,
    )


def claim_string(payload_b64: str, name: str) -> str:
    """Extended claim text (`"name":value,` or `"name":value}`)."""
    return locate_claim(payload_b64, name).extended_claim
