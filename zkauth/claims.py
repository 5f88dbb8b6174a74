"""
Revealed Claim Extraction
=========================

Recovers the disclosed claims from a verified masked payload.

[ALGORITHM]
1. Find maximal runs of non-sentinel characters, with exact offsets
2. For each run: alignment = offset % 4 (position inside its base64 group)
3. Left-pad with `alignment` zero-value characters ('A'), decode, then drop
   the first `alignment` bytes: they were never fully revealed
4. Decode the remaining bytes as UTF-8

[B64] The alignment is threaded explicitly into decode_masked_b64. A wrong
alignment does not fail, it silently yields wrong bytes, so offsets are
taken from the regex match and never recomputed by searching for the text.
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .errors import DecodeError
from .token import B64URL_RE

logger = logging.getLogger(__name__)

ZERO_CHAR = "A"                 # base64 value 0


@dataclass(frozen=True)
class RevealedClaim:
    """
    One contiguous revealed run.

    offset: character offset of the run inside the payload
    encoded: the run as it appears in masked content
    text: decoded claim text, e.g. '"iss":"https://issuer",'
    """

    offset: int
    encoded: str
    text: str

    @property
    def alignment(self) -> int:
        return self.offset % 4

    def as_dict(self) -> Dict[str, Any]:
        """
        Parse the run as JSON object members.

        A run covers one claim, or several when their spans touch.

        Raises:
            DecodeError: text is not a sequence of complete members
        """
        body = self.text.strip()
        if body[:1] in (",", "{"):
            body = body[1:]
        if body[-1:] in (",", "}"):
            body = body[:-1]
        try:
            parsed = json.loads("{" + body + "}")
        except ValueError as e:
            raise DecodeError(f"Revealed run is not complete claims: {e}", self.offset)
        return parsed


def decode_masked_b64(segment: str, alignment: int) -> bytes:
    """
    Decode a base64url run that starts `alignment` characters into its group.

    Args:
        segment: Revealed characters (no sentinel inside)
        alignment: Position of segment[0] within its 4-character group

    Returns:
        The bytes fully covered by the run

    Raises:
        DecodeError: bad alphabet, or a run no legitimate claim span yields
    """
    if alignment not in (0, 1, 2, 3):
        raise DecodeError(f"Alignment must be 0..3, got {alignment}")
    if not segment or not B64URL_RE.match(segment):
        raise DecodeError("Revealed run contains non-base64url characters")

    # Claim spans start at character 0, 1 or 2 of a group
    if alignment == 3:
        raise DecodeError("Revealed run starts on the last character of a group")

    # A lone trailing character carries 6 bits, which complete no byte
    total = alignment + len(segment)
    if total % 4 == 1:
        raise DecodeError("Revealed run ends with a dangling character")

    padded = ZERO_CHAR * alignment + segment
    try:
        decoded = base64.urlsafe_b64decode(padded + "=" * (-total % 4))
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64url run: {e}")

    return decoded[alignment:]


def extract_claims(
    masked_payload: Union[str, bytes],
    mask_value: Union[str, int] = "=",
) -> List[RevealedClaim]:
    """
    Extract revealed claims in left-to-right payload order.

    Args:
        masked_payload: VerifiedContent.masked_payload
        mask_value: Sentinel character (or its byte value)

    Raises:
        DecodeError: a run fails to decode to UTF-8 text
    """
    if isinstance(masked_payload, (bytes, bytearray)):
        masked_payload = bytes(masked_payload).decode("latin-1")
    if isinstance(mask_value, int):
        mask_value = chr(mask_value)

    claims: List[RevealedClaim] = []
    for match in re.finditer(f"[^{re.escape(mask_value)}]+", masked_payload):
        offset = match.start()
        run = match.group()
        try:
            raw = decode_masked_b64(run, offset % 4)
        except DecodeError as e:
            raise DecodeError(f"{e} at payload offset {offset}", offset)
        if not raw:
            raise DecodeError(f"Revealed run at {offset} covers no whole byte", offset)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Revealed run at {offset} is not UTF-8: {e}", offset)
        claims.append(RevealedClaim(offset=offset, encoded=run, text=text))

    logger.debug(f"[CLAIMS] Extracted {len(claims)} revealed runs")
    return claims
