import logging
import re
from collections import deque
from typing import Any, Deque, Dict, List, Optional


TAG_MAP = {
    "VERIFY": "verification",
    "CLAIMS": "extraction",
    "MASK": "masking",
    "SHA2": "padding",
    "INPUTS": "inputs",
}

_TAG_RE = re.compile(r"\[([A-Z0-9]+)\]")
_GATE_RE = re.compile(r"gate=(\w+)(?:, offset=(-?\d+))?")


def tag_of(msg: str) -> Optional[str]:
    """First known subsystem tag in a message, e.g. 'VERIFY'."""
    for match in _TAG_RE.finditer(msg):
        if match.group(1) in TAG_MAP:
            return match.group(1)
    return None


class AuditTrailHandler(logging.Handler):
    """
    Logging handler that keeps a bounded trail of tagged records.

    [AUDIT] Rejections carry the failed gate and offset; they are parsed
    out of the message so a relying party can report them without
    string matching.
    """

    def __init__(self, maxlen: int = 1000, level: int = logging.NOTSET):
        super().__init__(level)
        self.buffer: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tag = tag_of(msg)
            if tag is None:
                return
            entry: Dict[str, Any] = {
                "tag": tag,
                "subsystem": TAG_MAP[tag],
                "level": record.levelname,
                "message": msg,
            }
            gate = _GATE_RE.search(msg)
            if gate:
                entry["gate"] = gate.group(1)
                entry["offset"] = int(gate.group(2)) if gate.group(2) else -1
            self.buffer.append(entry)
        except Exception:
            self.handleError(record)

    def rejections(self) -> List[Dict[str, Any]]:
        return [e for e in self.buffer if "gate" in e]


def attach_audit_trail(maxlen: int = 1000, level: int = logging.DEBUG) -> AuditTrailHandler:
    """Attach an AuditTrailHandler to the package logger and return it."""
    handler = AuditTrailHandler(maxlen=maxlen)
    root = logging.getLogger("zkauth")
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)
    return handler
