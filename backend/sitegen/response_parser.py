"""
Defensive parsing of free-text model responses.

The model is never trusted to answer with bare JSON or a well-formed block.
Every parser here reports *why* it found nothing: no structured payload at
all is a different outcome from an empty one.
"""

from dataclasses import dataclass, field
from enum import Enum
import json
import re


class ParseStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"   # no '{' anywhere / no block
    INVALID = "invalid"       # braces present but nothing parses as an object
    EMPTY = "empty"           # parsed, but the object is {}


@dataclass(frozen=True)
class JsonExtraction:
    status: ParseStatus
    payload: dict | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ParseStatus.OK


_ANY_FENCE_RE = re.compile(r"```[a-zA-Z]*[ \t]*\n?")


def extract_html_fragment(text: str) -> str:
    """
    Markup from a model answer: every code fence is dropped, wherever it
    appears, along with any prose before the first tag or after the last.
    """
    text = _ANY_FENCE_RE.sub("", text or "")
    start = text.find("<")
    end = text.rfind(">")
    if start == -1 or end < start:
        return ""
    return text[start:end + 1].strip()


def _balanced_end(text: str, start: int) -> int:
    """Index of the '}' closing the '{' at `start`, or -1. String-aware."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_json_object(raw: str) -> JsonExtraction:
    """
    Find the first balanced {...} substring that parses as a JSON object.

    Prose before/after the object and markdown fences are tolerated. If the
    first candidate is malformed, later '{' positions are tried.
    """
    text = raw or ""
    start = text.find("{")
    if start < 0:
        return JsonExtraction(ParseStatus.NOT_FOUND, error="no JSON object in response")

    last_error = "unbalanced braces"
    while start >= 0:
        end = _balanced_end(text, start)
        if end > start:
            candidate = text[start:end + 1]
            try:
                payload = json.loads(candidate)
            except json.JSONDecodeError as e:
                last_error = str(e)
            else:
                if isinstance(payload, dict):
                    if not payload:
                        return JsonExtraction(ParseStatus.EMPTY, payload={})
                    return JsonExtraction(ParseStatus.OK, payload=payload)
        start = text.find("{", start + 1)

    return JsonExtraction(ParseStatus.INVALID, error=last_error)


# ---------------------------------------------------------------
# Edit responses
# ---------------------------------------------------------------

_THOUGHT_RE = re.compile(r"<thought>(.*?)</thought>", re.DOTALL)
_RESPONSE_RE = re.compile(r"<response>(.*?)</response>", re.DOTALL)
_OPERATIONS_RE = re.compile(r"<operations>(.*?)(?:</operations>|\Z)", re.DOTALL)
_PAIR_RE = re.compile(
    r"\[SEARCH\](.*?)\[/SEARCH\]\s*\[REPLACE\](.*?)\[/REPLACE\]", re.DOTALL
)
_CODE_UPDATE_RE = re.compile(r"\[CODE_UPDATE\](.*?)\[/CODE_UPDATE\]", re.DOTALL)


@dataclass
class ParsedEditResponse:
    thought: str = ""
    message: str = ""
    # None: no <operations> block at all. []: block present but empty.
    operations: list[tuple[str, str]] | None = None
    code_update: str | None = None
    notes: list[str] = field(default_factory=list)


def parse_edit_response(raw: str) -> ParsedEditResponse:
    """
    Split a diff-edit response into thought / user message / operations.

    An <operations> block cut off by truncation still yields every complete
    SEARCH/REPLACE pair it contains.
    """
    text = raw or ""
    parsed = ParsedEditResponse()

    m = _THOUGHT_RE.search(text)
    if m:
        parsed.thought = m.group(1).strip()
    m = _RESPONSE_RE.search(text)
    if m:
        parsed.message = m.group(1).strip()

    m = _OPERATIONS_RE.search(text)
    if m:
        body = m.group(1)
        if "</operations>" not in text:
            parsed.notes.append("operations block not terminated")
        parsed.operations = [
            (pair.group(1).strip(), pair.group(2).strip())
            for pair in _PAIR_RE.finditer(body)
        ]
        return parsed

    m = _CODE_UPDATE_RE.search(text)
    if m:
        html = m.group(1).strip()
        html = re.sub(r"^```(?:html?)?\s*", "", html, flags=re.IGNORECASE)
        html = re.sub(r"\s*```$", "", html).strip()
        html = re.sub(r"^<body[^>]*>", "", html, flags=re.IGNORECASE)
        html = re.sub(r"</body>$", "", html, flags=re.IGNORECASE).strip()
        parsed.code_update = html

    return parsed
