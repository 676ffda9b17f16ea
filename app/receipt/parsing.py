import json
import logging

from app.errors import EmptyResponse, MalformedResponse

logger = logging.getLogger("bridgepay")


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the `}` closing the object that opens at `start`."""
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
                return i + 1
    return None


def find_json_object(text: str) -> str | None:
    """Return the first balanced top-level `{...}` block in `text` that parses as JSON."""
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            candidate = text[start:end]
            try:
                json.loads(candidate)
            except ValueError:
                pass
            else:
                return candidate
        start = text.find("{", start + 1)
    return None


def parse_extraction(text: str | None) -> dict:
    """Parse the extraction service output into a dict.

    Tries strict JSON first, then falls back to the first JSON object embedded
    in surrounding prose or code fences.
    """
    if text is None or not text.strip():
        raise EmptyResponse()

    try:
        data = json.loads(text)
    except ValueError:
        candidate = find_json_object(text)
        if candidate is None:
            logger.error(
                "Extraction response is not JSON",
                extra={"extra_data": {"raw_text": text[:500]}},
            )
            raise MalformedResponse()
        logger.info("Recovered JSON object from surrounding text")
        data = json.loads(candidate)

    if not isinstance(data, dict):
        logger.error(
            "Extraction response is not a JSON object",
            extra={"extra_data": {"type": type(data).__name__}},
        )
        raise MalformedResponse()
    return data
