"""Extraction of JSON objects embedded in free-text model output."""

import json
import re

# Greedy: from the first "{" to the last "}"
_GREEDY_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class StructuredOutputError(ValueError):
    """Base error for model output that does not carry the expected JSON."""


class StructuredOutputMissingError(StructuredOutputError):
    """No ``{...}`` substring at all."""


class StructuredOutputParseError(StructuredOutputError):
    """A ``{...}`` substring exists but no JSON object could be decoded."""


def extract_json_object(text: str, required_key: str | None = None) -> dict:
    """Return the JSON object embedded in ``text``.

    The greedy first-brace-to-last-brace substring is tried first, which
    covers the usual case of a single object wrapped in prose or a markdown
    fence. When surrounding prose contains unrelated braces the greedy match
    is not valid JSON, so every ``{`` is then tried with a raw decoder; the
    first object holding ``required_key`` wins, otherwise the first object
    decoded at all.

    Raises:
        StructuredOutputMissingError: no brace-delimited substring
        StructuredOutputParseError: nothing decodes to a JSON object
    """
    match = _GREEDY_OBJECT_RE.search(text or "")
    if match is None:
        raise StructuredOutputMissingError("No JSON object found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict) and (required_key is None or required_key in parsed):
        return parsed

    decoder = json.JSONDecoder()
    first_object: dict | None = parsed if isinstance(parsed, dict) else None
    position = text.find("{")
    while position != -1:
        try:
            candidate, _ = decoder.raw_decode(text, position)
        except json.JSONDecodeError:
            candidate = None
        if isinstance(candidate, dict):
            if required_key is None or required_key in candidate:
                return candidate
            if first_object is None:
                first_object = candidate
        position = text.find("{", position + 1)

    if first_object is not None:
        return first_object
    raise StructuredOutputParseError("Response JSON could not be decoded")
