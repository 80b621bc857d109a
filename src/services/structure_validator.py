"""Structural check for ingredient extraction output.

Used as a guard on raw model output and as an evaluation metric, so it never
raises: it scores the candidate and explains every problem it found.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

VALID_REASON = "Output has correct structure: {add: string[], rm: string[]}"


@dataclass(frozen=True)
class StructureScore:
    """Binary score with a human-readable reason."""

    name: str
    value: float
    reason: str

    @property
    def is_valid(self) -> bool:
        return self.value == 1.0


def _string_list_issues(output: Mapping[str, Any], field: str) -> list[str]:
    if field not in output:
        return [f"Missing '{field}' field"]
    value = output[field]
    if not isinstance(value, list):
        return [f"'{field}' is not an array"]
    if not all(isinstance(item, str) for item in value):
        return [f"'{field}' array contains non-string values"]
    return []


def validate_extraction_structure(
    output: Any, name: str = "structure_match"
) -> StructureScore:
    """Score ``output`` 1.0 iff it has ``add`` and ``rm`` string arrays.

    Every violated condition is listed in the reason, in a stable order.
    """
    if not isinstance(output, Mapping):
        return StructureScore(
            name=name,
            value=0.0,
            reason=f"Invalid structure: Output is not an object, got: {type(output).__name__}",
        )

    issues = _string_list_issues(output, "add") + _string_list_issues(output, "rm")
    if issues:
        return StructureScore(
            name=name, value=0.0, reason=f"Invalid structure: {', '.join(issues)}"
        )
    return StructureScore(name=name, value=1.0, reason=VALID_REASON)
