"""Result validation -- report items that do not match their type's schema.

Validation here never rejects a page. Items that fail
:data:`~marvelquery.schemas.RESULT_SCHEMAS` are grouped by error signature
and logged with their indices collapsed into ranges, e.g.::

    Validation failed for results at indices 0-3, 7: series -> Field required

A warning follows when every item failed, or when some failed and verbose
logging is off.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from pydantic import ValidationError

from marvelquery.endpoint import EndpointType
from marvelquery.logger import VERBOSE, QueryLogger, get_logger
from marvelquery.schemas import RESULT_SCHEMAS


def group_consecutive(indices: Sequence[int]) -> list[str]:
    """Collapse sorted *indices* into ranges: ``[1, 2, 3, 5]`` -> ``["1-3", "5"]``."""
    groups: list[str] = []
    if not indices:
        return groups

    start = end = indices[0]
    for index in indices[1:]:
        if index == end + 1:
            end = index
            continue
        groups.append(f"{start}" if start == end else f"{start}-{end}")
        start = end = index
    groups.append(f"{start}" if start == end else f"{start}-{end}")
    return groups


def _signature(exc: ValidationError) -> str:
    return "; ".join(
        f"{' -> '.join(str(p) for p in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )


def validate_results(
    results: Sequence[Mapping[str, Any]],
    result_type: EndpointType,
    logger: Optional[QueryLogger] = None,
) -> bool:
    """Validate every item in *results* against the schema for *result_type*.

    Returns:
        ``True`` when every item passed.
    """
    logger = logger or get_logger(__name__)
    schema = RESULT_SCHEMAS[result_type.value]
    logger.verbose("Validating query results")

    errors: dict[str, list[int]] = {}
    for index, item in enumerate(results):
        try:
            schema.model_validate(item)
        except ValidationError as exc:
            errors.setdefault(_signature(exc), []).append(index)

    if not errors:
        logger.verbose("All results validated successfully")
        return True

    all_failed = True
    for signature, indices in errors.items():
        if len(indices) != len(results):
            all_failed = False
        groups = group_consecutive(indices)
        noun = "results at indices" if len(indices) > 1 else "result at index"
        logger.verbose(f"Validation failed for {noun} {', '.join(groups)}: {signature}")

    if all_failed:
        logger.warn("All results failed validation.")
    elif not logger.isEnabledFor(VERBOSE):
        logger.warn("Some results failed validation. Enable verbose logging for details.")
    return False

