"""
Error handling and validation utilities for codingcanvas.

This module provides the package's exception classes, warning categories and
the parameter and record checks used by the analyzers. Computations never
raise for thin or degenerate data (those produce empty or neutral results);
the exceptions here are reserved for malformed records and configuration the
hosting service should report back to its caller.

Exception Classes:
    CodingCanvasError: Base exception for all codingcanvas errors
    RecordValidationError: Malformed transcript, coding or case records
    ParameterValidationError: Invalid function or node parameters
    UnknownNodeTypeError: Computed node type with no analysis behind it
    ValidationWarning: Non-fatal data quality issues
    PerformanceWarning: Performance-related warnings

Validation Functions:
    validate_choice_parameter: Check an enumerated parameter
    validate_positive_int: Check counts, limits and thresholds
    validate_node_type: Check a computed node type
    validate_coding_offsets: Check a coding's span invariant
    check_codings_against_transcripts: Warn about drifted coded text

Example:
    Catching configuration errors::

        from codingcanvas import run_node
        from codingcanvas.validation import CodingCanvasError

        try:
            result = run_node(node_type, config, data)
        except CodingCanvasError as e:
            print(f"Canvas computation failed: {e}")

.. codeauthor:: Coding Canvas contributors
"""

import warnings
from typing import Iterable, List, Sequence


class CodingCanvasError(Exception):
    """
    Base exception class for all codingcanvas errors.

    Allows callers to catch every codingcanvas-specific error with a single
    except clause.
    """

    pass


class RecordValidationError(CodingCanvasError):
    """
    Raised when a supplied record breaks its structural invariants.

    Common causes:
        - Coding offsets that are negative or describe an empty span
        - Records missing a required field such as 'id' or 'content'
        - Offsets that are not integers
    """

    pass


class ParameterValidationError(CodingCanvasError):
    """Raised when function or node parameters are invalid."""

    pass


class UnknownNodeTypeError(ParameterValidationError):
    """Raised when a computed node names a type with no analysis."""

    pass


class ValidationWarning(UserWarning):
    """Warning for potentially problematic but non-fatal issues."""

    pass


class PerformanceWarning(UserWarning):
    """Warning for performance-related issues."""

    pass


def _suggest(value: str, valid: Sequence[str]) -> List[str]:
    """Close matches for a mistyped option."""
    if not isinstance(value, str):
        return []
    lowered = [v for v in valid if v.lower() == value.lower()]
    if lowered:
        return lowered
    return [
        v for v in valid
        if value and (value.startswith(v[:2]) or v.startswith(value[:2]))
    ]


def validate_choice_parameter(
    name: str, value: str, valid: Sequence[str], context: str = ""
) -> None:
    """
    Validate an enumerated parameter with helpful suggestions.

    :param name: Parameter name used in the message
    :param value: Parameter value to validate
    :param valid: Accepted values
    :param context: Context for error messages
    """
    if value in valid:
        return

    error_msg = f"Invalid {name} parameter {context}: '{value}'\n"
    error_msg += f"Valid options are: {', '.join(valid)}"

    suggestions = _suggest(value, valid)
    if suggestions:
        error_msg += f"\nDid you mean: {', '.join(suggestions)}?"

    raise ParameterValidationError(error_msg)


def validate_positive_int(
    name: str, value: int, context: str = "", allow_zero: bool = False
) -> None:
    """
    Validate an integer count, limit or threshold.

    :param name: Parameter name used in the message
    :param value: Value to validate
    :param context: Context for error messages
    :param allow_zero: Whether 0 is acceptable
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParameterValidationError(
            f"{name} must be an integer {context}, "
            f"got {type(value).__name__}: {value}"
        )

    minimum = 0 if allow_zero else 1
    if value < minimum:
        raise ParameterValidationError(
            f"{name} must be at least {minimum} {context}, got {value}."
        )


def validate_node_type(node_type: str, valid_types: Sequence[str]) -> None:
    """
    Validate a computed node type.

    :param node_type: Node type requested by the caller
    :param valid_types: Node types with an analysis behind them
    """
    if node_type in valid_types:
        return

    error_msg = f"Unknown node type: {node_type}\n"
    error_msg += f"Supported node types are: {', '.join(valid_types)}"

    suggestions = _suggest(node_type, valid_types)
    if suggestions:
        error_msg += f"\nDid you mean: {', '.join(suggestions)}?"

    raise UnknownNodeTypeError(error_msg)


def validate_coding_offsets(
    coding_id: str, start_offset: int, end_offset: int
) -> None:
    """
    Check that a coding describes a non-empty span.

    :param coding_id: Coding identifier for the error message
    :param start_offset: First character of the span
    :param end_offset: One past the last character of the span
    """
    for label, offset in (("startOffset", start_offset), ("endOffset", end_offset)):
        if isinstance(offset, bool) or not isinstance(offset, int):
            raise RecordValidationError(
                f"Coding {coding_id} has a non-integer {label}: {offset!r}"
            )

    if start_offset < 0:
        raise RecordValidationError(
            f"Coding {coding_id} starts before the transcript: "
            f"startOffset={start_offset}"
        )

    if end_offset <= start_offset:
        raise RecordValidationError(
            f"Coding {coding_id} describes an empty span: "
            f"startOffset={start_offset}, endOffset={end_offset}. "
            "A coded span must cover at least one character."
        )


def check_codings_against_transcripts(
    codings: Iterable, transcripts: Iterable, context: str = ""
) -> int:
    """
    Warn about codings whose stored text no longer matches the transcript.

    Transcripts can be edited after coding; the stored ``coded_text`` is then
    stale. Dangling transcript references are not reported here.

    :param codings: Coding records
    :param transcripts: Transcript records
    :param context: Context for warning messages
    :return: Number of codings that drifted or overrun their transcript
    """
    contents = {t.id: t.content for t in transcripts}
    overrun = 0
    drifted = 0

    for coding in codings:
        content = contents.get(coding.transcript_id)
        if content is None:
            continue
        if coding.end_offset > len(content):
            overrun += 1
        elif content[coding.start_offset:coding.end_offset] != coding.coded_text:
            drifted += 1

    if overrun > 0:
        warnings.warn(
            f"Found {overrun} codings ending past their transcript {context}. "
            "Coverage figures for those transcripts may exceed the text length.",
            ValidationWarning,
        )

    if drifted > 0:
        warnings.warn(
            f"Found {drifted} codings whose coded text differs from the "
            f"transcript {context}. The transcript was probably edited after "
            "coding; excerpts show the text as originally coded.",
            ValidationWarning,
        )

    return overrun + drifted
