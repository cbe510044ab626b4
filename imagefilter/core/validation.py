"""
Validation engine for pipeline and handler configuration.

Structured validation rules that must pass before a pipeline is servable.
Returns ValidationIssue list; ERROR severity blocks start-up.
"""

import re
from typing import List, Mapping, Sequence

from .errors import ConfigurationError
from .types import (
    EncodingOptions,
    HandlerSettings,
    PngCompression,
    ValidationIssue,
    ValidationSeverity,
)

# Positions are encoded with four digits, so at most 9999 filters fit.
MAX_FILTERS = 9999

FILTER_KEY_PATTERN = re.compile(r"^\d{4}_[A-Za-z0-9_]+$")


class ValidationEngine:
    """Validates pipeline and handler configurations."""

    @staticmethod
    def validate_pipeline(
        filter_order: Sequence[str],
        filters: Mapping[str, object],
        encoding: EncodingOptions,
    ) -> List[ValidationIssue]:
        """
        Validate the ordered filter list and the encoding options.

        Returns list of ValidationIssue; the pipeline is rejected if any ERROR present.
        """
        issues = []

        # 1. Filter list
        issues.extend(ValidationEngine._validate_filter_order(filter_order, filters))

        # 2. Encoding options
        issues.extend(ValidationEngine._validate_encoding(encoding))

        return issues

    @staticmethod
    def _validate_filter_order(
        filter_order: Sequence[str],
        filters: Mapping[str, object],
    ) -> List[ValidationIssue]:
        issues = []

        # Otherwise this is just a slow file server
        if not filter_order:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="NO_FILTERS",
                    message="No image filters to apply configured.",
                )
            )
            return issues

        if len(filter_order) > MAX_FILTERS:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="TOO_MANY_FILTERS",
                    message=f"Too many filters: {len(filter_order)} (at most {MAX_FILTERS}).",
                    context={"count": len(filter_order)},
                )
            )

        for key in filter_order:
            if not FILTER_KEY_PATTERN.match(key):
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="BAD_FILTER_KEY",
                        message=f"Filter key '{key}' is not of the form '<position>_<name>'.",
                        context={"key": key},
                    )
                )
            elif key not in filters:
                issues.append(
                    ValidationIssue(
                        severity=ValidationSeverity.ERROR,
                        code="MISSING_FILTER",
                        message=f"No image filter '{key}' configured.",
                        context={"key": key},
                    )
                )

        return issues

    @staticmethod
    def _validate_encoding(encoding: EncodingOptions) -> List[ValidationIssue]:
        issues = []

        quality = encoding.jpeg_quality
        if not isinstance(quality, int) or quality < 1 or quality > 100:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="JPEG_QUALITY",
                    message="jpeg_quality must be between 1 and 100.",
                    context={"value": quality},
                )
            )

        if not isinstance(encoding.png_compression, PngCompression):
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="PNG_COMPRESSION",
                    message="png_compression must be between -3 and 0.",
                    context={"value": encoding.png_compression},
                )
            )

        return issues

    @staticmethod
    def validate_handler(settings: HandlerSettings) -> List[ValidationIssue]:
        """Validate request handling options."""
        issues = []

        if settings.max_concurrent < 0:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="MAX_CONCURRENT",
                    message="max_concurrent must be greater or equal 0.",
                    context={"value": settings.max_concurrent},
                )
            )

        if settings.request_timeout is not None and settings.request_timeout <= 0:
            issues.append(
                ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="REQUEST_TIMEOUT",
                    message="request_timeout must be positive.",
                    context={"value": settings.request_timeout},
                )
            )

        return issues

    @staticmethod
    def raise_for_issues(issues: List[ValidationIssue], what: str) -> None:
        """Raise ConfigurationError if any ERROR issue is present."""
        errors = [i for i in issues if i.severity == ValidationSeverity.ERROR]
        if errors:
            details = "; ".join(i.message for i in errors)
            raise ConfigurationError(f"invalid {what}: {details}", issues=errors)
