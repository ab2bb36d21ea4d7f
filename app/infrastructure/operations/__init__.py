"""Operation result types and status enums.

This module contains standardized result types for operations across the
service, including status enums, result dataclasses, and error classifiers
for delivery provider calls.
"""

from infrastructure.operations.classifiers import (
    classify_http_response,
    classify_request_exception,
)
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    "OperationResult",
    "OperationStatus",
    "classify_http_response",
    "classify_request_exception",
]
