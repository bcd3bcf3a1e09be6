"""Error classification system."""
from enum import Enum
from dataclasses import dataclass
from typing import Optional


class ErrorCategory(str, Enum):
    VALIDATION = "VAL"
    CONFIGURATION = "CFG"
    CONVERSION = "CONV"
    NETWORK = "NET"
    OPTIMIZATION = "OPT"
    INTEGRITY = "INT"
    SYSTEM = "SYS"


@dataclass
class ClassifiedError:
    code: str
    category: ErrorCategory
    message: str
    recoverable: bool
    retry_after: Optional[int] = None
    log_level: str = "error"


ERROR_DEFINITIONS = {
    "VAL_002": ClassifiedError("VAL_002", ErrorCategory.VALIDATION, "Missing required input", True, log_level="warning"),
    "CFG_001": ClassifiedError("CFG_001", ErrorCategory.CONFIGURATION, "Invalid configuration", False),
    "CONV_001": ClassifiedError("CONV_001", ErrorCategory.CONVERSION, "Unparseable on-chain value", False),
    "NET_001": ClassifiedError("NET_001", ErrorCategory.NETWORK, "RPC request failed", True, 5, log_level="warning"),
    "OPT_001": ClassifiedError("OPT_001", ErrorCategory.OPTIMIZATION, "Optimization failed", True),
    "INT_001": ClassifiedError("INT_001", ErrorCategory.INTEGRITY, "Balance integrity violated", False, log_level="critical"),
    "SYS_001": ClassifiedError("SYS_001", ErrorCategory.SYSTEM, "Internal error", False),
}


def classify_error(exception: Exception) -> ClassifiedError:
    """Classify an exception into a standard error."""
    from compounder.errors.exceptions import CompounderError

    if isinstance(exception, CompounderError):
        return ERROR_DEFINITIONS.get(exception.code, ERROR_DEFINITIONS["SYS_001"])

    return ERROR_DEFINITIONS["SYS_001"]


def get_error_code(code: str) -> Optional[ClassifiedError]:
    """Get error definition by code."""
    return ERROR_DEFINITIONS.get(code)
