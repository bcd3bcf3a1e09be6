"""Custom exception hierarchy."""
from typing import Optional, Dict, Any


class CompounderError(Exception):
    """Base exception for all compounder errors."""
    code: str = "SYS_001"

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class TransportError(CompounderError):
    """RPC endpoint unreachable, timed out or returned a malformed response."""
    code = "NET_001"

    def __init__(self, message: str, method: str = None, status: Optional[int] = None):
        super().__init__(message, {"method": method, "status": status})
        self.method = method
        self.status = status


class ConversionError(CompounderError):
    """On-chain decimal or amount could not be parsed."""
    code = "CONV_001"

    def __init__(self, message: str, raw_value: Any = None):
        super().__init__(message, {"raw_value": repr(raw_value)})
        self.raw_value = raw_value


class OptimizationFailure(CompounderError):
    """Solver did not converge or found no feasible compounding frequency."""
    code = "OPT_001"


class IntegrityError(CompounderError):
    """Balance moved the wrong way across a claim."""
    code = "INT_001"

    def __init__(self, message: str, balance_pre: Any = None, balance_post: Any = None):
        super().__init__(message, {"balance_pre": str(balance_pre), "balance_post": str(balance_post)})
        self.balance_pre = balance_pre
        self.balance_post = balance_post


class EmptyInputError(CompounderError):
    """A required collection or amount was empty."""
    code = "VAL_002"


class ConfigurationError(CompounderError):
    """Configuration error."""
    code = "CFG_001"
