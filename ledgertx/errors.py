# ledgertx/errors.py
"""
Error types raised while building, signing and verifying transactions.

Every error carries a numeric ``code`` grouped by component:
6xxx key material, 4xxx document model, 7xxx signing, 5xxx parsing.
"""

from typing import Optional


class TxBuilderError(Exception):
    """Base class for all transaction builder errors."""

    code = 1000

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"Error - {self.code} : {self.message}"


class UnsupportedAlgorithm(TxBuilderError):
    code = 6000

    def __init__(self, algorithm: str):
        super().__init__(f"Unsupported key algorithm '{algorithm}'")
        self.algorithm = algorithm


class InvalidKeyMaterial(TxBuilderError):
    code = 6001

    def __init__(self, algorithm: str, reason: str = ""):
        msg = f"Invalid private key for algorithm '{algorithm}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.algorithm = algorithm
        self.reason = reason


class DuplicateStreamAlias(TxBuilderError):
    code = 4001

    def __init__(self, alias: str, section: str):
        super().__init__(f"Stream alias '{alias}' already present in {section}")
        self.alias = alias
        self.section = section


class IncompleteTransaction(TxBuilderError):
    code = 4002

    def __init__(self, field: str):
        super().__init__(f"Transaction is missing required field '{field}'")
        self.field = field


class TransactionSealed(TxBuilderError):
    """Raised when a signed document is modified."""

    code = 4003

    def __init__(self, operation: str):
        super().__init__(f"Cannot {operation}: transaction is already signed")
        self.operation = operation


class SigningFailure(TxBuilderError):
    code = 7000

    def __init__(self, algorithm: str, reason: str = ""):
        msg = f"Error signing data with '{algorithm}' key"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.algorithm = algorithm
        self.reason = reason


class MalformedTransaction(TxBuilderError):
    code = 5000

    def __init__(self, reason: str, field: Optional[str] = None):
        msg = f"Malformed transaction: {reason}"
        if field:
            msg += f" (field '{field}')"
        super().__init__(msg)
        self.reason = reason
        self.field = field
