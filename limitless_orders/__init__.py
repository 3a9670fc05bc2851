"""Order construction and EIP-712 signing for the Limitless prediction-market exchange."""

__all__ = [
    "auth",
    "builder",
    "cli",
    "client",
    "clob_rest",
    "config",
    "errors",
    "fixed",
    "log",
    "models",
    "signer",
    "validator",
    "venue",
]
