"""regagent - Registered agent document intake service.

Receives notifications about physical mail delivered to a registered
agent address, scans and classifies each item, records it against the
owning business entity with a compliance audit trail, and notifies the
client.

Note: Scan and OCR providers fall back to simulated data when they are
not configured or unreachable. Such records are flagged as simulated.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
