"""
External ERP synchronization core.

OAuth token management, a paced and retrying HTTP transport, and
idempotent reconciliation of orders and invoices into a local store.
"""

__version__ = "0.1.0"
