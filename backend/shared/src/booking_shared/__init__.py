"""Shared domain code for event booking payments.

Models, DynamoDB-backed stores, the SumUp gateway client and the
reconciliation engine used by the API package.
"""

__version__ = "0.1.0"
