"""
Core modules for freight-ai.

This package contains the provider registry, the cascade query router,
pricing and the cost ledger with its budget evaluation.
"""
