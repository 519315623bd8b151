"""Service layer for the stamp ledger, sync engine and remote collaborators."""
