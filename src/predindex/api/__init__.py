"""FastAPI read/admin surface over the local store."""
