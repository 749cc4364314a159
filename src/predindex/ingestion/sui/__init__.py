"""Sui full node JSON-RPC adapter."""
