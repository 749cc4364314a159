"""Chain access: reader/canceller protocols and the Sui JSON-RPC adapter."""
