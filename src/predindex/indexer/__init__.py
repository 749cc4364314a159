"""Background loops: reconciliation (prices/history) and expiry sweeping."""
