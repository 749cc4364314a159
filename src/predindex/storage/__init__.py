"""DuckDB persistence for markets and their price history."""
