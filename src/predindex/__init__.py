"""PredIndex - off-chain read models for on-chain pari-mutuel prediction markets."""

__version__ = "0.1.0"
