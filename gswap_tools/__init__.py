"""
GalaSwap / GalaChain DEX tooling
- one-shot scripts for signed transfers, fee authorizations, swap requests/terminations
- pool listing and quoting helpers
- terminal dashboard with balances, spot price, USD refs and PnL replay
- pool monitor that flags price moves and divergence against a USD reference
"""

__version__ = "0.1.0"
