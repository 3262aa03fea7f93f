"""
ripple-api: build, broadcast and track XRP Ledger payments.

Core modules:
    - builder: unsigned transaction contexts and built operations
    - broadcast: submission and simulated transfers
    - status: operation status and soft delete
    - operations / assets / balances / history: SQLite stores
    - xrpl: ledger client adapter (JSON-RPC)

HTTP surface: ripple_api.api.create_app()
"""

__version__ = "0.1.0"

APP_NAME = "ripple-api"
