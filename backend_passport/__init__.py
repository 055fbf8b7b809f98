"""
Backend Passport: reputation scoring backend for EVM wallets.

Orchestrates the reputation pipeline (validate → fetch → aggregate → score →
explain → format) and keeps a live view of every external data provider's
health for the monitoring dashboard. Modular architecture with clear separation
between health monitoring, pipeline orchestration, analytics and the API server.
"""

__version__ = "0.1.0"
