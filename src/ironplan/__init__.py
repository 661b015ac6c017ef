"""
Ironplan: periodization, autoregulation and exercise selection.

The engine lives in ironplan.judgment_day; storage implementations in
ironplan.repository (in-memory) and ironplan.postgres_client.
"""

__version__ = "0.1.0"
