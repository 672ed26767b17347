"""
dwh-etl: staging-to-warehouse transformation and load engine.
"""

__version__ = "0.1.0"
