"""Integration tests against a real, downloaded ClickHouse server.

Run with: pytest tests/integration/ --integration
"""
