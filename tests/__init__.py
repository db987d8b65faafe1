"""
Test suite for relite.

Unit tests run against mocks; the integration-style tests open real SQLite
files under pytest's ``tmp_path``.
"""
