"""
Integration Tests

Integration tests require a running PostgreSQL test database
(POSTGRES_TEST_* environment variables). They are skipped when the
database is unreachable.
"""
