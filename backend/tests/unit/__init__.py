"""
Unit Tests

Unit tests run against InMemoryLearningStore and a frozen clock.
No database or network services are needed.
"""
