"""
FluentPath Test Suite

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures (clock, in-memory store)
    ├── fakes.py             # InMemoryLearningStore and FrozenClock
    ├── unit/                # Services, models and API against the in-memory store
    └── integration/         # SqlAlchemyLearningStore against PostgreSQL

Running Tests:
    # Run all tests
    pytest -v

    # Run only unit tests (fast, no dependencies)
    pytest backend/tests/unit/ -v

    # Run only integration tests (requires PostgreSQL)
    pytest backend/tests/integration/ -v -m integration
"""
