"""
Test Suite

Structure:
    tests/
    ├── conftest.py                  # mongomock database, actor fixtures
    ├── helpers.py                   # workflow and ticket builders
    ├── test_transition_resolver.py  # graph/relational resolution
    ├── test_condition_evaluator.py
    ├── test_action_executor.py
    ├── test_engine.py               # end-to-end transition execution
    ├── test_workflow_service.py     # registry lifecycle
    ├── test_transactions.py         # session-scoped write boundaries
    ├── test_reporting_service.py    # dashboard and staff performance
    ├── test_ticket_service.py
    ├── test_notifications.py        # outbox delivery
    └── test_api.py                  # HTTP surface

To run tests:
    pytest
"""
