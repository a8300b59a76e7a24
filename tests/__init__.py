"""Test suite for the Form.io bridge.

This package contains tests for:
- API client (auth, error normalization, CRUD, drafts)
- Message decoding and the renderer document
- Message bridge dispatch and submission persistence
- Screen state machine and screen controllers
- Form import utility
"""
