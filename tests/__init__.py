"""
Test suite for the asset registry

- Canonicalization and digest properties
- Reference ledger write-once and authority rules
- Ledger recorder, HTTP ledger and spreadsheet clients (mocked HTTP)
- Audit service, API endpoints, auth and CLI
"""
