"""
User management for the SSO service.

This package provides:
- User registration and credential validation
- Signed access token issuance
- CRUD and pagination over user records
"""
