"""Core Business Logic Module

Framework-independent logic for account provisioning.

Module Structure:
    - supabase/               : Supabase HTTP client, restricted and privileged paths
    - validators.py           : Provisioning request validation (no I/O)
    - provisioning_service.py : Account creation with the privileged client
    - audit.py                : Signed audit trail

These modules are NOT auto-imported. Import explicitly when needed:
    from school_admin.core.provisioning_service import create_account, result_to_response
    from school_admin.core.validators import validate_provisioning_request
"""
