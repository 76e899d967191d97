"""School admin provisioning service package.

To build the Flask app (trusted process, needs the service-role key):
    from school_admin.flask_app import create_app

To use the restricted Supabase client:
    from school_admin.core.supabase.public import build_restricted_client

To provision accounts programmatically:
    from school_admin.core.provisioning_service import create_account
"""
# flask_app is not imported here: restricted tools import this package
# without ever touching the privileged construction path.
