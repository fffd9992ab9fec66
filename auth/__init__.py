"""
auth — Account authentication module.

Provides:
  • Password hashing (bcrypt)
  • Signed session token creation & verification
  • Account store interface + SQLAlchemy adapter
  • Register / Login / Profile-update use cases and API routes
  • ``get_current_identity`` FastAPI dependency (Bearer access gate)
"""
